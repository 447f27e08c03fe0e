"""Split a multi-destination model response into DestinationRecords."""

import logging
import time

from vistamatch.models import DestinationRecord

from .field_extractor import UNAVAILABLE, extract_field, is_available

logger = logging.getLogger(__name__)

RECORD_SEPARATOR = "---SEPARATOR---"

# A longer "name" means the Name field ran on into the rest of the block
MAX_NAME_LENGTH = 100

RECORD_FIELDS = [
    "Name",
    "EnglishName",
    "Location",
    "Reason",
    "Route",
    "Season",
    "Tips",
    "Itinerary",
    "ImageKeyword",
]


def split_record_blocks(text: str, separator: str = RECORD_SEPARATOR) -> list[str]:
    """Split raw text on the separator, dropping blank blocks."""
    blocks = (block.strip() for block in text.split(separator))
    return [block for block in blocks if block]


def parse_record(block: str, record_id: str) -> DestinationRecord | None:
    """
    Build a DestinationRecord from one block.

    Returns None when the block has no usable Name, which is how preamble
    and closing commentary from the model get dropped.
    """
    fields = {name: extract_field(block, name) for name in RECORD_FIELDS}

    name = fields["Name"]
    if not is_available(name) or len(name) >= MAX_NAME_LENGTH:
        return None

    english_name = fields["EnglishName"]
    image_keyword = fields["ImageKeyword"]

    return DestinationRecord(
        id=record_id,
        name=name,
        english_name=english_name if is_available(english_name) else name,
        location=fields["Location"],
        reason=fields["Reason"],
        route=fields["Route"],
        season=fields["Season"],
        tips=fields["Tips"],
        itinerary=fields["Itinerary"],
        image_keyword=image_keyword if is_available(image_keyword) else name,
    )


def parse_destinations(text: str, batch: int | None = None) -> list[DestinationRecord]:
    """
    Parse every destination block in a model response.

    Args:
        text: Full model response
        batch: Distinguishing stamp for ids; defaults to the current time in
            nanoseconds. Ids are "dest-<batch>-<block index>".

    Returns:
        Accepted records in order of appearance (possibly empty)
    """
    if batch is None:
        batch = time.time_ns()

    destinations = []
    blocks = split_record_blocks(text)
    for index, block in enumerate(blocks):
        record = parse_record(block, f"dest-{batch}-{index}")
        if record is None:
            logger.debug("Dropped block %d without a usable name", index)
            continue
        destinations.append(record)

    logger.info("Parsed %d destinations from %d blocks", len(destinations), len(blocks))
    return destinations


__all__ = [
    "MAX_NAME_LENGTH",
    "RECORD_FIELDS",
    "RECORD_SEPARATOR",
    "UNAVAILABLE",
    "parse_destinations",
    "parse_record",
    "split_record_blocks",
]
