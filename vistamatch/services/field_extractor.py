"""Pull a single labelled field out of one record block of model text.

The model is asked to emit lines like ``Season: April-May for blossoms``.
There is no formal grammar behind that, so extraction is a heuristic:
a field's value runs from ``<Field>:`` up to the next line that starts
with a capitalized word immediately followed by a colon (``Tips:``), or
to the end of the block.

Consequences worth knowing:

- Times such as ``10:00`` at the start of a line do not end a field,
  since the terminator needs a word made of letters.
- ``Day 1:`` does not end a field either (there is a space before the
  colon), but ``Morning:`` at line start does.
- The field label itself is matched case-insensitively.
- A label followed directly by the next label yields an empty value.
"""

import re
from functools import lru_cache

UNAVAILABLE = "Information not available"

# Next "Word:" at line start, or the end of the block
_FIELD_END = r"(?=\n[A-Z][a-zA-Z]+:|\s*\Z)"


@lru_cache(maxsize=64)
def _field_pattern(field_name: str) -> re.Pattern:
    # Label is case-insensitive, the terminator is not.
    # The lookbehind keeps "Name" from matching inside "EnglishName".
    return re.compile(
        rf"(?<![A-Za-z])(?i:{re.escape(field_name)}):[ \t]*(.*?){_FIELD_END}",
        re.DOTALL,
    )


def extract_field(block: str, field_name: str) -> str:
    """
    Extract a field value from a record block.

    Args:
        block: Raw text of one record
        field_name: Field label without the colon (e.g., "Season")

    Returns:
        The trimmed value, or UNAVAILABLE if the label is not present
    """
    match = _field_pattern(field_name).search(block)
    if not match:
        return UNAVAILABLE
    return match.group(1).strip()


def is_available(value: str | None) -> bool:
    """Return True if an extracted value is present and non-empty."""
    return bool(value) and value != UNAVAILABLE
