"""In-memory store for search results, favorites and reviews.

Each destination is held once, keyed by id. "Shown in the current search"
and "saved as a favorite" are two projections over that one entry, so
the favorite flag and the reviews can never differ between the search
view and the favorites view.
"""

import logging
from datetime import datetime, timezone
from uuid import uuid4

from vistamatch.errors import DestinationNotFoundError
from vistamatch.models import DestinationRecord, GroundingLink, ReviewDraft, ReviewRecord

logger = logging.getLogger(__name__)


class DestinationStore:
    """Authoritative destination state for one user session."""

    def __init__(self):
        self._entries: dict[str, DestinationRecord] = {}
        self._current_ids: list[str] = []
        self._saved_ids: list[str] = []
        self.grounding_links: list[GroundingLink] = []
        self.raw_text: str = ""

    @property
    def current_results(self) -> list[DestinationRecord]:
        """Destinations of the latest search, in model order."""
        return [self._entries[i] for i in self._current_ids]

    @property
    def saved_favorites(self) -> list[DestinationRecord]:
        """Favorited destinations, in the order they were saved."""
        return [self._entries[i] for i in self._saved_ids]

    def get(self, destination_id: str) -> DestinationRecord:
        try:
            return self._entries[destination_id]
        except KeyError:
            raise DestinationNotFoundError(destination_id) from None

    def __contains__(self, destination_id: str) -> bool:
        return destination_id in self._entries

    def _find_saved(self, place_key: tuple[str, str]) -> DestinationRecord | None:
        for destination_id in self._saved_ids:
            entry = self._entries[destination_id]
            if entry.place_key == place_key:
                return entry
        return None

    def merge_search_results(
        self,
        destinations: list[DestinationRecord],
        grounding_links: list[GroundingLink] | None = None,
        raw_text: str = "",
    ) -> list[DestinationRecord]:
        """
        Replace the current search with freshly parsed destinations.

        A fresh destination whose (name, location) equals a saved favorite
        takes over the favorite's id, flag and reviews. Everything else
        starts unfavorited with its own id. Destinations of the previous
        search that are not favorites are dropped.

        Args:
            destinations: Newly parsed destinations, in display order
            grounding_links: Citations for the new result set
            raw_text: Raw model text the destinations came from

        Returns:
            The new current results
        """
        new_ids: list[str] = []
        entries: dict[str, DestinationRecord] = {}

        for fresh in destinations:
            saved = self._find_saved(fresh.place_key)
            if saved is not None and saved.id not in entries:
                entry = fresh.model_copy(
                    update={
                        "id": saved.id,
                        "is_favorite": True,
                        "reviews": list(saved.reviews),
                    }
                )
                logger.debug("Matched %s to saved favorite %s", fresh.id, saved.id)
            else:
                entry = fresh.model_copy(update={"is_favorite": False, "reviews": []})
            entries[entry.id] = entry
            new_ids.append(entry.id)

        self._entries.update(entries)
        keep = set(new_ids) | set(self._saved_ids)
        for destination_id in list(self._entries):
            if destination_id not in keep:
                del self._entries[destination_id]
        self._current_ids = new_ids
        self.grounding_links = list(grounding_links or [])
        self.raw_text = raw_text
        return self.current_results

    def clear_search(self) -> None:
        """Forget the current search; saved favorites are kept."""
        self.merge_search_results([])

    def toggle_favorite(self, destination_id: str) -> bool:
        """
        Flip a destination's favorite flag.

        Returns:
            The new flag value

        Raises:
            DestinationNotFoundError: if no destination has this id
        """
        entry = self.get(destination_id)
        entry.is_favorite = not entry.is_favorite

        if entry.is_favorite:
            if destination_id not in self._saved_ids:
                self._saved_ids.append(destination_id)
        else:
            # The entry stays addressable until the next search prunes it
            self._saved_ids = [i for i in self._saved_ids if i != destination_id]

        return entry.is_favorite

    def add_review(self, destination_id: str, review: ReviewDraft) -> ReviewRecord:
        """
        Append a review to a destination.

        The review is visible wherever the destination is shown.

        Raises:
            DestinationNotFoundError: if no destination has this id
        """
        entry = self.get(destination_id)
        record = ReviewRecord(
            id=f"review-{uuid4().hex}",
            date=datetime.now(timezone.utc),
            author=review.author,
            rating=review.rating,
            text=review.text,
        )
        entry.reviews.append(record)
        return record
