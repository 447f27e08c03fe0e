"""
Photo-to-destination recommendation flow.

One photo upload makes one model call, one parse, and one store merge.
Images are resolved separately per destination by an
ImageResolutionManager owned by the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from vistamatch.errors import AIConnectionError, NoDestinationsFoundError
from vistamatch.models import (
    PRIMARY_LANGUAGE,
    DestinationRecord,
    Language,
    RecommendationResult,
    ReviewDraft,
    ReviewRecord,
    UserPreferences,
)
from vistamatch.storage import DestinationStore

from .record_parser import parse_destinations

if TYPE_CHECKING:
    from vistamatch.agents.base import RecommendationAgent

logger = logging.getLogger(__name__)


class TravelRecommender:
    """Entry point used by the UI: search, favorites and reviews."""

    def __init__(self, agent: "RecommendationAgent", store: DestinationStore | None = None):
        self.agent = agent
        self.store = store or DestinationStore()

    @property
    def current_results(self) -> list[DestinationRecord]:
        return self.store.current_results

    @property
    def saved_favorites(self) -> list[DestinationRecord]:
        return self.store.saved_favorites

    async def submit_search(
        self,
        image: bytes,
        mime_type: str,
        preferences: UserPreferences,
        language: Language = PRIMARY_LANGUAGE,
    ) -> RecommendationResult:
        """
        Ask the model for destinations matching a photo and publish them.

        Args:
            image: Uploaded photo bytes
            mime_type: Photo MIME type
            preferences: User preferences for the trip
            language: Active locale

        Returns:
            RecommendationResult with destinations already merged against
            saved favorites

        Raises:
            AIConnectionError: the model call failed
            NoDestinationsFoundError: the model answered but nothing parsed
        """
        # The previous search is superseded as soon as a new one starts
        self.store.clear_search()

        try:
            response = await self.agent.recommend(image, mime_type, preferences, language)
        except Exception as e:
            logger.error("%s request failed: %s", self.agent.name, e, exc_info=True)
            raise AIConnectionError(f"{self.agent.name} request failed: {e}") from e

        destinations = parse_destinations(response.text)
        if not destinations:
            logger.warning("Parsing failed, raw text: %.500s", response.text)
            raise NoDestinationsFoundError(response.text, response.grounding_links)

        merged = self.store.merge_search_results(
            destinations,
            grounding_links=response.grounding_links,
            raw_text=response.text,
        )
        return RecommendationResult(
            destinations=merged,
            raw_text=response.text,
            grounding_links=response.grounding_links,
        )

    def toggle_favorite(self, destination_id: str) -> bool:
        """Flip a destination's favorite flag and return the new value."""
        return self.store.toggle_favorite(destination_id)

    def add_review(self, destination_id: str, review: ReviewDraft | dict) -> ReviewRecord:
        """Append a review to a destination, wherever it is shown."""
        if isinstance(review, dict):
            review = ReviewDraft.model_validate(review)
        return self.store.add_review(destination_id, review)
