from .destination import (
    DestinationRecord,
    GroundingLink,
    ImageResolution,
    ReviewDraft,
    ReviewRecord,
)
from .recommendation import (
    BUDGET_OPTIONS,
    COMPANION_OPTIONS,
    DURATION_OPTIONS,
    PRIMARY_LANGUAGE,
    TRAVEL_TYPE_OPTIONS,
    Language,
    ModelResponse,
    RecommendationResult,
    UserPreferences,
)

__all__ = [
    "DestinationRecord",
    "GroundingLink",
    "ImageResolution",
    "ReviewDraft",
    "ReviewRecord",
    "BUDGET_OPTIONS",
    "COMPANION_OPTIONS",
    "DURATION_OPTIONS",
    "PRIMARY_LANGUAGE",
    "TRAVEL_TYPE_OPTIONS",
    "Language",
    "ModelResponse",
    "RecommendationResult",
    "UserPreferences",
]
