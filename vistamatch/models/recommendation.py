"""Search inputs and results."""

from enum import Enum

from pydantic import BaseModel, Field

from .destination import DestinationRecord, GroundingLink


class Language(str, Enum):
    ENGLISH = "en"
    CHINESE = "zh"


PRIMARY_LANGUAGE = Language.ENGLISH

BUDGET_OPTIONS = ["Any", "Economy", "Moderate", "Luxury"]
TRAVEL_TYPE_OPTIONS = ["Any", "Adventure", "Relaxation", "Culture", "City", "Nature"]
COMPANION_OPTIONS = ["Any", "Solo", "Couple", "Family", "Friends"]
DURATION_OPTIONS = ["1-3", "3-5", "5-7", "7-10", "10-14", "14+"]


class UserPreferences(BaseModel):
    """Preferences the user picks before uploading a photo."""

    budget: str = "Any"
    travel_type: str = "Any"
    companions: str = "Any"
    trip_duration: str = "3-5"
    origin_location: str = ""


class ModelResponse(BaseModel):
    """Raw output of one model call."""

    text: str = ""
    grounding_links: list[GroundingLink] = Field(default_factory=list)


class RecommendationResult(BaseModel):
    """Parsed destinations plus the raw text and citations they came from."""

    destinations: list[DestinationRecord] = Field(default_factory=list)
    raw_text: str = ""
    grounding_links: list[GroundingLink] = Field(default_factory=list)
