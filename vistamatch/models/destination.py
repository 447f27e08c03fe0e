"""Destination and review models for recommended travel destinations."""

from datetime import datetime
from urllib.parse import quote_plus

from pydantic import BaseModel, ConfigDict, Field, field_validator

SHARE_TEMPLATES = {
    "en": "Check out this amazing place I found on VistaMatch: {name}, {location}!",
    "zh": "我在 VistaMatch 发现了一个好地方: {name}, {location}!",
}


class ReviewDraft(BaseModel):
    """User-entered review content, before it gets an id and a date."""

    author: str
    rating: int = Field(default=5, ge=1, le=5)
    text: str

    @field_validator("author", "text")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ReviewRecord(ReviewDraft):
    """A stored review. Reviews are append-only and never edited."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: datetime


class GroundingLink(BaseModel):
    """A citation attached to a whole result set."""

    title: str
    uri: str


class DestinationRecord(BaseModel):
    """Represents one destination recommended by the model."""

    id: str
    name: str
    english_name: str
    location: str
    reason: str
    route: str
    season: str
    tips: str
    itinerary: str
    image_keyword: str

    # Mutated only through the destination store
    is_favorite: bool = False
    reviews: list[ReviewRecord] = Field(default_factory=list)

    @property
    def place_key(self) -> tuple[str, str]:
        """Key used to recognise the same place across searches."""
        return (self.name, self.location)

    @property
    def average_rating(self) -> float | None:
        if not self.reviews:
            return None
        return round(sum(r.rating for r in self.reviews) / len(self.reviews), 1)

    def share_text(self, language: str = "en") -> str:
        """Build the message used when sharing this destination."""
        key = getattr(language, "value", language)
        template = SHARE_TEMPLATES.get(key, SHARE_TEMPLATES["en"])
        return template.format(name=self.name, location=self.location)

    def maps_url(self) -> str:
        """Return a maps search link for this destination."""
        query = quote_plus(f"{self.name} {self.location}")
        return f"https://www.google.com/maps/search/?api=1&query={query}"


class ImageResolution(BaseModel):
    """Transient image state for one destination."""

    status: str = "pending"  # "pending" or "resolved"
    url: str | None = None
    source: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status == "resolved"
