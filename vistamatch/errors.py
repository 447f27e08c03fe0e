"""Error conditions that cross the recommender boundary."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vistamatch.models import GroundingLink


ERROR_MESSAGES = {
    "en": {
        "generic": "Something went wrong while connecting to the AI guide. Please try again.",
        "parse": "We couldn't parse the specific details, but the AI saw your image!",
    },
    "zh": {
        "generic": "连接智能向导时出错，请重试。",
        "parse": "我们无法解析具体细节，但AI看到了您的照片！",
    },
}


class VistaMatchError(Exception):
    """Base class for recommender errors."""

    message_key = "generic"
    retryable = False

    def user_message(self, language: str = "en") -> str:
        """Return the consolidated user-facing message for this error class."""
        lang = getattr(language, "value", language)
        messages = ERROR_MESSAGES.get(lang, ERROR_MESSAGES["en"])
        return messages[self.message_key]


class AIConnectionError(VistaMatchError):
    """The model call itself could not complete (network, auth, quota)."""

    retryable = True


class NoDestinationsFoundError(VistaMatchError):
    """The model answered, but no structured destinations could be parsed."""

    message_key = "parse"

    def __init__(
        self,
        raw_text: str,
        grounding_links: list["GroundingLink"] | None = None,
    ):
        super().__init__("No structured destinations found in model response")
        self.raw_text = raw_text
        self.grounding_links = grounding_links or []


class DestinationNotFoundError(KeyError):
    """No destination with the given id is held by the store."""
