from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from vistamatch.models import Language, ModelResponse, UserPreferences
from vistamatch.services.record_parser import RECORD_SEPARATOR

DESTINATION_COUNT = 8

LANGUAGE_INSTRUCTIONS = {
    Language.CHINESE: (
        "Provide all textual content (Name, Location, Reason, Route, Season, Tips, "
        "Itinerary) in Simplified Chinese (简体中文). However, ALWAYS provide the "
        "'EnglishName' field in English."
    ),
    Language.ENGLISH: (
        "Provide all textual content in English. The 'EnglishName' field should be "
        "the standard English name."
    ),
}

RECOMMENDATION_PROMPT_TEMPLATE = """Analyze the uploaded image (style, terrain, vibe) and user preferences:
- Budget: {budget}
- Style: {travel_type}
- Companions: {companions}
- User's Origin Location: {origin_display}
- Trip Duration: {trip_duration} days

Identify {count} perfect real-world destinations that match this visual vibe and fit the duration.

{language_instruction}

Use search and maps tools EXTENSIVELY (when available) to find real-time, accurate details.

CRITICAL INSTRUCTIONS FOR CONTENT FIELDS:

1. **Route (Transportation)**:
   - If Origin Location is provided ("{origin_location}"), you MUST look up real transportation options.
   - Recommend specific methods: "Fly from [Origin] to [Nearest Airport] (approx X hours)".
   - If applicable, mention train options (e.g., "High-speed train from [Origin] takes 3 hrs").
   - If no Origin is provided, list the nearest major airport/hub.

2. **Reason**:
   - Explain specifically why this destination matches the uploaded PHOTO. Mention matching colors and landscape features.

3. **Season**:
   - Do not just say "Spring". Specify the BEST months (e.g., "April-May for cherry blossoms").
   - Use local weather or seasonal events to justify this.

4. **Tips**:
   - Provide 3-4 specific, actionable tips.
   - Include advice on booking tickets (train/plane) or local apps.

5. **Itinerary**:
   - Create a DETAILED, realistic day-by-day plan for {trip_duration} days.
   - Mention specific spot names, morning/afternoon activities.
   - Ensure the flow makes sense geographically.

OUTPUT FORMAT:
List {count} destinations separated by "{separator}".
Format each exactly like this:

Name: [Name]
EnglishName: [Standard English Name]
Location: [City/Country]
Reason: [Visual match explanation]
Route: [Specific Transport from Origin + Local transfer]
Season: [Best months & Why]
Tips: [3-4 Specific Tips including ticket advice]
Itinerary: [Detailed Day-by-Day Plan]
ImageKeyword: [Visual description for search]"""


def build_recommendation_prompt(
    preferences: UserPreferences, language: Language = Language.ENGLISH
) -> str:
    """Fill the fixed instruction template with the user's preferences."""
    return RECOMMENDATION_PROMPT_TEMPLATE.format(
        budget=preferences.budget,
        travel_type=preferences.travel_type,
        companions=preferences.companions,
        origin_display=preferences.origin_location or "Not specified",
        origin_location=preferences.origin_location,
        trip_duration=preferences.trip_duration,
        count=DESTINATION_COUNT,
        language_instruction=LANGUAGE_INSTRUCTIONS[Language(language)],
        separator=RECORD_SEPARATOR,
    )


class RecommendationAgent(ABC):
    """Abstract base class for photo-to-destination model agents."""

    def __init__(self, api_key: str, debug_dir: Path | str | None = None):
        self.api_key = api_key
        self.debug_dir = Path(debug_dir) if debug_dir else None

    @abstractmethod
    async def recommend(
        self,
        image: bytes,
        mime_type: str,
        preferences: UserPreferences,
        language: Language = Language.ENGLISH,
    ) -> ModelResponse:
        """
        Ask the model for destinations matching a photo.

        Args:
            image: Raw image bytes of the uploaded photo
            mime_type: Image MIME type (e.g., "image/jpeg")
            preferences: Budget, style, companions, origin and duration
            language: Language for generated content

        Returns:
            ModelResponse with the raw text and any citations
        """
        pass

    def save_debug_response(self, response: str, prefix: str = "recommendation") -> Path | None:
        """
        Save raw AI response for debugging.

        Args:
            response: The raw response string from the AI
            prefix: Prefix for the filename

        Returns:
            Path to the saved debug file, or None when debugging is off
        """
        if self.debug_dir is None:
            return None
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.debug_dir / f"{prefix}_{self.name.lower()}_{timestamp}.txt"
        filepath.write_text(response, encoding="utf-8")
        return filepath

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the display name of this agent."""
        pass

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Return the model ID being used."""
        pass
