import logging

from google import genai
from google.genai import types

from vistamatch.models import GroundingLink, Language, ModelResponse, UserPreferences
from .base import RecommendationAgent, build_recommendation_prompt

logger = logging.getLogger(__name__)


def extract_grounding_links(response: types.GenerateContentResponse) -> list[GroundingLink]:
    """Collect web and maps citations from the first candidate."""
    links: list[GroundingLink] = []
    if not response.candidates:
        return links

    metadata = response.candidates[0].grounding_metadata
    if not metadata or not metadata.grounding_chunks:
        return links

    for chunk in metadata.grounding_chunks:
        if chunk.web and chunk.web.uri:
            links.append(GroundingLink(title=chunk.web.title or "Source", uri=chunk.web.uri))
        maps = getattr(chunk, "maps", None)
        if maps and maps.uri:
            links.append(GroundingLink(title=maps.title or "Google Maps", uri=maps.uri))
    return links


class GeminiAgent(RecommendationAgent):
    """Google Gemini agent, grounded with search and maps tools."""

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", debug_dir=None):
        super().__init__(api_key, debug_dir)
        self.client = genai.Client(api_key=api_key)
        self._model_id = model

    @property
    def name(self) -> str:
        return "Gemini"

    @property
    def model_id(self) -> str:
        return self._model_id

    async def recommend(
        self,
        image: bytes,
        mime_type: str,
        preferences: UserPreferences,
        language: Language = Language.ENGLISH,
    ) -> ModelResponse:
        prompt = build_recommendation_prompt(preferences, language)

        response = await self.client.aio.models.generate_content(
            model=self._model_id,
            contents=[
                types.Part.from_bytes(data=image, mime_type=mime_type),
                prompt,
            ],
            config=types.GenerateContentConfig(
                tools=[
                    types.Tool(google_search=types.GoogleSearch()),
                    types.Tool(google_maps=types.GoogleMaps()),
                ],
            ),
        )

        text = response.text or ""
        debug_path = self.save_debug_response(text)
        if debug_path:
            logger.debug("Debug response saved to: %s", debug_path)

        return ModelResponse(text=text, grounding_links=extract_grounding_links(response))
