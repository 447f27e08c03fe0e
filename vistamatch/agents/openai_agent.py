import base64
import logging

from openai import AsyncOpenAI

from vistamatch.models import Language, ModelResponse, UserPreferences
from .base import RecommendationAgent, build_recommendation_prompt

logger = logging.getLogger(__name__)


class OpenAIAgent(RecommendationAgent):
    """OpenAI vision agent. No grounding citations are returned."""

    def __init__(self, api_key: str, model: str = "gpt-4.1", debug_dir=None):
        super().__init__(api_key, debug_dir)
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    @property
    def name(self) -> str:
        return "OpenAI"

    @property
    def model_id(self) -> str:
        return self.model

    async def recommend(
        self,
        image: bytes,
        mime_type: str,
        preferences: UserPreferences,
        language: Language = Language.ENGLISH,
    ) -> ModelResponse:
        prompt = build_recommendation_prompt(preferences, language)
        data_url = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": data_url}},
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        )

        text = response.choices[0].message.content or ""
        debug_path = self.save_debug_response(text)
        if debug_path:
            logger.debug("Debug response saved to: %s", debug_path)

        return ModelResponse(text=text)
