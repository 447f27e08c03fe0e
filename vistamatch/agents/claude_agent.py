import base64
import logging

import anthropic

from vistamatch.models import Language, ModelResponse, UserPreferences
from .base import RecommendationAgent, build_recommendation_prompt

logger = logging.getLogger(__name__)


class ClaudeAgent(RecommendationAgent):
    """Claude vision agent. Claude returns no grounding citations."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5", debug_dir=None):
        super().__init__(api_key, debug_dir)
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model

    @property
    def name(self) -> str:
        return "Claude"

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

        response = await self.client.messages.create(
            model=self.model,
            max_tokens=8192,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": mime_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        )

        text = "".join(block.text for block in response.content if block.type == "text")
        debug_path = self.save_debug_response(text)
        if debug_path:
            logger.debug("Debug response saved to: %s", debug_path)

        return ModelResponse(text=text)
