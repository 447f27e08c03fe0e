from .base import RecommendationAgent, build_recommendation_prompt
from .claude_agent import ClaudeAgent
from .gemini_agent import GeminiAgent
from .openai_agent import OpenAIAgent

__all__ = [
    "RecommendationAgent",
    "build_recommendation_prompt",
    "ClaudeAgent",
    "GeminiAgent",
    "OpenAIAgent",
]
