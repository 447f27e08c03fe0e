"""Settings, API key lookup and logging setup."""

import logging
import os
from pathlib import Path
from typing import Literal

import keyring
from keyring.errors import KeyringError
from dotenv import load_dotenv
from pydantic import BaseModel

from vistamatch.models import Language

load_dotenv()

# Keyring service name for storing API keys
KEYRING_SERVICE = "vistamatch"

PROVIDERS = ["Gemini", "Claude", "OpenAI"]

# Mapping of providers to keyring key names
KEYRING_KEYS = {
    "Gemini": "google_api_key",
    "Claude": "anthropic_api_key",
    "OpenAI": "openai_api_key",
}

# Mapping of providers to environment variable names
ENV_VAR_KEYS = {
    "Gemini": "GOOGLE_API_KEY",
    "Claude": "ANTHROPIC_API_KEY",
    "OpenAI": "OPENAI_API_KEY",
}

PROVIDER_MODELS = {
    "Gemini": [
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-2.5-pro",
    ],
    "Claude": [
        "claude-sonnet-4-5",
        "claude-opus-4-5",
        "claude-haiku-4-5",
    ],
    "OpenAI": [
        "gpt-4.1",
        "gpt-4o",
        "gpt-4o-mini",
    ],
}

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Runtime settings, read from VISTAMATCH_* environment variables."""

    provider: Literal["Gemini", "Claude", "OpenAI"] = "Gemini"
    model: str | None = None
    image_timeout: float = 10.0
    user_agent: str = "VistaMatch/0.1 (travel recommendations)"
    default_language: Language = Language.ENGLISH
    debug: bool = False
    debug_dir: Path = Path("debug")
    log_level: str = "INFO"

    @property
    def model_id(self) -> str:
        """Return the configured model, or the provider's default."""
        return self.model_for(self.provider)

    def model_for(self, provider: str) -> str:
        """Model to preselect for a provider; the configured one only applies to its own provider."""
        if provider == self.provider and self.model:
            return self.model
        return PROVIDER_MODELS[provider][0]

    def model_choices(self, provider: str) -> list[str]:
        """Known models for a provider, led by a configured model the list lacks."""
        models = PROVIDER_MODELS[provider]
        preferred = self.model_for(provider)
        if preferred not in models:
            return [preferred, *models]
        return list(models)


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, with explicit overrides on top."""
    values = {}
    for field_name in Settings.model_fields:
        env_value = os.getenv(f"VISTAMATCH_{field_name.upper()}")
        if env_value is not None:
            values[field_name] = env_value
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Settings.model_validate(values)


def setup_logging(level: str = "INFO") -> None:
    """Configure a single stream handler on the root logger."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_api_key(provider: str, local_mode: bool = True, secrets=None) -> str:
    """Get API key based on deployment mode.

    Local mode: Load from keyring, fall back to environment variables.
    Remote mode: Load from the given secrets mapping (Streamlit secrets),
                 fall back to environment variables.
    """
    env_var = ENV_VAR_KEYS.get(provider, "")

    if not local_mode:
        if secrets is not None:
            try:
                if env_var in secrets:
                    return secrets[env_var]
            except Exception as e:
                logger.debug("Secrets unavailable: %s", e)
        return os.getenv(env_var, "")

    key_name = KEYRING_KEYS.get(provider, "")

    # Try keyring first
    try:
        key = keyring.get_password(KEYRING_SERVICE, key_name)
        if key:
            return key
    except KeyringError as e:
        logger.debug("Keyring lookup failed for %s: %s", provider, e)

    # Fall back to environment variables
    return os.getenv(env_var, "")


def save_api_key(provider: str, api_key: str) -> bool:
    """Save API key to the OS keyring."""
    key_name = KEYRING_KEYS.get(provider, "")
    if not api_key or not key_name:
        return False

    try:
        keyring.set_password(KEYRING_SERVICE, key_name, api_key)
        return True
    except KeyringError as e:
        logger.warning("Could not save %s key to keyring: %s", provider, e)
        return False


def delete_api_key(provider: str) -> bool:
    """Delete API key from the OS keyring."""
    key_name = KEYRING_KEYS.get(provider, "")
    if not key_name:
        return False

    try:
        keyring.delete_password(KEYRING_SERVICE, key_name)
        return True
    except KeyringError as e:
        logger.warning("Could not delete %s key from keyring: %s", provider, e)
        return False


def auto_detect_provider(local_mode: bool = True, secrets=None) -> str | None:
    """Auto-detect first available provider with an API key."""
    for provider in PROVIDERS:
        if get_api_key(provider, local_mode, secrets):
            return provider
    return None
