"""Configuration utilities for environment-based setup."""

import logging
import os

from dotenv import load_dotenv

from typed_llm_client.agents.litellm_backend import LiteLLMBackend
from typed_llm_client.exceptions import ConfigurationException

logger = logging.getLogger(__name__)

_PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def load_environment() -> None:
    """Load environment variables from .env file if it exists."""
    load_dotenv()


def _infer_api_key(model: str) -> str | None:
    model_lower = model.lower()
    if model_lower.startswith(("gpt", "openai/")):
        return os.getenv(_PROVIDER_KEYS["openai"])
    if model_lower.startswith(("claude", "anthropic/")):
        return os.getenv(_PROVIDER_KEYS["anthropic"])
    return None


def create_litellm_backend(
    model: str,
    api_key: str | None = None,
    max_tokens: int = 1000,
) -> LiteLLMBackend:
    """Create a LiteLLM backend with environment-based configuration.

    Args:
        model: Model name (e.g., 'gpt-4o-mini', 'claude-3-haiku-20240307')
        api_key: API key (if None, tries to infer from model and environment)
        max_tokens: Maximum tokens for response

    Returns:
        Configured LiteLLMBackend

    Raises:
        ConfigurationException: If no API key is found and cannot be inferred
    """
    load_environment()

    if api_key is None:
        api_key = _infer_api_key(model)

    if api_key is None:
        raise ConfigurationException(
            f"API key not found for model '{model}'. Set appropriate environment "
            "variable or pass api_key parameter.",
            config_key="api_key",
            config_value=model,
        )

    logger.debug("Creating LiteLLM backend for %s", model)
    return LiteLLMBackend(model=model, api_key=api_key, max_tokens=max_tokens)


def get_available_providers() -> dict[str, bool]:
    """Check which providers have API keys available.

    Returns:
        Dictionary mapping provider names to availability status
    """
    load_environment()

    return {
        provider: os.getenv(env_var) is not None
        for provider, env_var in _PROVIDER_KEYS.items()
    }


def get_default_models() -> dict[str, str]:
    """Get default models for each provider.

    Returns:
        Dictionary mapping provider names to default model names
    """
    return {
        "openai": "gpt-4o-mini",
        "anthropic": "claude-3-haiku-20240307",
    }
