"""Utility functions for JSON repair and configuration."""

from .config import (
    create_litellm_backend,
    get_available_providers,
    get_default_models,
    load_environment,
)
from .json_repair import repair

__all__ = [
    "load_environment",
    "create_litellm_backend",
    "get_available_providers",
    "get_default_models",
    "repair",
]
