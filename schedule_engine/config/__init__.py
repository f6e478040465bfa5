"""
Configuration package for the schedule engine.

Centralizes settings loaded from environment variables. Component-specific
settings live in `config/search.py` and `config/travel.py`.
"""

import os
import re

from .search import SearchConfig, search_config
from .travel import TravelConfig, travel_config


class Config:
    """Application configuration loaded from environment variables."""

    # Classifier backend: "rules" (deterministic) or "llm"
    CLASSIFIER_BACKEND: str = os.getenv("CLASSIFIER_BACKEND", "rules").strip().lower() or "rules"
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.0"))
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")

    # Travel cache backend: "memory" or "redis"
    TRAVEL_CACHE_BACKEND: str = os.getenv("TRAVEL_CACHE_BACKEND", "memory").strip().lower() or "memory"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "travel")

    @classmethod
    def get_config_dict(cls) -> dict:
        """Return configuration as dictionary (for debugging)."""
        return {
            "CLASSIFIER_BACKEND": cls.CLASSIFIER_BACKEND,
            "LLM_MODEL": cls.LLM_MODEL,
            "OPENAI_API_KEY": "***" if cls.OPENAI_API_KEY else "",
            "TRAVEL_CACHE_BACKEND": cls.TRAVEL_CACHE_BACKEND,
            "REDIS_URL": re.sub(r"//[^/@]*@", "//***@", cls.REDIS_URL),
            "SEARCH": search_config.get_config_dict(),
            "TRAVEL": travel_config.get_config_dict(),
        }


# Global configuration instance
config = Config()

__all__ = [
    "Config",
    "config",
    "SearchConfig",
    "search_config",
    "TravelConfig",
    "travel_config",
]
