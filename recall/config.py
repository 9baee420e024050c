# FILE: recall/config.py
"""
Environment-driven settings.

`load_dotenv()` runs in main.py before this module is imported, so every
value here can come from a local .env file. Static backend tables (models,
endpoints, timeouts) live in config/backend_models.py instead.
"""

from __future__ import annotations

import os

from config.backend_models import DEFAULT_BACKEND
from recall.llm.schemas import BackendConfig

# =============================================================================
# CONFIGURATION
# =============================================================================

DATABASE_URL = os.getenv("RECALL_DATABASE_URL", "sqlite:///./data/recall_cache.db")
LOG_LEVEL = os.getenv("RECALL_LOG_LEVEL", "INFO")
LLM_PROVIDER = os.getenv("RECALL_LLM_PROVIDER", DEFAULT_BACKEND)
FALLBACK_ENABLED = os.getenv("RECALL_LLM_FALLBACK", "1") == "1"


def _env(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def load_backend_config() -> BackendConfig:
    """Build the backend configuration from the current environment."""
    return BackendConfig(
        provider=os.getenv("RECALL_LLM_PROVIDER", LLM_PROVIDER),
        enable_fallback=os.getenv("RECALL_LLM_FALLBACK", "1" if FALLBACK_ENABLED else "0") == "1",
        gemini_api_key=_env("GEMINI_API_KEY"),
        gemini_model=_env("GEMINI_MODEL"),
        openrouter_api_key=_env("OPENROUTER_API_KEY"),
        openrouter_model=_env("OPENROUTER_MODEL"),
        ollama_base_url=_env("OLLAMA_BASE_URL"),
        ollama_model=_env("OLLAMA_MODEL"),
    )


__all__ = [
    "DATABASE_URL",
    "LOG_LEVEL",
    "LLM_PROVIDER",
    "FALLBACK_ENABLED",
    "load_backend_config",
]
