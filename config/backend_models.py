"""Generation backend table - single source of truth.

Model candidates, endpoints and per-attempt timeouts for every generation
backend. Not env-tunable.

Backends (registration order is fallback priority; display names live on
the backend classes):
  - gemini (cloud, rotating across several flash models)
  - openrouter (cloud gateway, one key, one model)
  - ollama (local daemon, model discovered at startup)
"""

from __future__ import annotations

from typing import List, Tuple

# =============================================================================
# Registration Order
# =============================================================================

BACKEND_ORDER: Tuple[str, ...] = ("gemini", "openrouter", "ollama")

DEFAULT_BACKEND = "gemini"

# =============================================================================
# Gemini
# =============================================================================

# Tried in this order, wrapping around from the current rotation index
GEMINI_MODELS: List[str] = [
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
]

GEMINI_TIMEOUT_S = 60.0

# =============================================================================
# OpenRouter
# =============================================================================

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_DEFAULT_MODEL = "deepseek/deepseek-r1-0528:free"
OPENROUTER_TIMEOUT_S = 60.0

# =============================================================================
# Ollama
# =============================================================================

OLLAMA_DEFAULT_BASE_URL = "http://localhost:11434"
OLLAMA_DEFAULT_MODEL = "llama3.1"

# Local models are slow on first load
OLLAMA_TIMEOUT_S = 120.0
OLLAMA_DISCOVERY_TIMEOUT_S = 5.0


__all__ = [
    "BACKEND_ORDER",
    "DEFAULT_BACKEND",
    "GEMINI_MODELS",
    "GEMINI_TIMEOUT_S",
    "OPENROUTER_URL",
    "OPENROUTER_DEFAULT_MODEL",
    "OPENROUTER_TIMEOUT_S",
    "OLLAMA_DEFAULT_BASE_URL",
    "OLLAMA_DEFAULT_MODEL",
    "OLLAMA_TIMEOUT_S",
    "OLLAMA_DISCOVERY_TIMEOUT_S",
]
