"""
Generation backends, keyed by name in fallback priority order.
"""

from typing import Callable, Dict

from config.backend_models import BACKEND_ORDER
from recall.llm.backends.base import ChunkCallback, GenerationBackend
from recall.llm.backends.gemini import GeminiBackend
from recall.llm.backends.ollama import OllamaBackend
from recall.llm.backends.openrouter import OpenRouterBackend

BackendFactory = Callable[[], GenerationBackend]

_BACKEND_CLASSES: Dict[str, BackendFactory] = {
    "gemini": GeminiBackend,
    "openrouter": OpenRouterBackend,
    "ollama": OllamaBackend,
}

# Insertion order is fallback priority
DEFAULT_BACKEND_FACTORIES: Dict[str, BackendFactory] = {
    name: _BACKEND_CLASSES[name] for name in BACKEND_ORDER
}

__all__ = [
    "BackendFactory",
    "ChunkCallback",
    "GenerationBackend",
    "GeminiBackend",
    "OllamaBackend",
    "OpenRouterBackend",
    "DEFAULT_BACKEND_FACTORIES",
]
