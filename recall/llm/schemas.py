# FILE: recall/llm/schemas.py
"""
Generation schemas: requests, responses, capability descriptors, config,
and the error taxonomy shared by every backend.

ERROR TAXONOMY:
- BackendUnavailableError: generate/stream called on a backend that never
  became available (missing key, daemon not running, ...)
- BackendTimeoutError: a single attempt exceeded its timeout
- BackendHTTPError: the remote answered with a non-2xx status
- BackendExhaustedError: a rotating backend tried every model and all failed

Configuration problems never raise out of initialize(); they are recorded on
the backend and surface through get_error().
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from pydantic import BaseModel


# =============================================================================
# REQUEST / RESPONSE
# =============================================================================

@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class GenerationResponse:
    text: str
    model: str


# =============================================================================
# CAPABILITIES
# =============================================================================

@dataclass(frozen=True)
class BackendCapabilities:
    """Static per-variant flags. Checked explicitly, never probed."""
    supports_model_selection: bool = False
    supports_streaming: bool = False
    requires_api_key: bool = False


@dataclass
class BackendDescriptor:
    name: str
    available: bool
    capabilities: BackendCapabilities
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# CONFIGURATION
# =============================================================================

class BackendConfig(BaseModel):
    """Settings and secrets handed to backends at initialize time."""
    provider: Optional[str] = None
    enable_fallback: bool = True

    gemini_api_key: Optional[str] = None
    gemini_model: Optional[str] = None

    openrouter_api_key: Optional[str] = None
    openrouter_model: Optional[str] = None

    ollama_base_url: Optional[str] = None
    ollama_model: Optional[str] = None


# =============================================================================
# ERRORS
# =============================================================================

class BackendError(Exception):
    """Base class for generation backend failures."""


class BackendUnavailableError(BackendError):
    pass


class BackendTimeoutError(BackendError):
    def __init__(self, backend: str, timeout_s: float, model: Optional[str] = None):
        self.backend = backend
        self.timeout_s = timeout_s
        self.model = model
        target = f"{backend}/{model}" if model else backend
        super().__init__(f"{target} timed out after {timeout_s:g}s")


class BackendHTTPError(BackendError):
    def __init__(self, message: str, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)


class BackendExhaustedError(BackendError):
    pass


__all__ = [
    "GenerationRequest",
    "GenerationResponse",
    "BackendCapabilities",
    "BackendDescriptor",
    "BackendConfig",
    "BackendError",
    "BackendUnavailableError",
    "BackendTimeoutError",
    "BackendHTTPError",
    "BackendExhaustedError",
]
