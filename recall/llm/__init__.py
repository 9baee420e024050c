"""
Generation layer exports.

Backends, the orchestrator that routes between them, and the request and
response types they share.
"""

from recall.llm.schemas import (
    BackendCapabilities,
    BackendConfig,
    BackendDescriptor,
    BackendError,
    BackendExhaustedError,
    BackendHTTPError,
    BackendTimeoutError,
    BackendUnavailableError,
    GenerationRequest,
    GenerationResponse,
)
from recall.llm.orchestrator import BackendOrchestrator

__all__ = [
    "BackendCapabilities",
    "BackendConfig",
    "BackendDescriptor",
    "BackendError",
    "BackendExhaustedError",
    "BackendHTTPError",
    "BackendTimeoutError",
    "BackendUnavailableError",
    "GenerationRequest",
    "GenerationResponse",
    "BackendOrchestrator",
]
