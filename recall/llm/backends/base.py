# FILE: recall/llm/backends/base.py
"""
Generation backend contract.

Every backend:
- never raises from initialize(); missing credentials or an unreachable
  service leave it unavailable with an explanatory get_error() string
- raises BackendUnavailableError from generate()/generate_stream() when
  unavailable
- declares static capabilities; callers branch on them explicitly
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, TypeVar

from recall.llm.schemas import (
    BackendCapabilities,
    BackendConfig,
    BackendDescriptor,
    BackendTimeoutError,
    GenerationRequest,
    GenerationResponse,
)

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str], None]

T = TypeVar("T")


class GenerationBackend(ABC):
    name: str = ""
    display_name: str = ""
    capabilities: BackendCapabilities = BackendCapabilities()

    def __init__(self) -> None:
        self._available = False
        self._error: Optional[str] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def initialize(self, config: Optional[BackendConfig]) -> None:
        ...

    def is_available(self) -> bool:
        return self._available

    def get_error(self) -> Optional[str]:
        return self._error

    def clear_secrets(self) -> None:
        """Drop any credentials held in memory. Default: nothing to drop."""

    def _mark_unavailable(self, error: str) -> None:
        self._available = False
        self._error = error
        logger.info("[%s] unavailable: %s", self.name, error)

    def _mark_available(self) -> None:
        self._available = True
        self._error = None

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    @abstractmethod
    def get_models(self) -> List[str]:
        ...

    @abstractmethod
    def get_current_model(self) -> str:
        ...

    def set_model(self, model: str) -> bool:
        return False

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        ...

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
    ) -> GenerationResponse:
        raise NotImplementedError(f"{self.name} does not support streaming")

    def describe(self) -> BackendDescriptor:
        return BackendDescriptor(
            name=self.name,
            available=self.is_available(),
            capabilities=self.capabilities,
            error=self.get_error(),
        )


async def with_timeout(
    awaitable: Awaitable[T],
    timeout_s: float,
    backend: str,
    model: Optional[str] = None,
) -> T:
    """Await with a per-attempt deadline, raising BackendTimeoutError on expiry."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        raise BackendTimeoutError(backend, timeout_s, model) from exc


__all__ = ["ChunkCallback", "GenerationBackend", "with_timeout"]
