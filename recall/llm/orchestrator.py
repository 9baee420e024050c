# FILE: recall/llm/orchestrator.py
"""
Backend Orchestrator

Owns every generation backend, the single active one, and the fallback chain.

FALLBACK CHAIN (fallback enabled):
    [active] + [every other registered backend, in registration order]

Candidates are tried strictly one after another. Backends other than the
active one are constructed and initialized lazily, the first time the chain
reaches them. Failures are recorded in the telemetry ledger; the caller only
ever sees a response or None.

Streaming never falls back across backends.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Set

from config.backend_models import DEFAULT_BACKEND
from recall.llm.backends import DEFAULT_BACKEND_FACTORIES, BackendFactory
from recall.llm.backends.base import ChunkCallback, GenerationBackend
from recall.llm.schemas import (
    BackendConfig,
    BackendDescriptor,
    GenerationRequest,
    GenerationResponse,
)
from recall.metrics.ledger import TelemetryLedger

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class BackendOrchestrator:
    def __init__(
        self,
        telemetry: Optional[TelemetryLedger] = None,
        factories: Optional[Dict[str, BackendFactory]] = None,
        default_backend: str = DEFAULT_BACKEND,
    ) -> None:
        self.telemetry = telemetry if telemetry is not None else TelemetryLedger()
        self._factories: Dict[str, BackendFactory] = dict(factories or DEFAULT_BACKEND_FACTORIES)
        self._default_backend = default_backend
        self._backends: Dict[str, GenerationBackend] = {}
        self._initialized: Set[str] = set()
        self._active: Optional[GenerationBackend] = None
        self._fallback_enabled = True
        self._config: Optional[BackendConfig] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, config: Optional[BackendConfig] = None) -> None:
        """(Re)build backend state from config. Safe to call repeatedly."""
        for backend in self._backends.values():
            backend.clear_secrets()

        self._backends = {}
        self._initialized = set()
        self._active = None
        self._config = config
        self._fallback_enabled = config.enable_fallback if config else True

        requested = (config.provider if config and config.provider else None) or self._default_backend

        backend = await self._ensure_backend(requested)
        if backend is not None and backend.is_available():
            self._active = backend
        else:
            logger.info("[orchestrator] requested backend %s unavailable, trying others", requested)
            for name in self._factories:
                if name == requested:
                    continue
                candidate = await self._ensure_backend(name)
                if candidate is not None and candidate.is_available():
                    self._active = candidate
                    break

        active_name = self._active.name if self._active else None
        self.telemetry.set_current_provider(active_name)
        if active_name:
            logger.info("[orchestrator] active backend: %s (fallback=%s)", active_name, self._fallback_enabled)
        else:
            logger.warning("[orchestrator] no generation backend available")

    async def _ensure_backend(self, name: str) -> Optional[GenerationBackend]:
        """Construct and initialize a backend on first use."""
        if name in self._initialized:
            return self._backends.get(name)

        factory = self._factories.get(name)
        if factory is None:
            logger.warning("[orchestrator] unknown backend: %s", name)
            return None

        backend = factory()
        self._backends[name] = backend
        try:
            await backend.initialize(self._config)
        except Exception:
            # initialize() must not raise; treat a violation as unavailable
            logger.exception("[orchestrator] %s initialize raised", name)
        self._initialized.add(name)
        return backend

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _candidate_names(self, active: GenerationBackend) -> List[str]:
        names = [active.name]
        if self._fallback_enabled:
            names.extend(n for n in self._factories if n != active.name)
        return names

    async def generate(self, request: GenerationRequest) -> Optional[GenerationResponse]:
        active = self._active
        if active is None:
            logger.info("[orchestrator] generate skipped: no active backend")
            return None

        for name in self._candidate_names(active):
            backend = await self._ensure_backend(name)
            if backend is None or not backend.is_available():
                continue

            started = time.perf_counter()
            try:
                response = await backend.generate(request)
            except Exception as exc:
                self.telemetry.record_error(name, str(exc))
                logger.warning("[orchestrator] %s failed: %s", name, exc)
                if not self._fallback_enabled:
                    return None
                continue

            self.telemetry.record_request(name, _elapsed_ms(started))
            return response

        logger.error("[orchestrator] all backends failed")
        return None

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
    ) -> Optional[GenerationResponse]:
        active = self._active
        if active is None or not active.capabilities.supports_streaming:
            return await self.generate(request)

        started = time.perf_counter()
        try:
            response = await active.generate_stream(request, on_chunk)
        except Exception as exc:
            self.telemetry.record_error(active.name, str(exc))
            logger.error("[orchestrator] %s stream failed: %s", active.name, exc)
            return None

        self.telemetry.record_request(active.name, _elapsed_ms(started))
        return response

    # ------------------------------------------------------------------
    # Provider selection
    # ------------------------------------------------------------------

    async def set_provider(self, name: str) -> bool:
        """Switch the active backend. Registered backends not yet reached are
        initialized here first."""
        if name not in self._factories:
            return False
        backend = await self._ensure_backend(name)
        if backend is None or not backend.is_available():
            return False
        self._active = backend
        self.telemetry.set_current_provider(name)
        logger.info("[orchestrator] switched to %s", name)
        return True

    async def get_providers(self) -> List[BackendDescriptor]:
        descriptors: List[BackendDescriptor] = []
        for name in self._factories:
            backend = await self._ensure_backend(name)
            if backend is not None:
                descriptors.append(backend.describe())
        return descriptors

    def get_current_provider(self) -> Optional[str]:
        return self._active.name if self._active else None

    def display_name(self) -> Optional[str]:
        return self._active.display_name if self._active else None

    def is_available(self) -> bool:
        return self._active is not None and self._active.is_available()

    # ------------------------------------------------------------------
    # Model selection (active backend only)
    # ------------------------------------------------------------------

    def get_models(self) -> List[str]:
        if self._active is None or not self._active.capabilities.supports_model_selection:
            return []
        return self._active.get_models()

    def get_current_model(self) -> Optional[str]:
        return self._active.get_current_model() if self._active else None

    def set_model(self, model: str) -> bool:
        if self._active is None or not self._active.capabilities.supports_model_selection:
            return False
        return self._active.set_model(model)


__all__ = ["BackendOrchestrator"]
