# FILE: recall/llm/backends/gemini.py
"""
Gemini backend (cloud, rotating).

Holds one GenerativeModel per candidate in config.backend_models.GEMINI_MODELS
(or just the configured model). A generate() call starts at the current
rotation index and tries each model at most once:

    2.5-flash -> 2.0-flash -> 2.0-flash-lite -> (wrap)

A success moves the rotation index past the model that answered, so
consecutive calls spread across the quota of every model. A failed or
timed-out attempt moves the current-model hint to the next model instead.
Streaming uses the current-model hint only.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import google.generativeai as genai

from config.backend_models import GEMINI_MODELS, GEMINI_TIMEOUT_S
from recall.llm.backends.base import ChunkCallback, GenerationBackend, with_timeout
from recall.llm.schemas import (
    BackendCapabilities,
    BackendConfig,
    BackendExhaustedError,
    BackendUnavailableError,
    GenerationRequest,
    GenerationResponse,
)

logger = logging.getLogger(__name__)


class GeminiBackend(GenerationBackend):
    name = "gemini"
    display_name = "Gemini"
    capabilities = BackendCapabilities(
        supports_model_selection=False,
        supports_streaming=True,
        requires_api_key=True,
    )

    def __init__(self, timeout_s: float = GEMINI_TIMEOUT_S) -> None:
        super().__init__()
        self.timeout_s = timeout_s
        self._api_key: Optional[str] = None
        self._model_names: List[str] = list(GEMINI_MODELS)
        self._models: list = []
        self._index = 0
        self._current = 0

    async def initialize(self, config: Optional[BackendConfig]) -> None:
        self._models = []
        self._index = 0
        self._current = 0

        api_key = config.gemini_api_key if config else None
        if not api_key:
            self._mark_unavailable("No API key")
            return

        self._model_names = [config.gemini_model] if config.gemini_model else list(GEMINI_MODELS)

        try:
            genai.configure(api_key=api_key)
            self._models = [genai.GenerativeModel(name) for name in self._model_names]
        except Exception as exc:
            self._models = []
            self._mark_unavailable(f"Failed to configure Gemini: {exc}")
            return

        self._api_key = api_key
        self._mark_available()
        logger.info("[gemini] ready with %d model(s): %s", len(self._models), ", ".join(self._model_names))

    def clear_secrets(self) -> None:
        self._api_key = None
        self._models = []
        self._available = False

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def get_models(self) -> List[str]:
        return list(self._model_names)

    def get_current_model(self) -> str:
        return self._model_names[self._current % len(self._model_names)]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _ensure_ready(self) -> None:
        if not self._available or not self._models:
            raise BackendUnavailableError("Gemini not initialized")

    @staticmethod
    def _generation_config(request: GenerationRequest) -> Optional[dict]:
        if request.max_tokens:
            return {"max_output_tokens": request.max_tokens}
        return None

    def _next(self, index: int) -> int:
        return (index + 1) % len(self._models)

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self._ensure_ready()

        count = len(self._models)
        start = self._index
        failures: List[str] = []

        for offset in range(count):
            idx = (start + offset) % count
            model_name = self._model_names[idx]
            try:
                response = await with_timeout(
                    self._models[idx].generate_content_async(
                        request.prompt,
                        generation_config=self._generation_config(request),
                    ),
                    self.timeout_s,
                    self.name,
                    model_name,
                )
                text = response.text
            except Exception as exc:
                failures.append(f"{model_name}: {exc}")
                self._current = self._next(idx)
                logger.warning(
                    "[gemini] %s failed, next model %s: %s",
                    model_name,
                    self.get_current_model(),
                    exc,
                )
                continue

            self._index = self._next(idx)
            return GenerationResponse(text=text or "", model=model_name)

        raise BackendExhaustedError("All Gemini models failed: " + "; ".join(failures))

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
    ) -> GenerationResponse:
        self._ensure_ready()

        idx = self._current % len(self._models)
        model_name = self._model_names[idx]
        try:
            text = await with_timeout(
                self._consume_stream(self._models[idx], request, on_chunk),
                self.timeout_s,
                self.name,
                model_name,
            )
        except Exception:
            self._current = self._next(idx)
            raise

        return GenerationResponse(text=text, model=model_name)

    async def _consume_stream(self, model, request: GenerationRequest, on_chunk: ChunkCallback) -> str:
        response = await model.generate_content_async(
            request.prompt,
            generation_config=self._generation_config(request),
            stream=True,
        )

        parts: List[str] = []
        async for chunk in response:
            try:
                piece = chunk.text
            except (ValueError, AttributeError):
                # Safety-blocked or empty candidate
                logger.debug("[gemini] skipping chunk without text")
                continue
            if not piece:
                continue
            parts.append(piece)
            on_chunk(piece)

        return "".join(parts)


__all__ = ["GeminiBackend"]
