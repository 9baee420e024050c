# FILE: recall/llm/backends/openrouter.py
"""
OpenRouter backend (cloud gateway, single key).

OpenAI-compatible chat completions. Streaming arrives as SSE:

    data: {"choices":[{"delta":{"content":"..."}}]}
    data: [DONE]
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

import httpx

from config.backend_models import (
    OPENROUTER_DEFAULT_MODEL,
    OPENROUTER_TIMEOUT_S,
    OPENROUTER_URL,
)
from recall.llm.backends.base import ChunkCallback, GenerationBackend, with_timeout
from recall.llm.schemas import (
    BackendCapabilities,
    BackendConfig,
    BackendHTTPError,
    BackendUnavailableError,
    GenerationRequest,
    GenerationResponse,
)

logger = logging.getLogger(__name__)

SSE_PREFIX = "data:"
SSE_DONE = "[DONE]"


class OpenRouterBackend(GenerationBackend):
    name = "openrouter"
    display_name = "OpenRouter"
    capabilities = BackendCapabilities(
        supports_model_selection=False,
        supports_streaming=True,
        requires_api_key=True,
    )

    def __init__(
        self,
        timeout_s: float = OPENROUTER_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__()
        self.timeout_s = timeout_s
        self._transport = transport
        self._api_key: Optional[str] = None
        self._model = OPENROUTER_DEFAULT_MODEL

    async def initialize(self, config: Optional[BackendConfig]) -> None:
        self._model = (config.openrouter_model if config else None) or OPENROUTER_DEFAULT_MODEL
        self._api_key = config.openrouter_api_key if config else None
        if not self._api_key:
            self._mark_unavailable("No API key")
            return
        self._mark_available()
        logger.info("[openrouter] ready with %s", self._model)

    def clear_secrets(self) -> None:
        self._api_key = None
        self._available = False

    def get_models(self) -> List[str]:
        return [self._model]

    def get_current_model(self) -> str:
        return self._model

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s),
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        )

    def _payload(self, request: GenerationRequest, stream: bool) -> dict:
        payload = {
            "model": self._model,
            "messages": [{"role": "user", "content": request.prompt}],
            "stream": stream,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens
        return payload

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_error:
            raise BackendHTTPError(
                f"OpenRouter error: {response.status_code} {response.reason_phrase}",
                response.status_code,
                response.reason_phrase,
            )

    def _ensure_ready(self) -> None:
        if not self._available or not self._api_key:
            raise BackendUnavailableError("OpenRouter not initialized")

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self._ensure_ready()

        model = self._model
        async with self._client() as client:
            response = await with_timeout(
                client.post(OPENROUTER_URL, json=self._payload(request, stream=False)),
                self.timeout_s,
                self.name,
                model,
            )
        self._raise_for_status(response)

        data = response.json()
        choices = data.get("choices") or [{}]
        text = (choices[0].get("message") or {}).get("content") or ""
        return GenerationResponse(text=text, model=data.get("model") or model)

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
    ) -> GenerationResponse:
        self._ensure_ready()

        model = self._model
        text = await with_timeout(
            self._consume_stream(request, on_chunk),
            self.timeout_s,
            self.name,
            model,
        )
        return GenerationResponse(text=text, model=model)

    async def _consume_stream(self, request: GenerationRequest, on_chunk: ChunkCallback) -> str:
        parts: List[str] = []
        async with self._client() as client:
            async with client.stream("POST", OPENROUTER_URL, json=self._payload(request, stream=True)) as response:
                if response.is_error:
                    await response.aread()
                    self._raise_for_status(response)

                async for line in response.aiter_lines():
                    line = line.strip()
                    # Comments (": OPENROUTER PROCESSING") and blank keep-alives
                    if not line.startswith(SSE_PREFIX):
                        continue
                    data = line[len(SSE_PREFIX):].strip()
                    if data == SSE_DONE:
                        break
                    try:
                        event = json.loads(data)
                        piece = event["choices"][0].get("delta", {}).get("content")
                    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
                        logger.debug("[openrouter] skipping malformed chunk")
                        continue
                    if piece:
                        parts.append(piece)
                        on_chunk(piece)

        return "".join(parts)


__all__ = ["OpenRouterBackend"]
