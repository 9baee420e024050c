# FILE: recall/llm/backends/ollama.py
"""
Ollama backend (local daemon, model discovery).

The endpoint must be a loopback host. Anything else is refused before any
network call.

Discovery (GET /api/tags) at initialize time picks the model:
  1. the configured model, matched exactly or as "<model>:<tag>"
  2. else the first installed model whose name contains "llama"
  3. else the first installed model
"""

from __future__ import annotations

import json
import logging
from ipaddress import ip_address
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

from config.backend_models import (
    OLLAMA_DEFAULT_BASE_URL,
    OLLAMA_DEFAULT_MODEL,
    OLLAMA_DISCOVERY_TIMEOUT_S,
    OLLAMA_TIMEOUT_S,
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

LOOPBACK_HOSTNAMES = {"localhost"}

ERR_NOT_LOCAL = "Ollama must run on localhost"
ERR_NOT_RESPONDING = "Server not responding"
ERR_NOT_RUNNING = "Not running. Start with: ollama serve"
ERR_NO_MODELS = "No models installed. Run: ollama pull llama3.2"


def is_loopback_url(url: str) -> bool:
    """True when the URL's host is localhost or a loopback IP literal."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    if host.lower() in LOOPBACK_HOSTNAMES:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _match_installed(wanted: str, installed: List[str]) -> Optional[str]:
    for name in installed:
        if name == wanted or name.startswith(wanted + ":"):
            return name
    return None


class OllamaBackend(GenerationBackend):
    name = "ollama"
    display_name = "Ollama"
    capabilities = BackendCapabilities(
        supports_model_selection=True,
        supports_streaming=True,
        requires_api_key=False,
    )

    def __init__(
        self,
        timeout_s: float = OLLAMA_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__()
        self.timeout_s = timeout_s
        self._transport = transport
        self._base_url = OLLAMA_DEFAULT_BASE_URL
        self._model = OLLAMA_DEFAULT_MODEL
        self._installed: List[str] = []

    def _client(self, timeout_s: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout_s),
            transport=self._transport,
        )

    async def initialize(self, config: Optional[BackendConfig]) -> None:
        self._installed = []
        self._base_url = ((config.ollama_base_url if config else None) or OLLAMA_DEFAULT_BASE_URL).rstrip("/")
        self._model = (config.ollama_model if config else None) or OLLAMA_DEFAULT_MODEL

        if not is_loopback_url(self._base_url):
            self._mark_unavailable(ERR_NOT_LOCAL)
            return

        try:
            async with self._client(OLLAMA_DISCOVERY_TIMEOUT_S) as client:
                response = await client.get("/api/tags")
        except httpx.HTTPError as exc:
            logger.debug("[ollama] discovery failed: %s", exc)
            self._mark_unavailable(ERR_NOT_RUNNING)
            return

        if response.is_error:
            self._mark_unavailable(ERR_NOT_RESPONDING)
            return

        try:
            payload = response.json()
        except ValueError:
            self._mark_unavailable(ERR_NOT_RESPONDING)
            return

        self._installed = [m["name"] for m in payload.get("models") or [] if m.get("name")]
        if not self._installed:
            self._mark_unavailable(ERR_NO_MODELS)
            return

        matched = _match_installed(self._model, self._installed)
        if matched is None:
            substitute = next((m for m in self._installed if "llama" in m.lower()), self._installed[0])
            logger.info("[ollama] model %s not installed, using %s", self._model, substitute)
            self._model = substitute
        else:
            self._model = matched

        self._mark_available()
        logger.info("[ollama] ready at %s with %s (%d installed)", self._base_url, self._model, len(self._installed))

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def get_models(self) -> List[str]:
        return list(self._installed)

    def get_current_model(self) -> str:
        return self._model

    def set_model(self, model: str) -> bool:
        if model in self._installed:
            self._model = model
            return True
        return False

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _payload(self, request: GenerationRequest, stream: bool) -> dict:
        payload = {"model": self._model, "prompt": request.prompt, "stream": stream}
        if request.max_tokens:
            payload["options"] = {"num_predict": request.max_tokens}
        return payload

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_error:
            raise BackendHTTPError(
                f"Ollama error: {response.status_code} {response.reason_phrase}",
                response.status_code,
                response.reason_phrase,
            )

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        if not self._available:
            raise BackendUnavailableError("Ollama not available")

        model = self._model
        async with self._client(self.timeout_s) as client:
            response = await with_timeout(
                client.post("/api/generate", json=self._payload(request, stream=False)),
                self.timeout_s,
                self.name,
                model,
            )
        self._raise_for_status(response)

        data = response.json()
        return GenerationResponse(text=data.get("response") or "", model=model)

    async def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
    ) -> GenerationResponse:
        if not self._available:
            raise BackendUnavailableError("Ollama not available")

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
        async with self._client(self.timeout_s) as client:
            async with client.stream("POST", "/api/generate", json=self._payload(request, stream=True)) as response:
                if response.is_error:
                    await response.aread()
                    self._raise_for_status(response)

                # NDJSON: one object per line
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except ValueError:
                        logger.debug("[ollama] skipping malformed line")
                        continue
                    piece = data.get("response") if isinstance(data, dict) else None
                    if piece:
                        parts.append(piece)
                        on_chunk(piece)
                    if isinstance(data, dict) and data.get("done"):
                        break

        return "".join(parts)


__all__ = ["OllamaBackend", "is_loopback_url"]
