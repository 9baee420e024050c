"""
Tests for recall/llm/backends/gemini.py
Model rotation, timeouts and streaming with the SDK replaced by a fake.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import asyncio
from types import SimpleNamespace

import pytest

from config.backend_models import GEMINI_MODELS
from recall.llm.backends import gemini as gemini_module
from recall.llm.backends.gemini import GeminiBackend
from recall.llm.schemas import (
    BackendConfig,
    BackendExhaustedError,
    BackendUnavailableError,
    GenerationRequest,
)

REQUEST = GenerationRequest(prompt="what about alpha?")


class BlockedChunk:
    """SDK chunks raise ValueError on .text when a candidate was blocked."""

    @property
    def text(self):
        raise ValueError("no parts")


class FakeStream:
    def __init__(self, chunks):
        self._chunks = chunks

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk


class FakeModel:
    def __init__(self, name, script):
        self.name = name
        self.script = script
        self.calls = 0

    async def generate_content_async(self, prompt, generation_config=None, stream=False):
        self.calls += 1
        action = self.script.get(self.name, "ok")
        if isinstance(action, Exception):
            raise action
        if action == "hang":
            await asyncio.sleep(10)
        if stream:
            return FakeStream(self.script.get("chunks", []))
        return SimpleNamespace(text=f"{self.name} says hi")


class FakeGenai:
    def __init__(self, script=None):
        self.script = script or {}
        self.api_key = None
        self.models = {}

    def configure(self, api_key=None):
        self.api_key = api_key

    def GenerativeModel(self, name):
        model = FakeModel(name, self.script)
        self.models[name] = model
        return model


@pytest.fixture
def fake_genai(monkeypatch):
    fake = FakeGenai()
    monkeypatch.setattr(gemini_module, "genai", fake)
    return fake


async def _ready_backend(timeout_s=1.0, **config):
    backend = GeminiBackend(timeout_s=timeout_s)
    await backend.initialize(BackendConfig(gemini_api_key="test-key", **config))
    return backend


class TestInitialize:
    """Test availability rules."""

    @pytest.mark.asyncio
    async def test_missing_key(self, fake_genai):
        backend = GeminiBackend()
        await backend.initialize(BackendConfig())
        assert backend.is_available() is False
        assert backend.get_error() == "No API key"
        assert fake_genai.api_key is None

    @pytest.mark.asyncio
    async def test_no_config(self, fake_genai):
        backend = GeminiBackend()
        await backend.initialize(None)
        assert backend.is_available() is False

    @pytest.mark.asyncio
    async def test_ready(self, fake_genai):
        backend = await _ready_backend()
        assert backend.is_available() is True
        assert backend.get_error() is None
        assert fake_genai.api_key == "test-key"
        assert backend.get_models() == GEMINI_MODELS
        assert backend.get_current_model() == GEMINI_MODELS[0]

    @pytest.mark.asyncio
    async def test_configured_model_replaces_rotation(self, fake_genai):
        backend = await _ready_backend(gemini_model="gemini-2.5-pro")
        assert backend.get_models() == ["gemini-2.5-pro"]

    @pytest.mark.asyncio
    async def test_model_selection_unsupported(self, fake_genai):
        backend = await _ready_backend()
        assert backend.capabilities.supports_model_selection is False
        assert backend.set_model(GEMINI_MODELS[1]) is False
        assert backend.get_current_model() == GEMINI_MODELS[0]

    @pytest.mark.asyncio
    async def test_clear_secrets(self, fake_genai):
        backend = await _ready_backend()
        backend.clear_secrets()
        assert backend.is_available() is False
        with pytest.raises(BackendUnavailableError):
            await backend.generate(REQUEST)


class TestRotation:
    """Test per-call model rotation."""

    @pytest.mark.asyncio
    async def test_unavailable_raises(self, fake_genai):
        backend = GeminiBackend()
        await backend.initialize(BackendConfig())
        with pytest.raises(BackendUnavailableError, match="Gemini not initialized"):
            await backend.generate(REQUEST)

    @pytest.mark.asyncio
    async def test_first_model_answers(self, fake_genai):
        backend = await _ready_backend()
        response = await backend.generate(REQUEST)
        assert response.model == GEMINI_MODELS[0]
        assert response.text == f"{GEMINI_MODELS[0]} says hi"
        assert backend.get_current_model() == GEMINI_MODELS[0]

    @pytest.mark.asyncio
    async def test_failure_moves_to_next_model(self, fake_genai):
        fake_genai.script[GEMINI_MODELS[0]] = RuntimeError("429 quota")
        backend = await _ready_backend()

        response = await backend.generate(REQUEST)

        assert response.model == GEMINI_MODELS[1]
        assert backend.get_current_model() == GEMINI_MODELS[1]

    @pytest.mark.asyncio
    async def test_timeout_moves_to_next_model(self, fake_genai):
        fake_genai.script[GEMINI_MODELS[0]] = "hang"
        backend = await _ready_backend(timeout_s=0.05)

        response = await backend.generate(REQUEST)

        assert response.model == GEMINI_MODELS[1]
        assert backend.get_current_model() == GEMINI_MODELS[1]

    @pytest.mark.asyncio
    async def test_success_rotates_to_next_model(self, fake_genai):
        """Consecutive successful calls spread across models."""
        backend = await _ready_backend()

        first = await backend.generate(REQUEST)
        second = await backend.generate(REQUEST)

        assert first.model == GEMINI_MODELS[0]
        assert second.model == GEMINI_MODELS[1]
        # The hint only moves on failure
        assert backend.get_current_model() == GEMINI_MODELS[0]

    @pytest.mark.asyncio
    async def test_next_call_starts_after_last_success(self, fake_genai):
        fake_genai.script[GEMINI_MODELS[0]] = RuntimeError("429 quota")
        backend = await _ready_backend()

        await backend.generate(REQUEST)
        response = await backend.generate(REQUEST)

        assert response.model == GEMINI_MODELS[2]
        assert [fake_genai.models[n].calls for n in GEMINI_MODELS] == [1, 1, 1]
        assert backend.get_current_model() == GEMINI_MODELS[1]

    @pytest.mark.asyncio
    async def test_wraps_around(self, fake_genai):
        fake_genai.script[GEMINI_MODELS[1]] = RuntimeError("down")
        fake_genai.script[GEMINI_MODELS[2]] = RuntimeError("down")
        backend = await _ready_backend()
        backend._index = 1

        response = await backend.generate(REQUEST)

        assert response.model == GEMINI_MODELS[0]

    @pytest.mark.asyncio
    async def test_all_models_fail(self, fake_genai):
        for name in GEMINI_MODELS:
            fake_genai.script[name] = RuntimeError("down")
        backend = await _ready_backend()

        with pytest.raises(BackendExhaustedError, match="All Gemini models failed"):
            await backend.generate(REQUEST)

        # Each model tried exactly once
        assert [fake_genai.models[n].calls for n in GEMINI_MODELS] == [1, 1, 1]


class TestStreaming:
    """Test chunk forwarding."""

    @pytest.mark.asyncio
    async def test_chunks_forwarded_and_blocked_skipped(self, fake_genai):
        fake_genai.script["chunks"] = [
            SimpleNamespace(text="Alpha "),
            BlockedChunk(),
            SimpleNamespace(text=""),
            SimpleNamespace(text="shipped."),
        ]
        backend = await _ready_backend()
        chunks = []

        response = await backend.generate_stream(REQUEST, chunks.append)

        assert chunks == ["Alpha ", "shipped."]
        assert response.text == "Alpha shipped."
        assert response.model == GEMINI_MODELS[0]

    @pytest.mark.asyncio
    async def test_stream_failure_raises_and_advances(self, fake_genai):
        fake_genai.script[GEMINI_MODELS[0]] = RuntimeError("boom")
        backend = await _ready_backend()

        with pytest.raises(RuntimeError):
            await backend.generate_stream(REQUEST, lambda c: None)

        assert fake_genai.models[GEMINI_MODELS[1]].calls == 0
        assert backend.get_current_model() == GEMINI_MODELS[1]
