"""
Tests for recall/llm/orchestrator.py
Active backend selection, lazy initialization, fallback and streaming.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from fakes import FakeBackend, FakeRegistry
from recall.llm.orchestrator import BackendOrchestrator
from recall.llm.schemas import BackendConfig, GenerationRequest
from recall.metrics.ledger import TelemetryLedger

REQUEST = GenerationRequest(prompt="hello")


def _orchestrator(*backends):
    registry = FakeRegistry(*backends)
    ledger = TelemetryLedger()
    return BackendOrchestrator(telemetry=ledger, factories=registry.factories()), registry, ledger


class TestInitialize:
    """Test active backend selection."""

    @pytest.mark.asyncio
    async def test_default_backend_becomes_active(self):
        orch, registry, ledger = _orchestrator(FakeBackend("gemini"), FakeBackend("openrouter"))
        await orch.initialize(BackendConfig())

        assert orch.get_current_provider() == "gemini"
        assert orch.is_available() is True
        assert ledger.get_snapshot().current_provider == "gemini"

    @pytest.mark.asyncio
    async def test_other_backends_not_constructed(self):
        orch, registry, _ = _orchestrator(
            FakeBackend("gemini"), FakeBackend("openrouter"), FakeBackend("ollama"),
        )
        await orch.initialize(BackendConfig())
        assert registry.constructed == ["gemini"]

    @pytest.mark.asyncio
    async def test_requested_backend(self):
        orch, registry, _ = _orchestrator(FakeBackend("gemini"), FakeBackend("ollama"))
        await orch.initialize(BackendConfig(provider="ollama"))
        assert orch.get_current_provider() == "ollama"
        assert registry.constructed == ["ollama"]

    @pytest.mark.asyncio
    async def test_unavailable_request_walks_registration_order(self):
        orch, registry, _ = _orchestrator(
            FakeBackend("gemini", available=False),
            FakeBackend("openrouter", available=False),
            FakeBackend("ollama"),
        )
        await orch.initialize(BackendConfig())
        assert orch.get_current_provider() == "ollama"
        assert registry.constructed == ["gemini", "openrouter", "ollama"]

    @pytest.mark.asyncio
    async def test_unknown_request_falls_back(self):
        orch, _, _ = _orchestrator(FakeBackend("gemini"))
        await orch.initialize(BackendConfig(provider="nonexistent"))
        assert orch.get_current_provider() == "gemini"

    @pytest.mark.asyncio
    async def test_nothing_available(self):
        orch, _, ledger = _orchestrator(
            FakeBackend("gemini", available=False), FakeBackend("ollama", available=False),
        )
        await orch.initialize(BackendConfig())
        assert orch.get_current_provider() is None
        assert orch.is_available() is False
        assert ledger.get_snapshot().current_provider is None

    @pytest.mark.asyncio
    async def test_reinitialize_clears_secrets(self):
        gemini = FakeBackend("gemini")
        orch, _, _ = _orchestrator(gemini)
        await orch.initialize(BackendConfig())
        await orch.initialize(BackendConfig())
        assert gemini.cleared == 1
        assert gemini.init_calls == 2


class TestGenerate:
    """Test the fallback chain."""

    @pytest.mark.asyncio
    async def test_no_active_backend_returns_none(self):
        gemini = FakeBackend("gemini", available=False)
        orch, _, _ = _orchestrator(gemini)
        await orch.initialize(BackendConfig())
        assert await orch.generate(REQUEST) is None
        assert gemini.prompts == []

    @pytest.mark.asyncio
    async def test_success_records_latency(self):
        orch, _, ledger = _orchestrator(FakeBackend("gemini", reply="hi"))
        await orch.initialize(BackendConfig())

        response = await orch.generate(REQUEST)

        assert response.text == "hi"
        stats = ledger.get_snapshot().providers["gemini"]
        assert stats.requests == 1
        assert stats.errors == 0

    @pytest.mark.asyncio
    async def test_primary_failure_falls_back(self):
        orch, _, ledger = _orchestrator(
            FakeBackend("gemini", fail=RuntimeError("quota")),
            FakeBackend("openrouter", reply="from openrouter"),
        )
        await orch.initialize(BackendConfig())

        response = await orch.generate(REQUEST)

        assert response.text == "from openrouter"
        providers = ledger.get_snapshot().providers
        assert providers["gemini"].errors == 1
        assert providers["gemini"].requests == 0
        assert providers["gemini"].last_error == "quota"
        assert providers["openrouter"].requests == 1
        assert providers["openrouter"].errors == 0
        # Fallback does not change the active backend
        assert orch.get_current_provider() == "gemini"

    @pytest.mark.asyncio
    async def test_unavailable_candidates_skipped(self):
        openrouter = FakeBackend("openrouter", available=False)
        orch, _, ledger = _orchestrator(
            FakeBackend("gemini", fail=RuntimeError("down")),
            openrouter,
            FakeBackend("ollama", reply="local"),
        )
        await orch.initialize(BackendConfig())

        response = await orch.generate(REQUEST)

        assert response.text == "local"
        assert openrouter.prompts == []
        assert "openrouter" not in ledger.get_snapshot().providers

    @pytest.mark.asyncio
    async def test_fallback_disabled(self):
        orch, registry, ledger = _orchestrator(
            FakeBackend("gemini", fail=RuntimeError("quota")),
            FakeBackend("openrouter"),
        )
        await orch.initialize(BackendConfig(enable_fallback=False))

        assert await orch.generate(REQUEST) is None
        assert registry.constructed == ["gemini"]
        assert ledger.get_snapshot().providers["gemini"].errors == 1

    @pytest.mark.asyncio
    async def test_all_fail_returns_none(self):
        orch, _, ledger = _orchestrator(
            FakeBackend("gemini", fail=RuntimeError("a")),
            FakeBackend("openrouter", fail=RuntimeError("b")),
            FakeBackend("ollama", fail=TimeoutError("c")),
        )
        await orch.initialize(BackendConfig())

        assert await orch.generate(REQUEST) is None
        providers = ledger.get_snapshot().providers
        assert [providers[n].errors for n in ("gemini", "openrouter", "ollama")] == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_candidates_initialized_once(self):
        openrouter = FakeBackend("openrouter", reply="ok")
        orch, registry, _ = _orchestrator(FakeBackend("gemini", fail=RuntimeError("x")), openrouter)
        await orch.initialize(BackendConfig())

        await orch.generate(REQUEST)
        await orch.generate(REQUEST)

        assert openrouter.init_calls == 1
        assert registry.constructed.count("openrouter") == 1


class TestGenerateStream:
    """Test the streaming path."""

    @pytest.mark.asyncio
    async def test_chunks_forwarded(self):
        orch, _, ledger = _orchestrator(FakeBackend("gemini", chunks=["Al", "pha"]))
        await orch.initialize(BackendConfig())
        chunks = []

        response = await orch.generate_stream(REQUEST, chunks.append)

        assert chunks == ["Al", "pha"]
        assert response.text == "".join(chunks)
        assert ledger.get_snapshot().providers["gemini"].requests == 1

    @pytest.mark.asyncio
    async def test_non_streaming_backend_uses_generate(self):
        gemini = FakeBackend("gemini", streaming=False, reply="whole answer")
        orch, _, _ = _orchestrator(gemini)
        await orch.initialize(BackendConfig())
        chunks = []

        response = await orch.generate_stream(REQUEST, chunks.append)

        assert response.text == "whole answer"
        assert chunks == []
        assert gemini.stream_calls == 0

    @pytest.mark.asyncio
    async def test_stream_failure_does_not_fall_back(self):
        openrouter = FakeBackend("openrouter")
        orch, registry, ledger = _orchestrator(
            FakeBackend("gemini", fail=RuntimeError("stream broke")), openrouter,
        )
        await orch.initialize(BackendConfig())

        assert await orch.generate_stream(REQUEST, lambda c: None) is None
        assert ledger.get_snapshot().providers["gemini"].errors == 1
        assert registry.constructed == ["gemini"]
        assert openrouter.prompts == []

    @pytest.mark.asyncio
    async def test_no_active_backend(self):
        orch, _, _ = _orchestrator(FakeBackend("gemini", available=False))
        await orch.initialize(BackendConfig())
        assert await orch.generate_stream(REQUEST, lambda c: None) is None


class TestProviderSelection:
    """Test set_provider / get_providers."""

    @pytest.mark.asyncio
    async def test_set_provider_initializes_registered_backend(self):
        """A registered backend not yet reached by fallback is brought up on switch."""
        ollama = FakeBackend("ollama")
        orch, registry, ledger = _orchestrator(FakeBackend("gemini"), ollama)
        await orch.initialize(BackendConfig())
        assert registry.constructed == ["gemini"]

        assert await orch.set_provider("ollama") is True
        assert orch.get_current_provider() == "ollama"
        assert ledger.get_snapshot().current_provider == "ollama"
        assert registry.constructed == ["gemini", "ollama"]
        assert ollama.init_calls == 1

    @pytest.mark.asyncio
    async def test_set_provider_unknown_name(self):
        orch, registry, _ = _orchestrator(FakeBackend("gemini"))
        await orch.initialize(BackendConfig())
        assert await orch.set_provider("unknown") is False
        assert orch.get_current_provider() == "gemini"
        assert registry.constructed == ["gemini"]

    @pytest.mark.asyncio
    async def test_set_provider_after_discovery(self):
        ollama = FakeBackend("ollama")
        orch, _, ledger = _orchestrator(FakeBackend("gemini"), ollama)
        await orch.initialize(BackendConfig())
        await orch.get_providers()

        assert await orch.set_provider("ollama") is True
        assert orch.get_current_provider() == "ollama"
        assert ledger.get_snapshot().current_provider == "ollama"
        assert ollama.init_calls == 1

    @pytest.mark.asyncio
    async def test_set_provider_rejects_unavailable(self):
        orch, _, _ = _orchestrator(FakeBackend("gemini"), FakeBackend("ollama", available=False))
        await orch.initialize(BackendConfig())
        assert await orch.set_provider("ollama") is False
        assert orch.get_current_provider() == "gemini"

    @pytest.mark.asyncio
    async def test_get_providers_describes_all(self):
        orch, registry, _ = _orchestrator(
            FakeBackend("gemini"), FakeBackend("openrouter", available=False), FakeBackend("ollama"),
        )
        await orch.initialize(BackendConfig())

        descriptors = await orch.get_providers()

        assert [d.name for d in descriptors] == ["gemini", "openrouter", "ollama"]
        assert [d.available for d in descriptors] == [True, False, True]
        assert descriptors[1].error == "openrouter offline"
        assert sorted(registry.constructed) == ["gemini", "ollama", "openrouter"]


class TestModelSelection:
    """Model switching only applies to backends that support it."""

    @pytest.mark.asyncio
    async def test_unsupported(self):
        orch, _, _ = _orchestrator(FakeBackend("gemini"))
        await orch.initialize(BackendConfig())
        assert orch.get_models() == []
        assert orch.set_model("anything") is False
        assert orch.get_current_model() == "gemini-model"

    @pytest.mark.asyncio
    async def test_supported(self):
        ollama = FakeBackend("ollama", model_selection=True, models=["llama3.1:latest", "mistral:7b"])
        orch, _, _ = _orchestrator(ollama)
        await orch.initialize(BackendConfig(provider="ollama"))

        assert orch.get_models() == ["llama3.1:latest", "mistral:7b"]
        assert orch.set_model("mistral:7b") is True
        assert orch.get_current_model() == "mistral:7b"
        assert orch.set_model("missing") is False

    @pytest.mark.asyncio
    async def test_no_active_backend(self):
        orch, _, _ = _orchestrator(FakeBackend("gemini", available=False))
        await orch.initialize(BackendConfig())
        assert orch.get_models() == []
        assert orch.get_current_model() is None
