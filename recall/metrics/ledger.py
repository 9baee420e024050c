"""
Backend Telemetry Ledger

Per-backend request/error counters and latency totals, plus the name of the
currently active backend. Counters only ever grow for the ledger's lifetime;
a new ledger is the only way to reset them.

Usage:
    ledger = TelemetryLedger()
    ledger.set_current_provider("gemini")
    ledger.record_request("gemini", 812.4)
    ledger.record_error("ollama", "Not running. Start with: ollama serve")
    snapshot = ledger.get_snapshot()
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Error strings are truncated before storage
MAX_ERROR_LENGTH = 200


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ProviderStats:
    """Accumulated counters for one backend."""
    requests: int = 0
    errors: int = 0
    total_latency_ms: float = 0.0
    last_error: Optional[str] = None
    last_used: Optional[str] = None

    @property
    def average_latency_ms(self) -> int:
        if self.requests == 0:
            return 0
        return round(self.total_latency_ms / self.requests)


@dataclass
class TelemetrySnapshot:
    providers: Dict[str, ProviderStats] = field(default_factory=dict)
    current_provider: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for name, stats in self.providers.items():
            data["providers"][name]["average_latency_ms"] = stats.average_latency_ms
        return data


class TelemetryLedger:
    """Records backend health. Never raises into the request path."""

    def __init__(self) -> None:
        self._providers: Dict[str, ProviderStats] = {}
        self._current_provider: Optional[str] = None

    def _stats(self, provider: str) -> ProviderStats:
        stats = self._providers.get(provider)
        if stats is None:
            stats = ProviderStats()
            self._providers[provider] = stats
        return stats

    def set_current_provider(self, provider: Optional[str]) -> None:
        self._current_provider = provider

    def record_request(self, provider: str, latency_ms: float) -> None:
        stats = self._stats(provider)
        stats.requests += 1
        stats.total_latency_ms += latency_ms
        stats.last_used = _now()

    def record_error(self, provider: str, error: str) -> None:
        stats = self._stats(provider)
        stats.errors += 1
        stats.last_error = (error or "")[:MAX_ERROR_LENGTH]
        stats.last_used = _now()
        logger.debug("[telemetry] %s error recorded (%d total)", provider, stats.errors)

    def get_average_latency(self, provider: str) -> int:
        stats = self._providers.get(provider)
        return stats.average_latency_ms if stats else 0

    def get_snapshot(self) -> TelemetrySnapshot:
        """Return a copy; callers cannot mutate the ledger through it."""
        return TelemetrySnapshot(
            providers=copy.deepcopy(self._providers),
            current_provider=self._current_provider,
        )


__all__ = ["MAX_ERROR_LENGTH", "ProviderStats", "TelemetrySnapshot", "TelemetryLedger"]
