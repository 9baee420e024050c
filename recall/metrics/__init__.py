from recall.metrics.ledger import ProviderStats, TelemetryLedger, TelemetrySnapshot

__all__ = ["ProviderStats", "TelemetryLedger", "TelemetrySnapshot"]
