"""Observability sinks for diagnosis records."""

from adradar.infrastructure.metrics.diagnosis_sink import InMemoryDiagnosisSink, LoggingDiagnosisSink

__all__ = [
    "InMemoryDiagnosisSink",
    "LoggingDiagnosisSink",
]
