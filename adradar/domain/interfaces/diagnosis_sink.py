"""
Abstract interface for the observability collector receiving DiagnosisRecords.
"""

from abc import ABC, abstractmethod

from adradar.domain.entities.diagnosis import DiagnosisRecord


class DiagnosisSink(ABC):
    """Receives one DiagnosisRecord per completed run."""

    @abstractmethod
    async def emit(self, record: DiagnosisRecord) -> None:
        pass
