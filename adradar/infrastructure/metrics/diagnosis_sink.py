"""
Diagnosis sinks: where per-run DiagnosisRecords end up.
"""

import logging
from typing import List

from adradar.domain.entities.diagnosis import DiagnosisRecord
from adradar.domain.entities.page import PageType
from adradar.domain.interfaces.diagnosis_sink import DiagnosisSink
from adradar.utils.logger import get_logger, log_event

logger = get_logger(__name__)


class LoggingDiagnosisSink(DiagnosisSink):
    """Writes each record as one JSON log line."""

    def __init__(self, log: logging.Logger = logger):
        self.log = log

    async def emit(self, record: DiagnosisRecord) -> None:
        level = logging.INFO if record.page_type.is_success else logging.WARNING
        log_event(self.log, level, "diagnosis_record", **record.to_dict())


class InMemoryDiagnosisSink(DiagnosisSink):
    """Keeps records in a list, for tests and the CLI summary."""

    def __init__(self):
        self.records: List[DiagnosisRecord] = []

    async def emit(self, record: DiagnosisRecord) -> None:
        self.records.append(record)

    def by_page_type(self, page_type: PageType) -> List[DiagnosisRecord]:
        return [r for r in self.records if r.page_type == page_type]

    def clear(self) -> None:
        self.records.clear()
