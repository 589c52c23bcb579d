# Domain Interfaces Package
"""
Abstract base classes defining contracts for infrastructure implementations.
"""

from .diagnosis_sink import DiagnosisSink
from .page_driver import (
    ElementSnapshot,
    ExtractionPlan,
    MarkerQuery,
    OpenedPage,
    PageDriver,
    PageDriverFactory,
)
from .session_repository import SessionRepository

__all__ = [
    "DiagnosisSink",
    "ElementSnapshot",
    "ExtractionPlan",
    "MarkerQuery",
    "OpenedPage",
    "PageDriver",
    "PageDriverFactory",
    "SessionRepository",
]
