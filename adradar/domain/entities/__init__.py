# Domain Entities Package
"""
Core business entities as dataclasses.
"""

from .diagnosis import DiagnosisRecord
from .monitor import WORLDWIDE, MonitorWithFilters
from .page import PageDiagnosis, PageSignals, PageType
from .scraped_ad import ScrapedAd
from .session import SessionHealth, SessionPoolEntry, SessionRecord

__all__ = [
    "DiagnosisRecord",
    "MonitorWithFilters",
    "PageDiagnosis",
    "PageSignals",
    "PageType",
    "ScrapedAd",
    "SessionHealth",
    "SessionPoolEntry",
    "SessionRecord",
    "WORLDWIDE",
]
