"""
DiagnosisRecord entity: the observability artifact emitted once per monitor run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .page import PageSignals, PageType


@dataclass(frozen=True)
class DiagnosisRecord:
    """
    Write-once summary of a single run.

    Combines the page type, the signals behind it, timing, auth context,
    raw/valid ad counts and the skip-reason histogram. Instances are
    frozen and skipped_reasons is exposed as a read-only mapping.
    """

    monitor_id: str
    site: str
    page_type: PageType
    url: str
    final_url: str
    signals: PageSignals
    selector_used: Optional[str]
    authenticated: bool
    auth_source: str
    anti_detection: str
    page_title: str = ""
    container_attempts: int = 0
    session_id: Optional[str] = None
    ads_raw: int = 0
    ads_valid: int = 0
    skipped_reasons: Mapping[str, int] = field(default_factory=dict)
    scrolls_done: int = 0
    duration_ms: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "skipped_reasons", MappingProxyType(dict(self.skipped_reasons)))

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into JSON-friendly primitives for metrics sinks."""
        return {
            "monitor_id": self.monitor_id,
            "site": self.site,
            "page_type": self.page_type.value,
            "url": self.url,
            "final_url": self.final_url,
            "page_title": self.page_title,
            "signals": self.signals.to_dict(),
            "selector_used": self.selector_used,
            "container_attempts": self.container_attempts,
            "authenticated": self.authenticated,
            "auth_source": self.auth_source,
            "session_id": self.session_id,
            "ads_raw": self.ads_raw,
            "ads_valid": self.ads_valid,
            "skipped_reasons": dict(self.skipped_reasons),
            "scrolls_done": self.scrolls_done,
            "duration_ms": self.duration_ms,
            "anti_detection": self.anti_detection,
            "created_at": self.created_at.isoformat(),
        }
