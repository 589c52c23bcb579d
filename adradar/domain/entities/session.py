"""
Session entities: the persisted session record and the pool's view of it.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional

from .page import PageType

HEALTH_MAX = 100

STATUS_ACTIVE = "ACTIVE"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionHealth:
    """Typed health block stored alongside each session record."""

    health_score: int = HEALTH_MAX
    last_page_type: Optional[PageType] = None
    consecutive_failures: int = 0
    last_report_at: Optional[datetime] = None


@dataclass(frozen=True)
class SessionRecord:
    """
    Persistence shape of an authenticated session.

    Keyed by (user_id, site, account_label). version is bumped on every
    successful save and is used for optimistic concurrency control.
    """

    id: str
    user_id: str
    site: str
    account_label: str = "default"
    status: str = STATUS_ACTIVE
    last_used_at: Optional[datetime] = None
    health: SessionHealth = field(default_factory=SessionHealth)
    version: int = 0
    storage_state_path: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def with_health(self, health: SessionHealth, used_at: datetime) -> "SessionRecord":
        return replace(self, health=health, last_used_at=used_at)


@dataclass
class SessionPoolEntry:
    """A session as seen by the pool when choosing which one to use."""

    session_id: str
    account_label: str
    health_score: int
    last_page_type: Optional[PageType]
    last_used_at: datetime
    consecutive_failures: int
    storage_state_path: Optional[str] = None

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionPoolEntry":
        return cls(
            session_id=record.id,
            account_label=record.account_label or "default",
            health_score=record.health.health_score,
            last_page_type=record.health.last_page_type,
            last_used_at=record.last_used_at or datetime.min.replace(tzinfo=timezone.utc),
            consecutive_failures=record.health.consecutive_failures,
            storage_state_path=record.storage_state_path,
        )
