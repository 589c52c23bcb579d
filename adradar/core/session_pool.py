"""
Session pool: health scoring and rotation of authenticated sessions.

Health Score:
    100 = last run succeeded (CONTENT or NO_RESULTS)
    -20 per BLOCKED / CAPTCHA
    -50 per LOGIN_REQUIRED / CHECKPOINT
    -10 for anything else
    floor 0, reset to 100 after a success

Rotation picks the active session with the highest score, breaking ties
by most recent use. When every session is degraded the best one is still
returned and a warning is logged.
"""

import asyncio
import weakref
from typing import Callable, Dict, List, Optional

from adradar.domain.entities.page import PageType
from adradar.domain.entities.session import (
    HEALTH_MAX,
    SessionHealth,
    SessionPoolEntry,
    SessionRecord,
    utcnow,
)
from adradar.domain.interfaces.session_repository import SessionRepository
from adradar.utils.exceptions import SessionConflictError
from adradar.utils.logger import get_logger

logger = get_logger(__name__)

DEGRADED_THRESHOLD = 50

PENALTIES: Dict[PageType, int] = {
    PageType.BLOCKED: 20,
    PageType.CAPTCHA: 20,
    PageType.LOGIN_REQUIRED: 50,
    PageType.CHECKPOINT: 50,
}
DEFAULT_PENALTY = 10


def apply_report(health: SessionHealth, page_type: PageType, now) -> SessionHealth:
    """Return the health block after a run that produced page_type."""
    if page_type.is_success:
        score = HEALTH_MAX
        failures = 0
    else:
        penalty = PENALTIES.get(page_type, DEFAULT_PENALTY)
        score = max(0, health.health_score - penalty)
        failures = health.consecutive_failures + 1
    return SessionHealth(
        health_score=score,
        last_page_type=page_type,
        consecutive_failures=failures,
        last_report_at=now,
    )


class SessionPool:
    """
    Chooses sessions and records their outcomes.

    Updates to one session are serialized by a per-session asyncio.Lock
    and committed with the repository's version check, retrying the
    read-modify-write when another writer got there first.

    Example:
        >>> pool = SessionPool(InMemorySessionRepository())
        >>> best = await pool.get_best_session("user-1", "FACEBOOK_MARKETPLACE")
        >>> await pool.report_result(best.session_id, PageType.BLOCKED)
    """

    def __init__(
        self,
        repository: SessionRepository,
        max_retries: int = 3,
        clock: Callable = utcnow,
    ):
        self.repository = repository
        self.max_retries = max(1, max_retries)
        self._clock = clock
        # Dropped once no report for the session is running or queued
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def get_best_session(self, user_id: str, site: str) -> Optional[SessionPoolEntry]:
        """
        Pick the healthiest active session for user_id on site.

        Returns:
            The best entry, or None if the user has no active session.
        """
        records = await self.repository.list_sessions(user_id, site, active_only=True)
        entries = [SessionPoolEntry.from_record(r) for r in records if r.is_active]
        if not entries:
            return None

        best = max(entries, key=lambda e: (e.health_score, e.last_used_at))
        if best.health_score < DEGRADED_THRESHOLD:
            logger.warning(
                f"All sessions degraded for {user_id}/{site}. "
                f"Best: {best.session_id} score={best.health_score}"
            )
        return best

    async def report_result(self, session_id: str, page_type: PageType) -> Optional[SessionRecord]:
        """
        Update a session's health after a run.

        Returns:
            The saved record, or None if the session does not exist.

        Raises:
            SessionConflictError: If every retry lost the version race.
        """
        async with self._lock(session_id):
            for attempt in range(1, self.max_retries + 1):
                record = await self.repository.get(session_id)
                if record is None:
                    logger.info(f"Ignoring report for unknown session {session_id}")
                    return None

                now = self._clock()
                updated = record.with_health(apply_report(record.health, page_type, now), used_at=now)
                try:
                    saved = await self.repository.save(updated, expected_version=record.version)
                except SessionConflictError:
                    if attempt == self.max_retries:
                        raise
                    logger.debug(f"Version conflict on session {session_id}, retry {attempt}")
                    continue

                logger.debug(
                    f"Session {session_id}: {page_type.value} -> score={saved.health.health_score} "
                    f"failures={saved.health.consecutive_failures}"
                )
                return saved
        return None

    async def get_pool_status(self, user_id: str, site: str) -> List[SessionPoolEntry]:
        """Snapshot of every session for user_id on site, active or not."""
        records = await self.repository.list_sessions(user_id, site, active_only=False)
        return [SessionPoolEntry.from_record(r) for r in records]
