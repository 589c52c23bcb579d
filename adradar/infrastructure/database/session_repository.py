"""
In-memory session repository with optimistic concurrency control.

Every successful save bumps the record's version. A save whose
expected_version no longer matches the stored one is rejected with
SessionConflictError, exactly as a conditional UPDATE ... WHERE version = ?
would be in a relational store.

Example:
    >>> repo = InMemorySessionRepository()
    >>> await repo.add(SessionRecord(id="s1", user_id="u1", site="OLX"))
    >>> record = await repo.get("s1")
    >>> await repo.save(record, expected_version=record.version)
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from adradar.domain.entities.session import SessionRecord
from adradar.domain.interfaces.session_repository import SessionRepository
from adradar.utils.exceptions import SessionConflictError, SessionError
from adradar.utils.logger import get_logger

logger = get_logger(__name__)


class InMemorySessionRepository(SessionRepository):
    """
    Dictionary-backed SessionRepository.

    Records are unique per (user_id, site, account_label).
    """

    def __init__(self, records: Optional[Iterable[SessionRecord]] = None):
        self._records: Dict[str, SessionRecord] = {}
        self._lock = asyncio.Lock()
        for record in records or []:
            self._insert(record)

    def _insert(self, record: SessionRecord) -> None:
        if record.id in self._records:
            raise SessionError(f"Session {record.id} already exists", context={"session_id": record.id})
        key = (record.user_id, record.site, record.account_label)
        for existing in self._records.values():
            if (existing.user_id, existing.site, existing.account_label) == key:
                raise SessionError(
                    f"Account '{record.account_label}' already has a session for {record.user_id}/{record.site}",
                    context={"session_id": existing.id},
                )
        self._records[record.id] = record

    async def add(self, record: SessionRecord) -> SessionRecord:
        async with self._lock:
            self._insert(record)
        return record

    async def list_sessions(
        self,
        user_id: str,
        site: str,
        active_only: bool = True,
    ) -> List[SessionRecord]:
        return [
            r for r in self._records.values()
            if r.user_id == user_id and r.site == site and (r.is_active or not active_only)
        ]

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        return self._records.get(session_id)

    async def save(self, record: SessionRecord, expected_version: int) -> SessionRecord:
        async with self._lock:
            current = self._records.get(record.id)
            if current is None:
                raise SessionError(f"Session {record.id} not found", context={"session_id": record.id})
            if current.version != expected_version:
                raise SessionConflictError(
                    session_id=record.id,
                    expected_version=expected_version,
                    actual_version=current.version,
                )
            stored = replace(record, version=current.version + 1)
            self._records[record.id] = stored
            return stored
