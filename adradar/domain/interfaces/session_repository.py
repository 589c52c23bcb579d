"""
Abstract interface for session persistence.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from adradar.domain.entities.session import SessionRecord


class SessionRepository(ABC):
    """
    Abstract base class for session storage.

    Records are keyed by (user_id, site, account_label) and carry a
    version used for optimistic concurrency control.
    """

    @abstractmethod
    async def list_sessions(
        self,
        user_id: str,
        site: str,
        active_only: bool = True,
    ) -> List[SessionRecord]:
        """
        List sessions for a user and site.

        Args:
            user_id: Owner of the sessions.
            site: Site identifier.
            active_only: Only return sessions with ACTIVE status.

        Returns:
            Matching session records.
        """
        pass

    @abstractmethod
    async def get(self, session_id: str) -> Optional[SessionRecord]:
        """
        Retrieve a session by ID.

        Returns:
            The SessionRecord if found, None otherwise.
        """
        pass

    @abstractmethod
    async def save(self, record: SessionRecord, expected_version: int) -> SessionRecord:
        """
        Persist record if the stored version still equals expected_version.

        Args:
            record: The updated record.
            expected_version: Version read before modification.

        Returns:
            The stored record with its new version.

        Raises:
            SessionConflictError: If the stored version moved on.
        """
        pass
