# Database Package
"""
Session persistence implementations.

Provides:
- InMemorySessionRepository: versioned, dictionary-backed session storage
"""

from adradar.infrastructure.database.session_repository import InMemorySessionRepository

__all__ = [
    "InMemorySessionRepository",
]
