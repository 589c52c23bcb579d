"""
MonitorWithFilters entity: a user's saved marketplace search.
"""

from dataclasses import dataclass
from typing import Optional

WORLDWIDE = "WORLDWIDE"


@dataclass(frozen=True)
class MonitorWithFilters:
    """
    A saved search owned by a user. Read-only to the engine.

    country is an ISO-3166-1 alpha-2 code; None, "" or WORLDWIDE mean
    no geographic filter.
    """

    id: str
    user_id: str
    site: str
    search_url: str
    name: str = ""
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    country: Optional[str] = None
    state_region: Optional[str] = None
    city: Optional[str] = None
    active: bool = True

    @property
    def has_location_filter(self) -> bool:
        return bool(self.country) and self.country != WORLDWIDE
