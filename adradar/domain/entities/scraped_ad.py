"""
ScrapedAd entity representing one listing extracted from a results page.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class ScrapedAd:
    """One extracted listing, ready for de-duplication by external_id."""

    external_id: str
    title: str
    price: float
    url: str
    image_url: Optional[str] = None
    location: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate required fields after initialization."""
        if not self.external_id:
            raise ValueError("ScrapedAd external_id cannot be empty")
        if not self.title:
            raise ValueError("ScrapedAd title cannot be empty")
        if not self.url:
            raise ValueError("ScrapedAd url cannot be empty")
        if self.price < 0:
            raise ValueError("ScrapedAd price cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
