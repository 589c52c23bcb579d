"""
Abstract interface for the headless-browser page driver.

The engine never touches a browser binding directly. Drivers answer
selector queries and return plain per-element snapshots; every heuristic
(title fallbacks, URL resolution, filtering) runs in Python on top of them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncContextManager, Dict, List, Optional, Tuple

from adradar.domain.entities.page import PageSignals

if TYPE_CHECKING:
    from adradar.domain.entities.session import SessionPoolEntry
    from adradar.sites.models import SiteConfig

# (src, data-src, data-lazy) for one image selector
ImageAttributes = Tuple[Optional[str], Optional[str], Optional[str]]


@dataclass(frozen=True)
class MarkerQuery:
    """What the driver should look for when reading page signals."""

    recaptcha_selector: str
    hcaptcha_selector: str
    cloudflare_selector: str
    datadome_selector: str
    login_form_selector: str
    no_results_patterns: Tuple[str, ...] = ()
    login_patterns: Tuple[str, ...] = ()
    checkpoint_patterns: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExtractionPlan:
    """Selectors resolved for one extraction pass over the container elements."""

    container: str
    title: Optional[str]
    price: Optional[str]
    link: Optional[str]
    image: Tuple[str, ...] = ()
    location: Tuple[str, ...] = ()


@dataclass
class ElementSnapshot:
    """
    Plain field values read from one container element.

    images and location_texts are aligned with ExtractionPlan.image and
    ExtractionPlan.location; None means the selector matched nothing.
    """

    tag: str = ""
    href: Optional[str] = None
    title_text: str = ""
    heading_text: str = ""
    span_texts: List[str] = field(default_factory=list)
    price_text: str = ""
    link_href: Optional[str] = None
    first_link_href: Optional[str] = None
    images: List[Optional[ImageAttributes]] = field(default_factory=list)
    location_texts: List[Optional[str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementSnapshot":
        """Build a snapshot from the dictionary shape returned by in-page scripts."""
        images: List[Optional[ImageAttributes]] = []
        for entry in data.get("images") or []:
            if entry is None:
                images.append(None)
            else:
                images.append((entry.get("src"), entry.get("dataSrc"), entry.get("dataLazy")))
        return cls(
            tag=(data.get("tag") or "").lower(),
            href=data.get("href"),
            title_text=data.get("titleText") or "",
            heading_text=data.get("headingText") or "",
            span_texts=list(data.get("spanTexts") or []),
            price_text=data.get("priceText") or "",
            link_href=data.get("linkHref"),
            first_link_href=data.get("firstLinkHref"),
            images=images,
            location_texts=list(data.get("locationTexts") or []),
        )


class PageDriver(ABC):
    """
    Port over one open browser page.

    All waits take explicit millisecond budgets; implementations must
    never block without a bound.
    """

    @abstractmethod
    async def goto(self, url: str, timeout_ms: int) -> None:
        """Navigate to url. Raises NavigationError on failure."""
        pass

    @abstractmethod
    async def current_url(self) -> str:
        pass

    @abstractmethod
    async def title(self) -> str:
        pass

    @abstractmethod
    async def wait(self, ms: int) -> None:
        """Sleep on the page's clock."""
        pass

    @abstractmethod
    async def wait_for_selector(self, selector: str, timeout_ms: int) -> int:
        """
        Wait up to timeout_ms for selector to be attached.

        Returns:
            Number of matching elements, 0 if the wait timed out.
        """
        pass

    @abstractmethod
    async def count(self, selector: str) -> int:
        """Count matches right now, without waiting."""
        pass

    @abstractmethod
    async def read_signals(self, query: MarkerQuery) -> PageSignals:
        """
        Read anti-bot, login, checkpoint and no-results markers.

        has_search_results is left False; the engine sets it from
        container resolution.
        """
        pass

    @abstractmethod
    async def snapshot_elements(self, plan: ExtractionPlan) -> List[Optional[ElementSnapshot]]:
        """
        Read one snapshot per element matching plan.container.

        Elements that failed to read are returned as None.
        """
        pass

    @abstractmethod
    async def scroll_to_fraction(self, fraction: float) -> None:
        """Scroll to fraction (0..1) of the document height."""
        pass

    @abstractmethod
    async def scroll_to_bottom(self) -> None:
        pass


@dataclass
class OpenedPage:
    """A page handed out by a PageDriverFactory, with its auth context."""

    driver: PageDriver
    authenticated: bool = False
    auth_source: str = "anonymous"
    session_id: Optional[str] = None


class PageDriverFactory(ABC):
    """Opens pages configured for a site (cookies, anti-detection profile)."""

    @abstractmethod
    def open(
        self,
        config: "SiteConfig",
        session: Optional["SessionPoolEntry"] = None,
    ) -> AsyncContextManager[OpenedPage]:
        """
        Open a page for config, injecting session cookies when given.

        Usage:
            async with factory.open(config, session) as opened:
                await opened.driver.goto(url, config.navigation_timeout)
        """
        pass
