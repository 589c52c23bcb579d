"""
Static HTML page driver using BeautifulSoup.

Serves pre-fetched or fixture HTML through the PageDriver port so the
whole engine can run without a browser: offline replays of saved pages,
integration tests, and selector debugging from the CLI. Waiting and
scrolling are no-ops because the document never changes.
"""

import re
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Mapping, Optional

from bs4 import BeautifulSoup, Tag

from adradar.domain.entities.page import PageSignals
from adradar.domain.entities.session import SessionPoolEntry
from adradar.domain.interfaces.page_driver import (
    ElementSnapshot,
    ExtractionPlan,
    MarkerQuery,
    OpenedPage,
    PageDriver,
    PageDriverFactory,
)
from adradar.sites.models import SiteConfig
from adradar.utils.exceptions import NavigationError
from adradar.utils.logger import get_logger

logger = get_logger(__name__)

_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
_NON_RENDERED = {"script", "style", "noscript", "template", "head", "meta", "link", "title"}


def _text(node: Optional[Tag]) -> str:
    return node.get_text().strip() if node is not None else ""


def _attr(node: Optional[Tag], name: str) -> Optional[str]:
    if node is None:
        return None
    value = node.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value


class StaticHtmlPageDriver(PageDriver):
    """
    PageDriver over in-memory HTML documents keyed by URL.

    Attributes:
        pages: URL -> HTML served by goto().
        redirects: Optional URL -> final URL map applied on navigation.
        scrolls: Number of scroll calls received.
        waited_ms: Total milliseconds requested through wait().
    """

    def __init__(
        self,
        pages: Mapping[str, str],
        redirects: Optional[Mapping[str, str]] = None,
    ):
        self.pages = dict(pages)
        self.redirects = dict(redirects or {})
        self.scrolls = 0
        self.waited_ms = 0
        self._url = "about:blank"
        self._soup = BeautifulSoup("", "html.parser")

    @classmethod
    def from_html(cls, html: str, url: str = "https://example.test/") -> "StaticHtmlPageDriver":
        return cls({url: html})

    async def goto(self, url: str, timeout_ms: int) -> None:
        html = self.pages.get(url)
        if html is None:
            raise NavigationError(f"No page available for {url}", url=url, timeout_ms=timeout_ms)
        self._url = self.redirects.get(url, url)
        self._soup = BeautifulSoup(html, "html.parser")

    async def current_url(self) -> str:
        return self._url

    async def title(self) -> str:
        return _text(self._soup.title)

    async def wait(self, ms: int) -> None:
        self.waited_ms += ms

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> int:
        return await self.count(selector)

    async def count(self, selector: str) -> int:
        return len(self._soup.select(selector))

    def _has(self, selector: str) -> bool:
        return self._soup.select_one(selector) is not None

    def _visible_elements(self) -> int:
        visible = 0
        for tag in self._soup.find_all(True):
            if tag.name in _NON_RENDERED or tag.has_attr("hidden"):
                continue
            if _HIDDEN_STYLE.search(_attr(tag, "style") or ""):
                continue
            visible += 1
        return visible

    async def read_signals(self, query: MarkerQuery) -> PageSignals:
        body = self._soup.body
        body_text = body.get_text(" ").lower() if body is not None else ""

        def mentions(patterns) -> bool:
            return any(p.lower() in body_text for p in patterns)

        return PageSignals(
            has_recaptcha=self._has(query.recaptcha_selector),
            has_hcaptcha=self._has(query.hcaptcha_selector),
            has_cloudflare=self._has(query.cloudflare_selector),
            has_datadome=self._has(query.datadome_selector),
            has_login_form=self._has(query.login_form_selector),
            has_login_text=mentions(query.login_patterns),
            has_no_results_msg=mentions(query.no_results_patterns),
            has_checkpoint=mentions(query.checkpoint_patterns),
            visible_elements=self._visible_elements(),
            body_length=len(body_text),
        )

    def _snapshot(self, element: Tag, plan: ExtractionPlan) -> ElementSnapshot:
        def pick(selector: Optional[str]) -> Optional[Tag]:
            return element.select_one(selector) if selector else None

        images = []
        for selector in plan.image:
            img = element.select_one(selector)
            images.append(None if img is None else (
                _attr(img, "src"), _attr(img, "data-src"), _attr(img, "data-lazy"),
            ))

        locations = []
        for selector in plan.location:
            node = element.select_one(selector)
            locations.append(None if node is None else _text(node))

        return ElementSnapshot(
            tag=element.name.lower(),
            href=_attr(element, "href"),
            title_text=_text(pick(plan.title)),
            heading_text=_text(element.select_one("h2, h3")),
            span_texts=[_text(span) for span in element.find_all("span")],
            price_text=_text(pick(plan.price)),
            link_href=_attr(pick(plan.link), "href"),
            first_link_href=_attr(element.find("a"), "href"),
            images=images,
            location_texts=locations,
        )

    async def snapshot_elements(self, plan: ExtractionPlan) -> List[Optional[ElementSnapshot]]:
        snapshots: List[Optional[ElementSnapshot]] = []
        for element in self._soup.select(plan.container):
            try:
                snapshots.append(self._snapshot(element, plan))
            except Exception as e:
                logger.debug(f"Failed to snapshot <{element.name}>: {e}")
                snapshots.append(None)
        return snapshots

    async def scroll_to_fraction(self, fraction: float) -> None:
        self.scrolls += 1

    async def scroll_to_bottom(self) -> None:
        self.scrolls += 1


class StaticHtmlDriverFactory(PageDriverFactory):
    """
    Hands out StaticHtmlPageDriver pages over a fixed set of documents.

    A session passed to open() is reported as authenticated, mirroring a
    successful cookie load.
    """

    def __init__(
        self,
        pages: Mapping[str, str],
        redirects: Optional[Mapping[str, str]] = None,
    ):
        self.pages: Dict[str, str] = dict(pages)
        self.redirects = dict(redirects or {})
        self.opened: List[StaticHtmlPageDriver] = []

    @asynccontextmanager
    async def open(
        self,
        config: SiteConfig,
        session: Optional[SessionPoolEntry] = None,
    ) -> AsyncIterator[OpenedPage]:
        driver = StaticHtmlPageDriver(self.pages, self.redirects)
        self.opened.append(driver)
        yield OpenedPage(
            driver=driver,
            authenticated=session is not None,
            auth_source="session" if session else "anonymous",
            session_id=session.session_id if session else None,
        )
