"""
Playwright implementation of the page driver port.

PlaywrightDriverFactory owns one Chromium instance and opens an isolated
context per run, carrying the session's cookie state and the site's
anti-detection profile. All DOM reading happens in two in-page scripts
that return plain dictionaries.

Example:
    >>> async with PlaywrightDriverFactory() as factory:
    ...     async with factory.open(site_config, session) as opened:
    ...         await opened.driver.goto(url, site_config.navigation_timeout)
"""

from __future__ import annotations

import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, AsyncIterator, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

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
from adradar.infrastructure.browser.anti_detection import apply_anti_detection, pick_viewport
from adradar.sites.models import SiteConfig
from adradar.utils.config import BrowserConfig, get_config
from adradar.utils.exceptions import NavigationError, ScraperError
from adradar.utils.logger import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, Page, Playwright

logger = get_logger(__name__)


LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--no-first-run",
    "--mute-audio",
]

SIGNALS_SCRIPT = """
(query) => {
    const bodyText = (document.body && document.body.innerText ? document.body.innerText : '').toLowerCase();
    const has = (selector) => !!document.querySelector(selector);
    const mentions = (patterns) => patterns.some((p) => bodyText.includes(p.toLowerCase()));

    let visibleElements = 0;
    document.querySelectorAll('*').forEach((el) => {
        const style = window.getComputedStyle(el);
        if (style.display !== 'none' && style.visibility !== 'hidden') {
            visibleElements++;
        }
    });

    return {
        hasRecaptcha: has(query.recaptcha),
        hasHcaptcha: has(query.hcaptcha),
        hasCloudflare: has(query.cloudflare),
        hasDatadome: has(query.datadome),
        hasLoginForm: has(query.loginForm),
        hasLoginText: mentions(query.loginPatterns),
        hasNoResultsMsg: mentions(query.noResultsPatterns),
        hasCheckpoint: mentions(query.checkpointPatterns),
        visibleElements,
        bodyLength: bodyText.length,
    };
}
"""

SNAPSHOT_SCRIPT = """
(elements, plan) => elements.map((el) => {
    try {
        const text = (node) => (node && node.textContent ? node.textContent.trim() : '');
        const pick = (selector) => (selector ? el.querySelector(selector) : null);
        const link = pick(plan.link);
        const firstLink = el.querySelector('a');
        return {
            tag: el.tagName,
            href: el.getAttribute('href'),
            titleText: text(pick(plan.title)),
            headingText: text(el.querySelector('h2, h3')),
            spanTexts: Array.from(el.querySelectorAll('span')).map(text),
            priceText: text(pick(plan.price)),
            linkHref: link ? link.getAttribute('href') : null,
            firstLinkHref: firstLink ? firstLink.getAttribute('href') : null,
            images: plan.image.map((selector) => {
                const img = el.querySelector(selector);
                if (!img) return null;
                return {
                    src: img.getAttribute('src'),
                    dataSrc: img.getAttribute('data-src'),
                    dataLazy: img.getAttribute('data-lazy'),
                };
            }),
            locationTexts: plan.location.map((selector) => {
                const node = el.querySelector(selector);
                return node ? text(node) : null;
            }),
        };
    } catch (e) {
        return null;
    }
})
"""


class PlaywrightPageDriver(PageDriver):
    """PageDriver over a single Playwright page."""

    def __init__(self, page: "Page"):
        self.page = page

    async def goto(self, url: str, timeout_ms: int) -> None:
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Navigation failed: {e}", url=url, timeout_ms=timeout_ms) from e
        logger.debug(f"Navigated: requested={url} final={self.page.url}")

    async def current_url(self) -> str:
        return self.page.url

    async def title(self) -> str:
        return await self.page.title()

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> int:
        try:
            await self.page.wait_for_selector(selector, timeout=timeout_ms, state="attached")
        except PlaywrightTimeoutError:
            return 0
        return await self.page.locator(selector).count()

    async def count(self, selector: str) -> int:
        return await self.page.locator(selector).count()

    async def read_signals(self, query: MarkerQuery) -> PageSignals:
        data = await self.page.evaluate(SIGNALS_SCRIPT, {
            "recaptcha": query.recaptcha_selector,
            "hcaptcha": query.hcaptcha_selector,
            "cloudflare": query.cloudflare_selector,
            "datadome": query.datadome_selector,
            "loginForm": query.login_form_selector,
            "noResultsPatterns": list(query.no_results_patterns),
            "loginPatterns": list(query.login_patterns),
            "checkpointPatterns": list(query.checkpoint_patterns),
        })
        return PageSignals(
            has_recaptcha=bool(data["hasRecaptcha"]),
            has_hcaptcha=bool(data["hasHcaptcha"]),
            has_cloudflare=bool(data["hasCloudflare"]),
            has_datadome=bool(data["hasDatadome"]),
            has_login_form=bool(data["hasLoginForm"]),
            has_login_text=bool(data["hasLoginText"]),
            has_no_results_msg=bool(data["hasNoResultsMsg"]),
            has_checkpoint=bool(data["hasCheckpoint"]),
            visible_elements=int(data["visibleElements"]),
            body_length=int(data["bodyLength"]),
        )

    async def snapshot_elements(self, plan: ExtractionPlan) -> List[Optional[ElementSnapshot]]:
        rows = await self.page.eval_on_selector_all(plan.container, SNAPSHOT_SCRIPT, {
            "title": plan.title,
            "price": plan.price,
            "link": plan.link,
            "image": list(plan.image),
            "location": list(plan.location),
        })
        return [ElementSnapshot.from_dict(row) if row is not None else None for row in rows]

    async def scroll_to_fraction(self, fraction: float) -> None:
        await self.page.evaluate(
            "(fraction) => window.scrollTo(0, document.body.scrollHeight * fraction)",
            fraction,
        )

    async def scroll_to_bottom(self) -> None:
        await self.page.evaluate("window.scrollTo(0, document.body.scrollHeight)")


class PlaywrightDriverFactory(PageDriverFactory):
    """
    Opens one browser context per run on a shared Chromium instance.

    Contexts are isolated (cookies, storage), so runs for different users
    never share state. Session cookies are loaded from the session's
    storage_state_path when the file exists.
    """

    def __init__(
        self,
        browser_config: Optional[BrowserConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.browser_config = browser_config or get_config().browser
        self._rng = rng or random.Random()
        self._playwright: Optional["Playwright"] = None
        self._browser: Optional["Browser"] = None

    async def __aenter__(self) -> "PlaywrightDriverFactory":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def start(self) -> None:
        if self._browser is not None:
            logger.warning("Browser already running")
            return

        logger.info("Launching Chromium...")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.browser_config.headless,
            args=LAUNCH_ARGS,
        )
        logger.info(f"Chromium ready (headless={self.browser_config.headless})")

    async def close(self) -> None:
        try:
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except Exception as e:
            logger.error(f"Error closing browser: {e}")
        finally:
            self._browser = None
            self._playwright = None

    def _storage_state(self, session: Optional[SessionPoolEntry]) -> Optional[str]:
        if session is None or not session.storage_state_path:
            return None
        if not Path(session.storage_state_path).exists():
            logger.warning(
                f"Storage state for session {session.session_id} not found: {session.storage_state_path}"
            )
            return None
        return session.storage_state_path

    @asynccontextmanager
    async def open(
        self,
        config: SiteConfig,
        session: Optional[SessionPoolEntry] = None,
    ) -> AsyncIterator[OpenedPage]:
        if self._browser is None:
            raise ScraperError("Browser not started. Use 'async with PlaywrightDriverFactory()' first.")

        storage_state = self._storage_state(session)
        context = await self._browser.new_context(
            user_agent=self._rng.choice(self.browser_config.user_agents),
            locale=self.browser_config.locale,
            timezone_id=self.browser_config.timezone_id,
            viewport=pick_viewport(config.anti_detection, self._rng),
            storage_state=storage_state,
        )
        try:
            await apply_anti_detection(context, config.anti_detection)
            page = await context.new_page()
            yield OpenedPage(
                driver=PlaywrightPageDriver(page),
                authenticated=storage_state is not None,
                auth_source="session" if storage_state else "anonymous",
                session_id=session.session_id if storage_state else None,
            )
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.error(f"Error closing context for {config.site}: {e}")
