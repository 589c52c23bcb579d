"""
MarketplaceEngine: runs one monitor end to end.

Flow per run:
    1. Check the monitor URL against the site's supported patterns
    2. Wait for a rate-limit token
    3. Pick the healthiest session when the site uses cookies
    4. Open a page and navigate
    5. Render delay (jittered) and optional render selector
    6. Resolve the listing container
    7. Diagnose the page
    8. Scroll and extract when the page has content
    9. Commit: session health, DiagnosisRecord to the sink

Every completed run produces exactly one DiagnosisRecord, whatever the
page type. Driver failures propagate and commit nothing. Once the commit
starts it is shielded from cancellation, so a run's health update and its
record are either both written or neither is.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional

from adradar.core.ad_extractor import AdExtractor, ExtractionResult
from adradar.core.container_resolver import ContainerResolver
from adradar.core.page_diagnoser import PageDiagnoser
from adradar.core.scroller import scroll_page
from adradar.core.session_pool import SessionPool
from adradar.domain.entities.diagnosis import DiagnosisRecord
from adradar.domain.entities.monitor import MonitorWithFilters
from adradar.domain.entities.page import PageType
from adradar.domain.entities.scraped_ad import ScrapedAd
from adradar.domain.entities.session import SessionPoolEntry
from adradar.domain.interfaces.diagnosis_sink import DiagnosisSink
from adradar.domain.interfaces.page_driver import PageDriverFactory
from adradar.infrastructure.scraper.rate_limiter import TokenBucketRateLimiter
from adradar.sites.models import AuthMode, SiteConfig
from adradar.sites.registry import SiteRegistry
from adradar.utils.config import EngineConfig
from adradar.utils.exceptions import UnsupportedUrlError
from adradar.utils.logger import get_logger, log_event

logger = get_logger(__name__)


@dataclass
class RunResult:
    """Ads found by one run plus the record explaining them."""
    ads: List[ScrapedAd] = field(default_factory=list)
    record: Optional[DiagnosisRecord] = None

    @property
    def page_type(self) -> Optional[PageType]:
        return self.record.page_type if self.record else None


def apply_jitter(base_ms: int, jitter: float, rng: random.Random) -> int:
    """Scale base_ms by a random factor in [1 - jitter, 1 + jitter]."""
    factor = (1.0 - jitter) + rng.random() * (2.0 * jitter)
    return round(base_ms * factor)


class MarketplaceEngine:
    """
    Orchestrates rate limiting, session choice, diagnosis and extraction.

    Attributes:
        registry: Site configurations.
        rate_limiter: Per-site token buckets.
        session_pool: Session rotation and health.
        driver_factory: Opens configured pages.
        sink: Receives one DiagnosisRecord per run.
    """

    def __init__(
        self,
        registry: SiteRegistry,
        rate_limiter: TokenBucketRateLimiter,
        session_pool: SessionPool,
        driver_factory: PageDriverFactory,
        sink: DiagnosisSink,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.registry = registry
        self.rate_limiter = rate_limiter
        self.session_pool = session_pool
        self.driver_factory = driver_factory
        self.sink = sink
        self.config = config or EngineConfig()
        self._rng = rng or random.Random()

    async def _pick_session(self, monitor: MonitorWithFilters, site: SiteConfig) -> Optional[SessionPoolEntry]:
        if site.auth_mode == AuthMode.ANONYMOUS:
            return None
        session = await self.session_pool.get_best_session(monitor.user_id, site.site)
        if session is None and site.auth_mode == AuthMode.COOKIES_REQUIRED:
            logger.warning(
                f"No session for {monitor.user_id}/{site.site}; running anonymously, "
                f"expect LOGIN_REQUIRED"
            )
        return session

    async def run(self, monitor: MonitorWithFilters) -> RunResult:
        """
        Run monitor once.

        Returns:
            RunResult with the valid ads and the committed DiagnosisRecord.

        Raises:
            UnknownSiteError: If monitor.site is not registered.
            UnsupportedUrlError: If the search URL is not one the site supports.
            ScraperError: Any driver failure, propagated unchanged.
        """
        site = self.registry.require(monitor.site)
        if not site.supports_url(monitor.search_url):
            raise UnsupportedUrlError(
                f"URL not supported for {site.site}: {monitor.search_url}",
                url=monitor.search_url,
                site=site.site,
            )

        await self.rate_limiter.acquire(site.site)
        started = time.monotonic()
        session = await self._pick_session(monitor, site)

        extraction = ExtractionResult()
        scrolls_done = 0

        async with self.driver_factory.open(site, session) as opened:
            driver = opened.driver
            await driver.goto(monitor.search_url, site.navigation_timeout)

            await driver.wait(apply_jitter(site.render_delay, self.config.render_jitter, self._rng))
            if site.render_wait_selector:
                # Zero matches just means the page rendered differently
                await driver.wait_for_selector(site.render_wait_selector, site.timeouts[0])

            resolver = ContainerResolver(driver, level_pause_ms=self.config.container_level_pause_ms)
            container = await resolver.wait_for_container(site.selectors.containers, site.timeouts)

            diagnosis = await PageDiagnoser(driver).diagnose(
                site, monitor.search_url, has_search_results=container.success,
            )

            if diagnosis.page_type == PageType.CONTENT:
                scrolls_done = await scroll_page(driver, site.scroll, container.selector)
                extraction = await AdExtractor(driver, resolver).extract(container.selector, site, monitor)

        record = DiagnosisRecord(
            monitor_id=monitor.id,
            site=site.site,
            page_type=diagnosis.page_type,
            url=monitor.search_url,
            final_url=diagnosis.final_url,
            page_title=diagnosis.title,
            signals=diagnosis.signals,
            selector_used=container.selector,
            container_attempts=container.attempts,
            authenticated=opened.authenticated,
            auth_source=opened.auth_source,
            session_id=opened.session_id,
            ads_raw=extraction.ads_raw,
            ads_valid=len(extraction.ads),
            skipped_reasons=extraction.skipped_reasons,
            scrolls_done=scrolls_done,
            duration_ms=int((time.monotonic() - started) * 1000),
            anti_detection=site.anti_detection.stealth_level.value,
        )

        await asyncio.shield(self._commit(record))
        return RunResult(ads=extraction.ads, record=record)

    async def _commit(self, record: DiagnosisRecord) -> None:
        if record.session_id:
            await self.session_pool.report_result(record.session_id, record.page_type)
        await self.sink.emit(record)

        if record.page_type == PageType.CONTENT:
            log_event(
                logger, logging.INFO, "engine_success",
                site=record.site, monitor_id=record.monitor_id, ads=record.ads_valid,
                raw=record.ads_raw, auth=record.authenticated, duration_ms=record.duration_ms,
            )
        else:
            log_event(
                logger, logging.WARNING, "engine_diagnosis",
                site=record.site, monitor_id=record.monitor_id, page_type=record.page_type.value,
                final_url=record.final_url, body_length=record.signals.body_length,
                selector=record.selector_used,
            )
