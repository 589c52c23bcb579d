"""Unit tests for the run orchestration."""

import asyncio
import json
import logging
from datetime import datetime, timezone

import pytest

from adradar.core.marketplace_engine import MarketplaceEngine, apply_jitter
from adradar.core.session_pool import SessionPool
from adradar.domain.entities.diagnosis import DiagnosisRecord
from adradar.domain.entities.page import PageSignals, PageType
from adradar.domain.entities.session import SessionHealth, SessionRecord
from adradar.domain.interfaces.page_driver import ElementSnapshot
from adradar.infrastructure.database.session_repository import InMemorySessionRepository
from adradar.infrastructure.metrics.diagnosis_sink import InMemoryDiagnosisSink, LoggingDiagnosisSink
from adradar.infrastructure.scraper.rate_limiter import TokenBucketRateLimiter
from adradar.utils.config import EngineConfig
from adradar.utils.exceptions import NavigationError, UnknownSiteError, UnsupportedUrlError
from adradar.utils.logger import get_logger

OLX_CARD = '[data-ds-component="DS-AdCard"]'
FB_CARD = 'a[href*="/marketplace/item/"]'
FB_URL = "https://www.facebook.com/marketplace/saopaulo/search?query=iphone"


class FixedRandom:
    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


def olx_snapshot(ad_id: str, title: str, price: str) -> ElementSnapshot:
    return ElementSnapshot(
        tag="li",
        title_text=title,
        price_text=price,
        link_href=f"https://www.olx.com.br/autos-e-pecas/carros/{ad_id}",
        location_texts=["São Paulo, SP"],
    )


@pytest.fixture
def sink():
    return InMemoryDiagnosisSink()


@pytest.fixture
def repository():
    return InMemorySessionRepository()


@pytest.fixture
def build_engine(registry, sink, repository, make_factory):
    """Engine over a scripted driver with no real waiting."""

    def _build(driver, rng=None):
        factory = make_factory(driver)
        engine = MarketplaceEngine(
            registry=registry,
            rate_limiter=TokenBucketRateLimiter(default_tokens_per_min=60),
            session_pool=SessionPool(repository),
            driver_factory=factory,
            sink=sink,
            config=EngineConfig(container_level_pause_ms=0, render_jitter=0.0),
            rng=rng,
        )
        return engine, factory

    return _build


def add_facebook_session(repository, score=100, session_id="fb-main"):
    asyncio.run(repository.add(SessionRecord(
        id=session_id,
        user_id="user-1",
        site="FACEBOOK_MARKETPLACE",
        health=SessionHealth(health_score=score),
        last_used_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )))


class TestApplyJitter:
    """Test render delay jitter bounds."""

    def test_bounds(self):
        assert apply_jitter(1000, 0.15, FixedRandom(0.0)) == 850
        assert apply_jitter(1000, 0.15, FixedRandom(0.5)) == 1000
        assert apply_jitter(1000, 0.15, FixedRandom(0.999999)) == 1150

    def test_no_jitter(self):
        assert apply_jitter(4000, 0.0, FixedRandom(0.7)) == 4000


class TestContentRun:
    """Test a run that finds listings."""

    def test_olx_run_extracts_and_commits(self, build_engine, make_driver, make_monitor, sink):
        driver = make_driver(
            counts={OLX_CARD: 2, "h2": 2, "a": 2},
            signals=PageSignals(body_length=12000, visible_elements=800),
            snapshots=[
                olx_snapshot("1234567", "Gol 1.0 2012", "R$ 25.000"),
                olx_snapshot("7654321", "Uno Mille 2010", "R$ 15.000"),
            ],
        )
        engine, factory = build_engine(driver)

        result = asyncio.run(engine.run(make_monitor()))

        assert result.page_type == PageType.CONTENT
        assert [ad.external_id for ad in result.ads] == ["OLX-1234567", "OLX-7654321"]

        record = result.record
        assert sink.records == [record]
        assert record.selector_used == OLX_CARD
        assert record.container_attempts == 1
        assert record.ads_raw == 2
        assert record.ads_valid == 2
        assert record.scrolls_done == 2
        assert record.authenticated is False
        assert record.auth_source == "anonymous"
        assert record.session_id is None
        assert record.anti_detection == "minimal"
        assert record.signals.has_search_results is True

        assert factory.opened_with == [None]
        assert factory.closed == 1
        assert driver.waits == [1000, 1000, 1000]
        assert driver.fractions == [0.5, 1.0]

    def test_content_resets_session_health(self, build_engine, make_driver, make_monitor, repository):
        add_facebook_session(repository, score=40)
        driver = make_driver(counts={FB_CARD: 3})
        engine, factory = build_engine(driver)

        result = asyncio.run(engine.run(make_monitor(site="FACEBOOK_MARKETPLACE", search_url=FB_URL)))

        assert result.page_type == PageType.CONTENT
        assert result.record.session_id == "fb-main"
        assert result.record.auth_source == "session"
        assert factory.opened_with[0].session_id == "fb-main"

        saved = asyncio.run(repository.get("fb-main"))
        assert saved.health.health_score == 100
        assert saved.health.last_page_type == PageType.CONTENT

    def test_render_selector_waits_first_level(self, build_engine, make_driver, make_monitor, repository):
        add_facebook_session(repository)
        driver = make_driver(counts={FB_CARD: 1})
        engine, _ = build_engine(driver)

        asyncio.run(engine.run(make_monitor(site="FACEBOOK_MARKETPLACE", search_url=FB_URL)))

        assert driver.wait_calls[0] == (FB_CARD, 8000)
        assert driver.waits[0] == 4000


class TestDiagnosisRuns:
    """Test runs that end without content."""

    def test_no_results_skips_extraction(self, build_engine, make_driver, make_monitor, sink):
        driver = make_driver(signals=PageSignals(has_no_results_msg=True))
        engine, _ = build_engine(driver)

        result = asyncio.run(engine.run(make_monitor()))

        assert result.page_type == PageType.NO_RESULTS
        assert result.ads == []
        assert driver.plans == []
        assert driver.fractions == []
        assert result.record.selector_used is None
        assert result.record.container_attempts == 3
        assert sink.by_page_type(PageType.NO_RESULTS) == [result.record]

    def test_cookies_required_without_session_runs_anonymously(
        self, build_engine, make_driver, make_monitor, sink
    ):
        driver = make_driver(signals=PageSignals(has_login_text=True))
        engine, factory = build_engine(driver)

        result = asyncio.run(engine.run(make_monitor(site="FACEBOOK_MARKETPLACE", search_url=FB_URL)))

        assert result.page_type == PageType.LOGIN_REQUIRED
        assert result.record.authenticated is False
        assert factory.opened_with == [None]
        assert len(sink.records) == 1

    def test_checkpoint_penalizes_session(self, build_engine, make_driver, make_monitor, repository):
        add_facebook_session(repository)
        driver = make_driver(signals=PageSignals(has_checkpoint=True))
        engine, _ = build_engine(driver)

        result = asyncio.run(engine.run(make_monitor(site="FACEBOOK_MARKETPLACE", search_url=FB_URL)))

        assert result.page_type == PageType.CHECKPOINT
        saved = asyncio.run(repository.get("fb-main"))
        assert saved.health.health_score == 50
        assert saved.health.consecutive_failures == 1

    def test_empty_page_is_blocked(self, build_engine, make_driver, make_monitor):
        engine, _ = build_engine(make_driver())
        assert asyncio.run(engine.run(make_monitor())).page_type == PageType.BLOCKED


class TestRejectedRuns:
    """Test runs that fail before or during navigation."""

    def test_unknown_site(self, build_engine, make_driver, make_monitor, sink):
        engine, factory = build_engine(make_driver())
        with pytest.raises(UnknownSiteError):
            asyncio.run(engine.run(make_monitor(site="CRAIGSLIST")))
        assert factory.opened_with == []
        assert sink.records == []

    def test_unsupported_url_consumes_nothing(self, build_engine, make_driver, make_monitor, sink):
        engine, factory = build_engine(make_driver())
        monitor = make_monitor(site="FACEBOOK_MARKETPLACE", search_url="https://www.facebook.com/groups/123/")

        with pytest.raises(UnsupportedUrlError):
            asyncio.run(engine.run(monitor))

        assert engine.rate_limiter.status("FACEBOOK_MARKETPLACE") is None
        assert factory.opened_with == []
        assert sink.records == []

    def test_navigation_error_commits_nothing(self, build_engine, make_driver, make_monitor, repository, sink):
        add_facebook_session(repository, score=70)
        driver = make_driver(navigation_error=NavigationError("timeout", url=FB_URL, timeout_ms=60000))
        engine, factory = build_engine(driver)

        with pytest.raises(NavigationError):
            asyncio.run(engine.run(make_monitor(site="FACEBOOK_MARKETPLACE", search_url=FB_URL)))

        assert sink.records == []
        assert factory.closed == 1
        saved = asyncio.run(repository.get("fb-main"))
        assert saved.health.health_score == 70
        assert saved.version == 0

    def test_cancellation_before_commit(self, build_engine, make_driver, make_monitor, repository, sink):
        add_facebook_session(repository, score=70)

        class HangingDriver(make_driver):
            async def read_signals(self, query):
                self.started.set()
                await asyncio.Event().wait()

        driver = HangingDriver()
        engine, factory = build_engine(driver)

        async def scenario():
            driver.started = asyncio.Event()
            task = asyncio.create_task(
                engine.run(make_monitor(site="FACEBOOK_MARKETPLACE", search_url=FB_URL))
            )
            await driver.started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert sink.records == []
        assert factory.closed == 1
        assert asyncio.run(repository.get("fb-main")).version == 0


class TestLoggingDiagnosisSink:
    """Test the logging sink."""

    def test_emits_record_as_json(self):
        log = get_logger("adradar.tests.sink")
        captured = []

        class Capture(logging.Handler):
            def emit(self, record):
                captured.append(record)

        handler = Capture()
        log.addHandler(handler)
        try:
            record = DiagnosisRecord(
                monitor_id="mon-1",
                site="OLX",
                page_type=PageType.BLOCKED,
                url="https://www.olx.com.br/",
                final_url="https://www.olx.com.br/",
                signals=PageSignals(has_cloudflare=True),
                selector_used=None,
                authenticated=False,
                auth_source="anonymous",
                anti_detection="minimal",
                skipped_reasons={"no_url": 1},
            )
            asyncio.run(LoggingDiagnosisSink(log).emit(record))
        finally:
            log.removeHandler(handler)

        assert captured[0].levelno == logging.WARNING
        payload = json.loads(captured[0].getMessage())
        assert payload["event"] == "diagnosis_record"
        assert payload["page_type"] == "BLOCKED"
        assert payload["signals"]["has_cloudflare"] is True
        assert payload["skipped_reasons"] == {"no_url": 1}

    def test_record_is_read_only(self):
        record = DiagnosisRecord(
            monitor_id="mon-1",
            site="OLX",
            page_type=PageType.CONTENT,
            url="u",
            final_url="u",
            signals=PageSignals(),
            selector_used=".card",
            authenticated=False,
            auth_source="anonymous",
            anti_detection="minimal",
            skipped_reasons={"no_url": 2},
        )
        with pytest.raises(TypeError):
            record.skipped_reasons["no_url"] = 3
