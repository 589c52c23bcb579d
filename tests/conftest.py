"""Pytest fixtures and configuration for AdRadar tests."""

import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional, Union

# Keep test runs from writing into the project's logs/ directory
os.environ.setdefault("ADRADAR_LOG_DIR", tempfile.mkdtemp(prefix="adradar-logs-"))

import pytest

from adradar.domain.entities.monitor import MonitorWithFilters
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
from adradar.sites.registry import SiteRegistry
from adradar.utils.config import reset_config
from adradar.utils.exceptions import ScraperError

PROJECT_ROOT = Path(__file__).parent.parent
SITES_FILE = PROJECT_ROOT / "config" / "sites.yaml"
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakePageDriver(PageDriver):
    """
    Scripted PageDriver.

    counts: selector -> match count, or a list of counts consumed one per
        call (the last value repeats).
    appear_at: selector -> smallest wait timeout at which it is found.
    failing: selectors whose queries raise ScraperError.
    """

    def __init__(
        self,
        counts: Optional[Dict[str, Union[int, List[int]]]] = None,
        appear_at: Optional[Dict[str, int]] = None,
        failing: Optional[set] = None,
        signals: Optional[PageSignals] = None,
        snapshots: Optional[List[Optional[ElementSnapshot]]] = None,
        final_url: Optional[str] = None,
        page_title: str = "Results",
        navigation_error: Optional[Exception] = None,
    ):
        self.counts = dict(counts or {})
        self.appear_at = dict(appear_at or {})
        self.failing = set(failing or ())
        self.signals = signals or PageSignals()
        self.snapshots = list(snapshots or [])
        self.final_url = final_url
        self.page_title = page_title
        self.navigation_error = navigation_error

        self.url = "about:blank"
        self.waits: List[int] = []
        self.wait_calls: List[tuple] = []
        self.queries: List[MarkerQuery] = []
        self.plans: List[ExtractionPlan] = []
        self.fractions: List[float] = []
        self.bottom_scrolls = 0

    def _count(self, selector: str) -> int:
        if selector in self.failing:
            raise ScraperError(f"Invalid selector {selector}")
        value = self.counts.get(selector, 0)
        if isinstance(value, list):
            return value.pop(0) if len(value) > 1 else value[0]
        return value

    async def goto(self, url: str, timeout_ms: int) -> None:
        if self.navigation_error is not None:
            raise self.navigation_error
        self.url = self.final_url or url

    async def current_url(self) -> str:
        return self.url

    async def title(self) -> str:
        return self.page_title

    async def wait(self, ms: int) -> None:
        self.waits.append(ms)

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> int:
        self.wait_calls.append((selector, timeout_ms))
        if timeout_ms < self.appear_at.get(selector, 0):
            return 0
        return self._count(selector)

    async def count(self, selector: str) -> int:
        return self._count(selector)

    async def read_signals(self, query: MarkerQuery) -> PageSignals:
        self.queries.append(query)
        return self.signals

    async def snapshot_elements(self, plan: ExtractionPlan) -> List[Optional[ElementSnapshot]]:
        self.plans.append(plan)
        return list(self.snapshots)

    async def scroll_to_fraction(self, fraction: float) -> None:
        self.fractions.append(fraction)

    async def scroll_to_bottom(self) -> None:
        self.bottom_scrolls += 1


class FakeDriverFactory(PageDriverFactory):
    """Hands out one FakePageDriver and records what it was opened with."""

    def __init__(self, driver: FakePageDriver):
        self.driver = driver
        self.opened_with: List[Optional[SessionPoolEntry]] = []
        self.closed = 0

    @asynccontextmanager
    async def open(self, config: SiteConfig, session: Optional[SessionPoolEntry] = None):
        self.opened_with.append(session)
        try:
            yield OpenedPage(
                driver=self.driver,
                authenticated=session is not None,
                auth_source="session" if session else "anonymous",
                session_id=session.session_id if session else None,
            )
        finally:
            self.closed += 1


@pytest.fixture(scope="session")
def registry() -> SiteRegistry:
    """Registry loaded from the shipped config/sites.yaml."""
    return SiteRegistry.from_yaml(SITES_FILE)


@pytest.fixture
def facebook_config(registry) -> SiteConfig:
    return registry.require("FACEBOOK_MARKETPLACE")


@pytest.fixture
def olx_config(registry) -> SiteConfig:
    return registry.require("OLX")


@pytest.fixture
def make_monitor():
    """Factory for monitors with sensible defaults."""

    def _make(**overrides) -> MonitorWithFilters:
        values = {
            "id": "mon-1",
            "user_id": "user-1",
            "site": "OLX",
            "search_url": "https://www.olx.com.br/autos-e-pecas/carros/estado-sp",
            "name": "Carros SP",
        }
        values.update(overrides)
        return MonitorWithFilters(**values)

    return _make


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset cached configuration between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_driver():
    """FakePageDriver class, called with its scripting keyword arguments."""
    return FakePageDriver


@pytest.fixture
def make_factory():
    return FakeDriverFactory
