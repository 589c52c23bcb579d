"""Unit tests for the page drivers and the anti-detection profile."""

import asyncio
import random

import pytest

from adradar.core.page_diagnoser import build_marker_query
from adradar.domain.entities.session import SessionPoolEntry
from adradar.domain.interfaces.page_driver import ElementSnapshot, ExtractionPlan
from adradar.infrastructure.browser.anti_detection import (
    DEFAULT_VIEWPORT,
    FONT_PATTERN,
    IMAGE_PATTERN,
    MEDIA_PATTERN,
    STEALTH_SCRIPT,
    VIEWPORTS,
    apply_anti_detection,
    blocked_patterns,
    pick_viewport,
)
from adradar.infrastructure.browser.html_driver import StaticHtmlDriverFactory, StaticHtmlPageDriver
from adradar.infrastructure.browser.playwright_driver import PlaywrightDriverFactory
from adradar.sites.models import AntiDetectionConfig
from adradar.utils.config import BrowserConfig
from adradar.utils.exceptions import NavigationError, ScraperError

PAGE_URL = "https://www.olx.com.br/autos-e-pecas/carros"

CARDS_HTML = """
<html>
<head><title>Carros em SP</title><script>var x = 1;</script></head>
<body>
  <ul>
    <li data-ds-component="DS-AdCard">
      <a href="/autos-e-pecas/carros/1234567"><h2>Gol 1.0 2012</h2></a>
      <span class="price">R$ 25.000</span>
      <span data-testid="ad-location">São Paulo, SP</span>
      <img data-src="https://img.olx.com.br/1.jpg">
    </li>
    <li data-ds-component="DS-AdCard">
      <h3>Uno Mille</h3>
    </li>
  </ul>
  <div hidden>hidden</div>
  <div style="display: none">gone</div>
  <p>Faça login para favoritar</p>
</body>
</html>
"""


class FakeContext:
    """Records calls made on a Playwright BrowserContext."""

    def __init__(self):
        self.routes = []
        self.init_scripts = []

    async def route(self, pattern, handler):
        self.routes.append(pattern)

    async def add_init_script(self, script):
        self.init_scripts.append(script)


class TestAntiDetection:
    """Test the context profile."""

    def test_default_blocks_images_and_fonts(self):
        assert blocked_patterns(AntiDetectionConfig()) == [IMAGE_PATTERN, FONT_PATTERN]

    def test_nothing_blocked(self):
        config = AntiDetectionConfig(block_images=False, block_fonts=False)
        assert blocked_patterns(config) == []

    def test_fixed_viewport(self):
        assert pick_viewport(AntiDetectionConfig()) == DEFAULT_VIEWPORT

    def test_random_viewport(self):
        config = AntiDetectionConfig(randomize_viewport=True)
        assert pick_viewport(config, random.Random(7)) in VIEWPORTS

    def test_apply_aggressive_profile(self, facebook_config):
        context = FakeContext()
        asyncio.run(apply_anti_detection(context, facebook_config.anti_detection))

        assert context.routes == [IMAGE_PATTERN, FONT_PATTERN, MEDIA_PATTERN]
        assert context.init_scripts == [STEALTH_SCRIPT]

    def test_apply_minimal_profile(self, olx_config):
        context = FakeContext()
        asyncio.run(apply_anti_detection(context, olx_config.anti_detection))
        assert context.init_scripts == []


class TestElementSnapshotFromDict:
    """Test decoding in-page script results."""

    def test_decodes_camel_case(self):
        snapshot = ElementSnapshot.from_dict({
            "tag": "A",
            "href": "/marketplace/item/1/",
            "titleText": "Bike",
            "spanTexts": ["Bike", "R$ 300"],
            "priceText": "R$ 300",
            "images": [None, {"src": None, "dataSrc": "x.jpg", "dataLazy": None}],
            "locationTexts": [None, "Curitiba, PR"],
        })

        assert snapshot.tag == "a"
        assert snapshot.title_text == "Bike"
        assert snapshot.heading_text == ""
        assert snapshot.images == [None, (None, "x.jpg", None)]
        assert snapshot.location_texts == [None, "Curitiba, PR"]
        assert snapshot.link_href is None


class TestStaticHtmlPageDriver:
    """Test the BeautifulSoup-backed driver."""

    def test_unknown_url(self):
        driver = StaticHtmlPageDriver({})
        with pytest.raises(NavigationError):
            asyncio.run(driver.goto(PAGE_URL, 1000))

    def test_navigation_and_redirect(self):
        final = PAGE_URL + "/estado-sp"
        driver = StaticHtmlPageDriver({PAGE_URL: CARDS_HTML}, redirects={PAGE_URL: final})

        async def scenario():
            await driver.goto(PAGE_URL, 1000)
            return await driver.current_url(), await driver.title()

        assert asyncio.run(scenario()) == (final, "Carros em SP")

    def test_counts(self):
        driver = StaticHtmlPageDriver.from_html(CARDS_HTML, PAGE_URL)

        async def scenario():
            await driver.goto(PAGE_URL, 1000)
            return (
                await driver.count('[data-ds-component="DS-AdCard"]'),
                await driver.wait_for_selector("h2", 5000),
                await driver.count(".missing"),
            )

        assert asyncio.run(scenario()) == (2, 1, 0)

    def test_read_signals(self, olx_config):
        driver = StaticHtmlPageDriver.from_html(CARDS_HTML, PAGE_URL)

        async def scenario():
            await driver.goto(PAGE_URL, 1000)
            return await driver.read_signals(build_marker_query(olx_config))

        signals = asyncio.run(scenario())

        assert signals.has_login_text is True
        assert signals.has_recaptcha is False
        assert signals.has_no_results_msg is False
        assert signals.has_search_results is False
        assert signals.body_length > 0
        # html, body, ul, 2 li, a, h2, 2 span, img, h3, p
        assert signals.visible_elements == 12

    def test_snapshot_elements(self):
        driver = StaticHtmlPageDriver.from_html(CARDS_HTML, PAGE_URL)
        plan = ExtractionPlan(
            container='[data-ds-component="DS-AdCard"]',
            title="h2",
            price="span.price",
            link="a",
            image=("img",),
            location=('[data-testid="ad-location"]',),
        )

        async def scenario():
            await driver.goto(PAGE_URL, 1000)
            return await driver.snapshot_elements(plan)

        first, second = asyncio.run(scenario())

        assert first.tag == "li"
        assert first.href is None
        assert first.title_text == "Gol 1.0 2012"
        assert first.price_text == "R$ 25.000"
        assert first.link_href == "/autos-e-pecas/carros/1234567"
        assert first.images == [(None, "https://img.olx.com.br/1.jpg", None)]
        assert first.location_texts == ["São Paulo, SP"]
        assert first.span_texts == ["R$ 25.000", "São Paulo, SP"]

        assert second.title_text == ""
        assert second.heading_text == "Uno Mille"
        assert second.link_href is None
        assert second.images == [None]

    def test_waits_and_scrolls_are_counted(self):
        driver = StaticHtmlPageDriver({})

        async def scenario():
            await driver.wait(500)
            await driver.wait(250)
            await driver.scroll_to_fraction(0.5)
            await driver.scroll_to_bottom()

        asyncio.run(scenario())
        assert driver.waited_ms == 750
        assert driver.scrolls == 2


class TestStaticHtmlDriverFactory:
    """Test page handout and auth reporting."""

    def test_session_marks_authenticated(self, facebook_config):
        factory = StaticHtmlDriverFactory({PAGE_URL: CARDS_HTML})
        session = SessionPoolEntry(
            session_id="s1",
            account_label="default",
            health_score=100,
            last_page_type=None,
            last_used_at=None,
            consecutive_failures=0,
        )

        async def scenario():
            async with factory.open(facebook_config, session) as with_session:
                pass
            async with factory.open(facebook_config) as anonymous:
                pass
            return with_session, anonymous

        with_session, anonymous = asyncio.run(scenario())

        assert (with_session.authenticated, with_session.auth_source, with_session.session_id) == (True, "session", "s1")
        assert (anonymous.authenticated, anonymous.auth_source, anonymous.session_id) == (False, "anonymous", None)
        assert len(factory.opened) == 2


class TestPlaywrightDriverFactory:
    """Test the parts of the Playwright factory that need no browser."""

    def make_entry(self, path):
        return SessionPoolEntry(
            session_id="s1",
            account_label="default",
            health_score=100,
            last_page_type=None,
            last_used_at=None,
            consecutive_failures=0,
            storage_state_path=path,
        )

    def test_storage_state_requires_existing_file(self, tmp_path):
        factory = PlaywrightDriverFactory(BrowserConfig())
        state = tmp_path / "fb.json"

        assert factory._storage_state(None) is None
        assert factory._storage_state(self.make_entry(str(state))) is None

        state.write_text("{}", encoding="utf-8")
        assert factory._storage_state(self.make_entry(str(state))) == str(state)

    def test_open_requires_started_browser(self, olx_config):
        factory = PlaywrightDriverFactory(BrowserConfig())

        async def scenario():
            async with factory.open(olx_config):
                pass

        with pytest.raises(ScraperError, match="not started"):
            asyncio.run(scenario())
