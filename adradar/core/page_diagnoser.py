"""
Page diagnosis: decide what kind of page a load produced.

classify_page is a pure function over PageSignals. PageDiagnoser gathers
those signals through the page driver, combining the built-in anti-bot
and login selectors with the site's configured text patterns.
"""

from dataclasses import replace

from adradar.domain.entities.page import PageDiagnosis, PageSignals, PageType
from adradar.domain.interfaces.page_driver import MarkerQuery, PageDriver
from adradar.sites.models import SiteConfig
from adradar.utils.logger import get_logger

logger = get_logger(__name__)

RECAPTCHA_SELECTOR = '.g-recaptcha, #g-recaptcha, iframe[src*="recaptcha"]'
HCAPTCHA_SELECTOR = '.h-captcha, iframe[src*="hcaptcha"]'
CLOUDFLARE_SELECTOR = '#cf-wrapper, .cf-browser-verification, #challenge-running, #challenge-form'
DATADOME_SELECTOR = '[data-datadome], iframe[src*="datadome"]'
LOGIN_FORM_SELECTOR = 'form[action*="login"], input[name="user_id"], #login_user_id, input[type="password"]'


def classify_page(signals: PageSignals) -> PageType:
    """
    Map signals to exactly one PageType. First matching rule wins.

    A page with no positive signal at all is treated as BLOCKED.
    """
    if signals.has_recaptcha or signals.has_hcaptcha:
        return PageType.CAPTCHA
    if signals.has_cloudflare or signals.has_datadome:
        return PageType.BLOCKED
    if signals.has_checkpoint:
        return PageType.CHECKPOINT
    if signals.has_login_form or signals.has_login_text:
        return PageType.LOGIN_REQUIRED
    if signals.has_no_results_msg and not signals.has_search_results:
        return PageType.NO_RESULTS
    if signals.has_search_results:
        return PageType.CONTENT
    return PageType.BLOCKED


def build_marker_query(config: SiteConfig) -> MarkerQuery:
    return MarkerQuery(
        recaptcha_selector=RECAPTCHA_SELECTOR,
        hcaptcha_selector=HCAPTCHA_SELECTOR,
        cloudflare_selector=CLOUDFLARE_SELECTOR,
        datadome_selector=DATADOME_SELECTOR,
        login_form_selector=LOGIN_FORM_SELECTOR,
        no_results_patterns=tuple(config.no_results_patterns),
        login_patterns=tuple(config.login_patterns),
        checkpoint_patterns=tuple(config.checkpoint_patterns),
    )


class PageDiagnoser:
    """Collects signals from a driver and classifies the page."""

    def __init__(self, driver: PageDriver):
        self.driver = driver

    async def collect_signals(self, config: SiteConfig, has_search_results: bool) -> PageSignals:
        """
        Read page markers for config.

        Args:
            config: Site whose patterns are checked.
            has_search_results: Outcome of container resolution.
        """
        signals = await self.driver.read_signals(build_marker_query(config))
        return replace(signals, has_search_results=has_search_results)

    async def diagnose(
        self,
        config: SiteConfig,
        requested_url: str,
        has_search_results: bool,
    ) -> PageDiagnosis:
        signals = await self.collect_signals(config, has_search_results)
        page_type = classify_page(signals)
        final_url = await self.driver.current_url()
        title = await self.driver.title()

        logger.debug(
            f"Diagnosis {config.site}: {page_type.value} "
            f"(body={signals.body_length}, visible={signals.visible_elements}, final_url={final_url})"
        )
        return PageDiagnosis(
            page_type=page_type,
            url=requested_url,
            final_url=final_url,
            title=title,
            signals=signals,
        )
