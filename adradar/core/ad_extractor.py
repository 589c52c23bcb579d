"""
Ad extraction and filtering.

The page driver returns one plain ElementSnapshot per container element.
Everything after that is pure Python: resolving raw fields with their
fallbacks, normalizing URLs and IDs through the site's rules, parsing
prices and applying the monitor's price and location filters. Every
rejected ad increments a named skip counter.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from adradar.core.container_resolver import ContainerResolver
from adradar.core.location_matcher import LocationFilter, match_location
from adradar.domain.entities.monitor import MonitorWithFilters
from adradar.domain.entities.scraped_ad import ScrapedAd
from adradar.domain.interfaces.page_driver import ElementSnapshot, ExtractionPlan, PageDriver
from adradar.sites.models import SiteConfig
from adradar.utils.logger import get_logger

logger = get_logger(__name__)

CURRENCY_MARKERS = ("R$", "$", "€", "£")

SKIP_NO_URL = "no_url"
SKIP_NO_EXTERNAL_ID = "no_external_id"
SKIP_NO_TITLE = "no_title"
SKIP_PRICE_BELOW_MIN = "price_below_min"
SKIP_PRICE_ABOVE_MAX = "price_above_max"


@dataclass
class RawAd:
    """Unvalidated field values for one container element."""
    title: str = ""
    price_text: str = ""
    url: str = ""
    image_url: str = ""
    location: str = ""


@dataclass
class ExtractionResult:
    """
    Ads that survived validation and filtering.

    Attributes:
        ads: Valid ads in page order.
        ads_raw: Number of container elements read successfully.
        skipped_reasons: Count of rejected ads per reason.
    """
    ads: List[ScrapedAd] = field(default_factory=list)
    ads_raw: int = 0
    skipped_reasons: Dict[str, int] = field(default_factory=dict)


def _looks_like_title(text: str) -> bool:
    if not (3 < len(text) < 200):
        return False
    if text[0].isdigit():
        return False
    return not any(marker in text for marker in CURRENCY_MARKERS)


def resolve_raw_ad(snapshot: ElementSnapshot) -> RawAd:
    """Apply title, URL, image and location fallbacks to one snapshot."""
    is_anchor = snapshot.tag == "a"

    title = snapshot.title_text.strip() or snapshot.heading_text.strip()
    if not title and is_anchor:
        # Anchor cards (Facebook) carry the title in an unlabelled span
        for text in snapshot.span_texts:
            text = (text or "").strip()
            if _looks_like_title(text):
                title = text
                break

    if is_anchor:
        url = snapshot.href or ""
    else:
        url = snapshot.link_href or snapshot.first_link_href or ""

    image_url = ""
    for attributes in snapshot.images:
        if attributes is None:
            continue
        image_url = next((value for value in attributes if value), "")
        if image_url:
            break

    location = ""
    for text in snapshot.location_texts:
        if text and text.strip():
            location = text.strip()
            break

    return RawAd(
        title=title,
        price_text=snapshot.price_text.strip(),
        url=url.strip(),
        image_url=image_url,
        location=location,
    )


def _validate_raw_ad(
    raw: RawAd,
    config: SiteConfig,
    monitor: MonitorWithFilters,
    location_filter: LocationFilter,
) -> Union[ScrapedAd, str]:
    """Return the validated ad, or the name of the first check it failed."""
    url = config.normalize_url(raw.url)
    if not url:
        return SKIP_NO_URL

    external_id = config.extract_external_id(url)
    if not external_id:
        return SKIP_NO_EXTERNAL_ID

    if not raw.title:
        return SKIP_NO_TITLE

    price = config.parse_price(raw.price_text)

    if monitor.price_min is not None and price > 0 and price < monitor.price_min:
        return SKIP_PRICE_BELOW_MIN
    if monitor.price_max is not None and price > 0 and price > monitor.price_max:
        return SKIP_PRICE_ABOVE_MAX

    if monitor.has_location_filter:
        result = match_location(raw.location, location_filter)
        if not result.match:
            return result.reason

    return ScrapedAd(
        external_id=external_id,
        title=raw.title,
        price=price,
        url=url,
        image_url=raw.image_url or None,
        location=raw.location or None,
    )


def process_raw_ads(
    raw_ads: Iterable[RawAd],
    config: SiteConfig,
    monitor: MonitorWithFilters,
) -> ExtractionResult:
    """
    Validate and filter raw ads in order.

    Price 0 means unparseable or free and bypasses the min/max filters.
    An ad whose validation raises is dropped without a skip count; the
    rest of the batch is unaffected.
    """
    raw_ads = list(raw_ads)
    ads: List[ScrapedAd] = []
    skipped: Counter = Counter()
    location_filter = LocationFilter(
        country=monitor.country,
        state_region=monitor.state_region,
        city=monitor.city,
    )

    for raw in raw_ads:
        try:
            outcome = _validate_raw_ad(raw, config, monitor, location_filter)
        except Exception as e:
            logger.debug(f"Dropping ad {raw.url!r}: {e}")
            continue

        if isinstance(outcome, ScrapedAd):
            ads.append(outcome)
        else:
            skipped[outcome] += 1

    return ExtractionResult(ads=ads, ads_raw=len(raw_ads), skipped_reasons=dict(skipped))


class AdExtractor:
    """Reads container elements through a driver and turns them into ads."""

    def __init__(self, driver: PageDriver, resolver: Optional[ContainerResolver] = None):
        self.driver = driver
        self.resolver = resolver or ContainerResolver(driver)

    async def build_plan(self, container_selector: str, config: SiteConfig) -> ExtractionPlan:
        selectors = config.selectors
        title = await self.resolver.find_selector(selectors.title)
        price = await self.resolver.find_selector(selectors.price)
        link = await self.resolver.find_selector(selectors.link)
        return ExtractionPlan(
            container=container_selector,
            title=title.selector,
            price=price.selector,
            link=link.selector,
            image=tuple(selectors.image),
            location=tuple(selectors.location),
        )

    async def read_raw_ads(self, plan: ExtractionPlan) -> List[RawAd]:
        raw_ads: List[RawAd] = []
        for snapshot in await self.driver.snapshot_elements(plan):
            if snapshot is None:
                continue
            try:
                raw_ads.append(resolve_raw_ad(snapshot))
            except Exception as e:
                logger.debug(f"Dropping unreadable element: {e}")
        return raw_ads

    async def extract(
        self,
        container_selector: str,
        config: SiteConfig,
        monitor: MonitorWithFilters,
    ) -> ExtractionResult:
        """
        Extract valid ads from every element matching container_selector.

        Args:
            container_selector: Selector resolved by wait_for_container.
            config: Site whose selectors and rules apply.
            monitor: Filters to apply.
        """
        plan = await self.build_plan(container_selector, config)
        raw_ads = await self.read_raw_ads(plan)
        result = process_raw_ads(raw_ads, config, monitor)
        logger.debug(
            f"Extracted {len(result.ads)}/{result.ads_raw} ads for monitor {monitor.id} "
            f"(skipped: {result.skipped_reasons})"
        )
        return result
