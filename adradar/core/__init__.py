"""Core extraction engine for AdRadar."""

from .ad_extractor import AdExtractor, ExtractionResult, RawAd, process_raw_ads, resolve_raw_ad
from .container_resolver import ContainerResolver, ContainerResult, SelectorMatch
from .location_matcher import LocationFilter, LocationMatch, match_location
from .marketplace_engine import MarketplaceEngine, RunResult
from .page_diagnoser import PageDiagnoser, classify_page
from .scroller import scroll_page
from .session_pool import SessionPool

__all__ = [
    "AdExtractor",
    "ExtractionResult",
    "RawAd",
    "process_raw_ads",
    "resolve_raw_ad",
    "ContainerResolver",
    "ContainerResult",
    "SelectorMatch",
    "LocationFilter",
    "LocationMatch",
    "match_location",
    "MarketplaceEngine",
    "RunResult",
    "PageDiagnoser",
    "classify_page",
    "scroll_page",
    "SessionPool",
]
