"""Pydantic models describing one marketplace site.

A SiteConfig is configuration data: selector fallback chains, wait
budgets, scroll and anti-detection profiles, diagnosis patterns, plus the
name of the SiteRules implementation supplying the site's pure functions.
"""

import re
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from adradar.sites.rules import SiteRules, get_rules


class AuthMode(str, Enum):
    ANONYMOUS = "anonymous"
    COOKIES_OPTIONAL = "cookies_optional"
    COOKIES_REQUIRED = "cookies_required"


class StealthLevel(str, Enum):
    MINIMAL = "minimal"
    STANDARD = "standard"
    AGGRESSIVE = "aggressive"


class ScrollStrategy(str, Enum):
    FIXED = "fixed"
    ADAPTIVE = "adaptive"


class SelectorSet(BaseModel):
    """Ordered candidate selectors per field. First match wins."""

    model_config = ConfigDict(frozen=True)

    containers: List[str] = Field(..., min_length=1)
    title: List[str] = Field(..., min_length=1)
    price: List[str] = Field(..., min_length=1)
    link: List[str] = Field(..., min_length=1)
    location: List[str] = Field(..., min_length=1)
    image: List[str] = Field(..., min_length=1)

    @field_validator('containers', 'title', 'price', 'link', 'location', 'image')
    @classmethod
    def validate_selectors(cls, v: List[str]) -> List[str]:
        """Reject blank selectors inside a chain."""
        if any(not s or not s.strip() for s in v):
            raise ValueError("Selector chains cannot contain empty selectors")
        return v


class RateLimitConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    tokens_per_min: float = Field(..., ge=1, description="Bucket capacity and refill per minute")


class ScrollConfig(BaseModel):
    """How to trigger lazy loading before extraction."""

    model_config = ConfigDict(frozen=True)

    strategy: ScrollStrategy = ScrollStrategy.FIXED
    fixed_steps: int = Field(default=3, ge=0)
    max_scroll_attempts: int = Field(default=10, ge=1)
    stable_threshold: int = Field(default=2, ge=1)
    delay_between_scrolls_ms: int = Field(default=800, ge=0)


class AntiDetectionConfig(BaseModel):
    """Anti-detection profile applied by the page driver."""

    model_config = ConfigDict(frozen=True)

    stealth_level: StealthLevel = StealthLevel.MINIMAL
    block_images: bool = True
    block_fonts: bool = True
    block_css: bool = False
    block_media: bool = False
    inject_stealth_scripts: bool = False
    randomize_viewport: bool = False


class SiteConfig(BaseModel):
    """Immutable definition of one marketplace site."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    site: str = Field(..., min_length=1)
    domain: str = Field(..., min_length=1)
    auth_mode: AuthMode = AuthMode.ANONYMOUS
    selectors: SelectorSet
    rate_limit: RateLimitConfig
    timeouts: List[int] = Field(..., min_length=1, description="Escalating container wait budgets (ms)")
    navigation_timeout: int = Field(default=30000, gt=0)
    render_delay: int = Field(default=1000, ge=0)
    render_wait_selector: Optional[str] = None
    scroll: ScrollConfig = Field(default_factory=ScrollConfig)
    anti_detection: AntiDetectionConfig = Field(default_factory=AntiDetectionConfig)
    supported_url_patterns: List[str] = Field(default_factory=list)
    no_results_patterns: List[str] = Field(default_factory=list)
    login_patterns: List[str] = Field(default_factory=list)
    checkpoint_patterns: List[str] = Field(default_factory=list)
    rules: SiteRules

    @model_validator(mode='before')
    @classmethod
    def default_rules_to_site(cls, data: Any) -> Any:
        """Sites without an explicit rules entry use the rules named after them."""
        if isinstance(data, dict) and not data.get("rules") and data.get("site"):
            data = {**data, "rules": data["site"]}
        return data

    @field_validator('rules', mode='before')
    @classmethod
    def resolve_rules(cls, v: Any) -> SiteRules:
        """Accept a registered rules name or a SiteRules instance."""
        if isinstance(v, SiteRules):
            return v
        if isinstance(v, str):
            try:
                return get_rules(v)
            except KeyError as e:
                raise ValueError(str(e)) from e
        raise ValueError(f"rules must be a registered name or SiteRules instance, got {type(v).__name__}")

    @field_validator('timeouts')
    @classmethod
    def validate_timeouts(cls, v: List[int]) -> List[int]:
        """Timeout levels must be positive and non-decreasing."""
        if any(t <= 0 for t in v):
            raise ValueError("timeouts must be positive")
        if any(b < a for a, b in zip(v, v[1:])):
            raise ValueError("timeouts must be escalating (non-decreasing)")
        return v

    @field_validator('supported_url_patterns')
    @classmethod
    def validate_url_patterns(cls, v: List[str]) -> List[str]:
        """Ensure every pattern compiles."""
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid URL pattern {pattern!r}: {e}") from e
        return v

    # Pure per-site functions

    def normalize_url(self, url: str) -> str:
        return self.rules.normalize_url(url)

    def extract_external_id(self, url: str) -> str:
        return self.rules.extract_external_id(url)

    def parse_price(self, text: str) -> float:
        return self.rules.parse_price(text)

    def supports_url(self, url: str) -> bool:
        """True when no patterns are configured or any pattern matches url."""
        if not self.supported_url_patterns:
            return True
        return any(re.search(p, url, re.IGNORECASE) for p in self.supported_url_patterns)

    @property
    def requires_session(self) -> bool:
        return self.auth_mode != AuthMode.ANONYMOUS
