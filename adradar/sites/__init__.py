"""
Marketplace site definitions.

- SiteConfig: validated, immutable per-site configuration
- SiteRules: pure URL / ID / price functions, one class per site
- SiteRegistry: YAML-backed mapping from site id to SiteConfig
"""

from adradar.sites.models import (
    AntiDetectionConfig,
    AuthMode,
    RateLimitConfig,
    ScrollConfig,
    ScrollStrategy,
    SelectorSet,
    SiteConfig,
    StealthLevel,
)
from adradar.sites.registry import SiteRegistry
from adradar.sites.rules import SiteRules, get_rules, register_rules

__all__ = [
    "AntiDetectionConfig",
    "AuthMode",
    "RateLimitConfig",
    "ScrollConfig",
    "ScrollStrategy",
    "SelectorSet",
    "SiteConfig",
    "SiteRegistry",
    "SiteRules",
    "StealthLevel",
    "get_rules",
    "register_rules",
]
