# Browser Package
"""
Page driver implementations.

This module provides:
- PlaywrightDriverFactory / PlaywrightPageDriver: headless Chromium
- StaticHtmlDriverFactory / StaticHtmlPageDriver: BeautifulSoup over saved HTML
- Anti-detection helpers applied to Playwright contexts
"""

from adradar.infrastructure.browser.anti_detection import (
    apply_anti_detection,
    blocked_patterns,
    pick_viewport,
)
from adradar.infrastructure.browser.html_driver import StaticHtmlDriverFactory, StaticHtmlPageDriver
from adradar.infrastructure.browser.playwright_driver import PlaywrightDriverFactory, PlaywrightPageDriver

__all__ = [
    # Playwright
    "PlaywrightDriverFactory",
    "PlaywrightPageDriver",
    # Static HTML
    "StaticHtmlDriverFactory",
    "StaticHtmlPageDriver",
    # Anti-detection
    "apply_anti_detection",
    "blocked_patterns",
    "pick_viewport",
]
