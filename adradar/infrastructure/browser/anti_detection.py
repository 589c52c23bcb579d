"""
Anti-detection profile for Playwright browser contexts.

Note: Playwright's route() does not accept comma-joined globs, so each
blocked resource pattern is registered separately.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Dict, List, Optional

from adradar.sites.models import AntiDetectionConfig

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Route

IMAGE_PATTERN = "**/*.{png,jpg,jpeg,gif,svg,ico,webp}"
FONT_PATTERN = "**/*.{woff,woff2,ttf,otf,eot}"
CSS_PATTERN = "**/*.css"
MEDIA_PATTERN = "**/*.{mp4,mp3,avi,mov}"

DEFAULT_VIEWPORT: Dict[str, int] = {"width": 1920, "height": 1080}

VIEWPORTS: List[Dict[str, int]] = [
    {"width": 1920, "height": 1080},
    {"width": 1366, "height": 768},
    {"width": 1536, "height": 864},
    {"width": 1440, "height": 900},
    {"width": 1680, "height": 1050},
    {"width": 1280, "height": 720},
]

STEALTH_SCRIPT = """
    // Hide webdriver flag
    Object.defineProperty(navigator, 'webdriver', {
        get: () => false
    });

    // Appear as regular Chrome
    if (!window.chrome) {
        window.chrome = { runtime: {} };
    }

    // Notifications permission query
    const originalQuery = window.navigator.permissions.query;
    window.navigator.permissions.query = (parameters) =>
        parameters.name === 'notifications'
            ? Promise.resolve({ state: 'denied' })
            : originalQuery(parameters);

    // Override plugins
    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5]
    });

    // Override languages
    Object.defineProperty(navigator, 'languages', {
        get: () => ['pt-BR', 'pt', 'en-US', 'en']
    });
"""


def blocked_patterns(config: AntiDetectionConfig) -> List[str]:
    """Route globs to abort for config."""
    patterns = []
    if config.block_images:
        patterns.append(IMAGE_PATTERN)
    if config.block_fonts:
        patterns.append(FONT_PATTERN)
    if config.block_css:
        patterns.append(CSS_PATTERN)
    if config.block_media:
        patterns.append(MEDIA_PATTERN)
    return patterns


def pick_viewport(config: AntiDetectionConfig, rng: Optional[random.Random] = None) -> Dict[str, int]:
    if not config.randomize_viewport:
        return dict(DEFAULT_VIEWPORT)
    return dict((rng or random).choice(VIEWPORTS))


async def _abort(route: "Route") -> None:
    await route.abort()


async def apply_anti_detection(context: "BrowserContext", config: AntiDetectionConfig) -> None:
    """Install resource blocking and stealth scripts on a fresh context."""
    for pattern in blocked_patterns(config):
        await context.route(pattern, _abort)

    if config.inject_stealth_scripts:
        await context.add_init_script(STEALTH_SCRIPT)
