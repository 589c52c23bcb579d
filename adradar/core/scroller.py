"""
Scrolling to trigger lazy-loaded listings before extraction.
"""

from typing import Optional, Sequence

from adradar.domain.interfaces.page_driver import PageDriver
from adradar.sites.models import ScrollConfig, ScrollStrategy

# Generic listing markers used when no item selector is given
ITEM_SELECTORS: Sequence[str] = (
    'a[href*="/marketplace/item/"]',
    '[data-ds-component="DS-AdCard"]',
    'li.ui-search-layout__item',
    '[data-position]',
    'article',
    '[role="listitem"]',
)


async def count_items(driver: PageDriver, item_selector: Optional[str] = None) -> int:
    if item_selector:
        return await driver.count(item_selector)
    for selector in ITEM_SELECTORS:
        count = await driver.count(selector)
        if count > 0:
            return count
    return 0


async def scroll_fixed(driver: PageDriver, steps: int, delay_ms: int) -> int:
    for step in range(steps):
        await driver.scroll_to_fraction((step + 1) / steps)
        await driver.wait(delay_ms)
    return steps


async def scroll_adaptive(
    driver: PageDriver,
    config: ScrollConfig,
    item_selector: Optional[str] = None,
) -> int:
    """Scroll to the bottom until the item count stops growing."""
    scrolls_done = 0
    stable_count = 0
    previous = await count_items(driver, item_selector)

    for _ in range(config.max_scroll_attempts):
        await driver.scroll_to_bottom()
        scrolls_done += 1
        await driver.wait(config.delay_between_scrolls_ms)

        current = await count_items(driver, item_selector)
        if current <= previous:
            stable_count += 1
            if stable_count >= config.stable_threshold:
                break
        else:
            stable_count = 0
        previous = current

    return scrolls_done


async def scroll_page(
    driver: PageDriver,
    config: ScrollConfig,
    item_selector: Optional[str] = None,
) -> int:
    """
    Scroll according to config.

    Args:
        driver: Page to scroll.
        config: Site scroll strategy.
        item_selector: Selector counted by the adaptive strategy.

    Returns:
        Number of scrolls performed.
    """
    if config.strategy == ScrollStrategy.FIXED:
        return await scroll_fixed(driver, config.fixed_steps, config.delay_between_scrolls_ms)
    return await scroll_adaptive(driver, config, item_selector)
