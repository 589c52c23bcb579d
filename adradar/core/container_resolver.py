"""
Selector fallback resolution over a live page.

wait_for_container escalates through the site's timeout levels, trying
every candidate selector at each level. Not finding a container is a
normal, retryable outcome and is reported in the result, not raised.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from adradar.domain.interfaces.page_driver import PageDriver
from adradar.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LEVEL_PAUSE_MS = 1000


@dataclass(frozen=True)
class ContainerResult:
    """
    Outcome of a container wait.

    Attributes:
        success: Whether any selector matched.
        selector: The matching selector, None on failure.
        timeout: Timeout level (ms) at which the match happened, or the
            last level on failure.
        attempts: 1-based index of the level that matched, or the number
            of levels on failure.
    """
    success: bool
    selector: Optional[str]
    timeout: int
    attempts: int


@dataclass(frozen=True)
class SelectorMatch:
    selector: Optional[str]
    count: int


class ContainerResolver:
    """Resolves the first working selector from a fallback chain."""

    def __init__(self, driver: PageDriver, level_pause_ms: int = DEFAULT_LEVEL_PAUSE_MS):
        self.driver = driver
        self.level_pause_ms = level_pause_ms

    async def _count_waiting(self, selector: str, timeout_ms: int) -> int:
        try:
            return await self.driver.wait_for_selector(selector, timeout_ms)
        except Exception as e:
            logger.debug(f"Selector {selector!r} failed at {timeout_ms}ms: {e}")
            return 0

    async def wait_for_container(
        self,
        selectors: Sequence[str],
        timeouts: Sequence[int],
    ) -> ContainerResult:
        """
        Wait for the first container selector to match.

        Args:
            selectors: Candidate selectors in priority order.
            timeouts: Escalating wait budgets in milliseconds.

        Returns:
            ContainerResult describing which selector matched and when.
        """
        if not timeouts:
            raise ValueError("timeouts must not be empty")

        for level, timeout in enumerate(timeouts):
            for selector in selectors:
                count = await self._count_waiting(selector, timeout)
                if count > 0:
                    logger.debug(f"Container {selector!r} matched {count} elements at level {level + 1}")
                    return ContainerResult(success=True, selector=selector, timeout=timeout, attempts=level + 1)

            if level < len(timeouts) - 1 and self.level_pause_ms > 0:
                await self.driver.wait(self.level_pause_ms)

        logger.info(f"No container matched after {len(timeouts)} levels (last timeout {timeouts[-1]}ms)")
        return ContainerResult(success=False, selector=None, timeout=timeouts[-1], attempts=len(timeouts))

    async def find_selector(self, selectors: Sequence[str]) -> SelectorMatch:
        """First selector with a non-zero count right now. No waiting."""
        for selector in selectors:
            try:
                count = await self.driver.count(selector)
            except Exception as e:
                logger.debug(f"Selector {selector!r} count failed: {e}")
                continue
            if count > 0:
                return SelectorMatch(selector=selector, count=count)
        return SelectorMatch(selector=None, count=0)
