"""Unit tests for selector fallback resolution."""

import asyncio

import pytest

from adradar.core.container_resolver import ContainerResolver


class TestWaitForContainer:
    """Test escalation through timeout levels."""

    def test_first_selector_first_level(self, make_driver):
        driver = make_driver(counts={".a": 4})
        result = asyncio.run(ContainerResolver(driver).wait_for_container([".a", ".b"], [100, 500]))

        assert result.success is True
        assert result.selector == ".a"
        assert result.timeout == 100
        assert result.attempts == 1
        assert driver.waits == []

    def test_escalates_to_later_level(self, make_driver):
        driver = make_driver(counts={".b": 3}, appear_at={".b": 500})
        result = asyncio.run(ContainerResolver(driver).wait_for_container([".a", ".b"], [100, 500]))

        assert result.success is True
        assert result.selector == ".b"
        assert result.timeout == 500
        assert result.attempts == 2
        assert driver.wait_calls == [(".a", 100), (".b", 100), (".a", 500), (".b", 500)]

    def test_pauses_between_levels_only(self, make_driver):
        driver = make_driver()
        result = asyncio.run(
            ContainerResolver(driver, level_pause_ms=250).wait_for_container([".a"], [100, 200, 300])
        )

        assert result.success is False
        assert driver.waits == [250, 250]

    def test_failure_reports_last_level(self, make_driver):
        driver = make_driver()
        result = asyncio.run(ContainerResolver(driver).wait_for_container([".a", ".b"], [100, 500]))

        assert result.success is False
        assert result.selector is None
        assert result.timeout == 500
        assert result.attempts == 2

    def test_failing_selector_counts_as_zero(self, make_driver):
        driver = make_driver(counts={".b": 1}, failing={".a"})
        result = asyncio.run(ContainerResolver(driver).wait_for_container([".a", ".b"], [100]))

        assert result.selector == ".b"

    def test_zero_pause_never_waits(self, make_driver):
        driver = make_driver()
        asyncio.run(ContainerResolver(driver, level_pause_ms=0).wait_for_container([".a"], [1, 2, 3]))
        assert driver.waits == []

    def test_empty_timeouts_rejected(self, make_driver):
        with pytest.raises(ValueError):
            asyncio.run(ContainerResolver(make_driver()).wait_for_container([".a"], []))


class TestFindSelector:
    """Test immediate selector lookup."""

    def test_first_non_zero(self, make_driver):
        driver = make_driver(counts={".b": 2, ".c": 5})
        match = asyncio.run(ContainerResolver(driver).find_selector([".a", ".b", ".c"]))

        assert match.selector == ".b"
        assert match.count == 2

    def test_none_found(self, make_driver):
        match = asyncio.run(ContainerResolver(make_driver()).find_selector([".a"]))

        assert match.selector is None
        assert match.count == 0

    def test_skips_failing_selector(self, make_driver):
        driver = make_driver(counts={".b": 1}, failing={".a"})
        match = asyncio.run(ContainerResolver(driver).find_selector([".a", ".b"]))

        assert match.selector == ".b"
