"""Command-line interface for running one monitor through the engine.

Usage:
    python -m adradar.cli --site OLX --url "https://www.olx.com.br/autos-e-pecas/carros/estado-sp"
"""

import argparse
import asyncio
import json
import sys
import uuid
from contextlib import AsyncExitStack
from pathlib import Path
from typing import List, Optional

from adradar.core.marketplace_engine import MarketplaceEngine, RunResult
from adradar.core.session_pool import SessionPool
from adradar.domain.entities.monitor import MonitorWithFilters
from adradar.domain.entities.session import SessionRecord
from adradar.infrastructure.browser.html_driver import StaticHtmlDriverFactory
from adradar.infrastructure.browser.playwright_driver import PlaywrightDriverFactory
from adradar.infrastructure.database.session_repository import InMemorySessionRepository
from adradar.infrastructure.metrics.diagnosis_sink import LoggingDiagnosisSink
from adradar.infrastructure.scraper.rate_limiter import create_rate_limiter_from_config
from adradar.sites.registry import SiteRegistry
from adradar.utils import get_config, get_logger, log_execution_time, set_log_level
from adradar.utils.exceptions import AppException

logger = get_logger(__name__)

CLI_USER_ID = "cli"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Run a marketplace monitor once and print the ads found",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List configured sites
  python -m adradar.cli --list-sites

  # Run an OLX search with a price window
  python -m adradar.cli --site OLX --url "https://www.olx.com.br/autos-e-pecas/carros" --price-min 20000 --price-max 60000

  # Facebook Marketplace with saved cookies, filtered to Sao Paulo state
  python -m adradar.cli --site FACEBOOK_MARKETPLACE --url "https://www.facebook.com/marketplace/saopaulo/search?query=iphone" \\
      --storage-state sessions/fb.json --country BR --state SP

  # Replay a saved page without a browser
  python -m adradar.cli --site OLX --url "https://www.olx.com.br/autos-e-pecas/carros" --html saved/olx.html --json
        """
    )

    parser.add_argument('--site', type=str, help='Site identifier (see --list-sites)')
    parser.add_argument('--url', type=str, help='Search results URL to monitor')
    parser.add_argument('--list-sites', action='store_true', help='List configured sites and exit')

    filters = parser.add_argument_group('filters')
    filters.add_argument('--price-min', type=float, default=None, help='Minimum price')
    filters.add_argument('--price-max', type=float, default=None, help='Maximum price')
    filters.add_argument('--country', type=str, default=None, help='ISO-3166-1 alpha-2 country, or WORLDWIDE')
    filters.add_argument('--state', type=str, default=None, help='State or region (whole word match)')
    filters.add_argument('--city', type=str, default=None, help='City (substring match)')

    parser.add_argument(
        '--storage-state',
        type=Path,
        default=None,
        help='Playwright storage state (cookies) used as the session for this run'
    )
    parser.add_argument(
        '--html',
        type=Path,
        default=None,
        help='Serve this saved HTML file instead of launching a browser'
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to configuration file (default: auto-detect)'
    )
    parser.add_argument(
        '--sites-file',
        type=Path,
        default=None,
        help='Site definitions YAML (overrides config)'
    )
    parser.add_argument('--json', action='store_true', help='Print the result as JSON')
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Override log level'
    )

    args = parser.parse_args(argv)
    if not args.list_sites and not (args.site and args.url):
        parser.error("--site and --url are required unless --list-sites is given")
    return args


def print_result(result: RunResult, as_json: bool) -> None:
    record = result.record
    if as_json:
        print(json.dumps({
            "ads": [ad.to_dict() for ad in result.ads],
            "diagnosis": record.to_dict(),
        }, ensure_ascii=False, indent=2, default=str))
        return

    print("\n" + "=" * 60)
    print("RUN SUMMARY")
    print("=" * 60)
    print(f"Site: {record.site}")
    print(f"Page type: {record.page_type.value}")
    print(f"Final URL: {record.final_url}")
    print(f"Container: {record.selector_used or 'NONE'} (level {record.container_attempts})")
    print(f"Authenticated: {record.authenticated} ({record.auth_source})")
    print(f"Ads: {record.ads_valid} valid / {record.ads_raw} raw")
    if record.skipped_reasons:
        print(f"Skipped: {dict(record.skipped_reasons)}")
    print(f"Duration: {record.duration_ms}ms")
    print("=" * 60)

    for i, ad in enumerate(result.ads[:10], 1):
        print(f"  {i}. {ad.title} - R$ {ad.price:,.2f}")
        print(f"     {ad.url}")


async def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = get_config(args.config)
        if args.log_level:
            set_log_level(logger, args.log_level)

        registry = SiteRegistry.from_yaml(args.sites_file or config.sites_path())

        if args.list_sites:
            for site in registry.sites():
                site_config = registry.require(site)
                print(f"{site:<22} {site_config.domain:<22} {site_config.auth_mode.value}")
            return 0

        site = registry.require(args.site)
        monitor = MonitorWithFilters(
            id=f"cli-{uuid.uuid4().hex[:8]}",
            user_id=CLI_USER_ID,
            site=site.site,
            search_url=args.url,
            price_min=args.price_min,
            price_max=args.price_max,
            country=args.country,
            state_region=args.state,
            city=args.city,
        )

        repository = InMemorySessionRepository()
        if args.storage_state:
            await repository.add(SessionRecord(
                id=f"cli-session-{site.site.lower()}",
                user_id=CLI_USER_ID,
                site=site.site,
                storage_state_path=str(args.storage_state),
            ))

        async with AsyncExitStack() as stack:
            if args.html:
                driver_factory = StaticHtmlDriverFactory({args.url: args.html.read_text(encoding='utf-8')})
            else:
                driver_factory = await stack.enter_async_context(PlaywrightDriverFactory(config.browser))

            engine = MarketplaceEngine(
                registry=registry,
                rate_limiter=create_rate_limiter_from_config(registry),
                session_pool=SessionPool(repository, max_retries=config.engine.session_update_retries),
                driver_factory=driver_factory,
                sink=LoggingDiagnosisSink(),
                config=config.engine,
            )

            with log_execution_time(logger, f"{site.site} run"):
                result = await engine.run(monitor)

        print_result(result, args.json)
        return 0

    except KeyboardInterrupt:
        logger.warning("Run interrupted by user")
        return 1

    except AppException as e:
        logger.error(f"Run failed: {e}")
        print(f"\n✗ {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
