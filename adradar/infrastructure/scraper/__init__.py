# Scraper Package
"""
Request throttling for marketplace scraping.

This module provides:
- TokenBucketRateLimiter: per-site token buckets
"""

from adradar.infrastructure.scraper.rate_limiter import (
    BucketStatus,
    TokenBucketConfig,
    TokenBucketRateLimiter,
    create_rate_limiter_from_config,
)

__all__ = [
    "BucketStatus",
    "TokenBucketConfig",
    "TokenBucketRateLimiter",
    "create_rate_limiter_from_config",
]
