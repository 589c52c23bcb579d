"""
Per-site token bucket rate limiter.

Each site gets a bucket holding up to tokens_per_min tokens, refilled
continuously at tokens_per_min / 60 tokens per second. acquire() never
fails: when the bucket is empty the caller sleeps for exactly the time
until one token is available.

Example:
    >>> limiter = TokenBucketRateLimiter()
    >>> limiter.configure("OLX", tokens_per_min=15)
    >>> await limiter.acquire("OLX")  # Immediate while tokens remain
    >>> limiter.try_acquire("OLX")
    True
"""

from __future__ import annotations

import asyncio
import time
import weakref
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from adradar.utils.logger import get_logger

logger = get_logger(__name__)

# A bucket must be able to hold one whole token
MIN_TOKENS_PER_MIN = 1.0


@dataclass
class TokenBucketConfig:
    """
    Configuration for one site's bucket.

    Attributes:
        tokens_per_min: Bucket capacity, also the refill amount per minute.
    """
    tokens_per_min: float = 10.0

    def __post_init__(self) -> None:
        if self.tokens_per_min < MIN_TOKENS_PER_MIN:
            raise ValueError(f"tokens_per_min must be at least {MIN_TOKENS_PER_MIN}")

    @property
    def capacity(self) -> float:
        return self.tokens_per_min

    @property
    def refill_per_second(self) -> float:
        return self.tokens_per_min / 60.0


@dataclass
class _Bucket:
    config: TokenBucketConfig
    tokens: float
    last_refill: float


@dataclass
class BucketStatus:
    """Point-in-time view of a site's bucket."""
    tokens: float
    capacity: float
    refill_per_second: float


class TokenBucketRateLimiter:
    """
    Token bucket limiter keyed by site.

    Waiters on the same site are serialized by a per-site asyncio.Lock,
    so tokens are handed out in arrival order. Different sites never
    contend. Only cancellation of the caller interrupts a wait.

    Attributes:
        default_config: Rate applied to sites with no explicit configuration.
    """

    def __init__(
        self,
        default_tokens_per_min: float = 10.0,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize the limiter.

        Args:
            default_tokens_per_min: Rate for sites without configure().
            clock: Monotonic clock in seconds (injectable for tests).
            sleep: Async sleep function (injectable for tests).
        """
        if default_tokens_per_min < MIN_TOKENS_PER_MIN:
            raise ValueError(f"default_tokens_per_min must be at least {MIN_TOKENS_PER_MIN}")
        self.default_config = TokenBucketConfig(tokens_per_min=default_tokens_per_min)
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._configs: Dict[str, TokenBucketConfig] = {}
        self._buckets: Dict[str, _Bucket] = {}
        # Locks live only while a caller holds or waits on them
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        logger.debug(f"TokenBucketRateLimiter initialized: default {default_tokens_per_min}/min")

    def configure(self, site: str, tokens_per_min: float) -> None:
        """Set the rate for site. An existing bucket is rebuilt full."""
        if tokens_per_min < MIN_TOKENS_PER_MIN:
            raise ValueError(f"tokens_per_min must be at least {MIN_TOKENS_PER_MIN}")
        config = TokenBucketConfig(tokens_per_min=tokens_per_min)
        self._configs[site] = config
        if site in self._buckets:
            self._buckets[site] = self._new_bucket(config)

    def _config_for(self, site: str) -> TokenBucketConfig:
        return self._configs.get(site, self.default_config)

    def _new_bucket(self, config: TokenBucketConfig) -> _Bucket:
        return _Bucket(config=config, tokens=config.capacity, last_refill=self._clock())

    def _bucket(self, site: str) -> _Bucket:
        bucket = self._buckets.get(site)
        if bucket is None:
            bucket = self._new_bucket(self._config_for(site))
            self._buckets[site] = bucket
        return bucket

    def _lock(self, site: str) -> asyncio.Lock:
        lock = self._locks.get(site)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[site] = lock
        return lock

    def _refill(self, bucket: _Bucket) -> None:
        now = self._clock()
        elapsed = max(0.0, now - bucket.last_refill)
        bucket.tokens = min(
            bucket.config.capacity,
            bucket.tokens + elapsed * bucket.config.refill_per_second,
        )
        bucket.last_refill = now

    async def acquire(self, site: str) -> float:
        """
        Take one token for site, waiting as long as needed.

        Returns:
            Seconds spent waiting for the token.
        """
        waited = 0.0
        async with self._lock(site):
            bucket = self._bucket(site)
            self._refill(bucket)
            while bucket.tokens < 1.0:
                delay = (1.0 - bucket.tokens) / bucket.config.refill_per_second
                logger.debug(f"Rate limiting {site}: waiting {delay:.2f}s")
                await self._sleep(delay)
                waited += delay
                self._refill(bucket)
            bucket.tokens -= 1.0
        return waited

    def try_acquire(self, site: str) -> bool:
        """Take one token if immediately available. Never waits."""
        if self._lock(site).locked():
            return False
        bucket = self._bucket(site)
        self._refill(bucket)
        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return True
        return False

    def status(self, site: str) -> Optional[BucketStatus]:
        """Current bucket state for site, None if it was never used."""
        bucket = self._buckets.get(site)
        if bucket is None:
            return None
        self._refill(bucket)
        return BucketStatus(
            tokens=bucket.tokens,
            capacity=bucket.config.capacity,
            refill_per_second=bucket.config.refill_per_second,
        )

    def reset(self, site: str) -> None:
        """Drop site's bucket; the next acquire starts full."""
        self._buckets.pop(site, None)

    def reset_all(self) -> None:
        self._buckets.clear()


def create_rate_limiter_from_config(registry=None) -> TokenBucketRateLimiter:
    """
    Create a rate limiter from the application config.

    Args:
        registry: Optional SiteRegistry whose per-site rates are applied.

    Returns:
        TokenBucketRateLimiter with the configured default rate.
    """
    from adradar.utils.config import get_config

    config = get_config()
    limiter = TokenBucketRateLimiter(default_tokens_per_min=config.engine.default_tokens_per_min)
    if registry is not None:
        for site in registry.sites():
            limiter.configure(site, registry.require(site).rate_limit.tokens_per_min)
    return limiter
