"""
Registry of per-partition limiters.

The registry owns the partition key → limiter map for one application
instance. Limiters are created on first use from the configuration of
the key's operation class and kept for the lifetime of the registry.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Mapping, Union

from todoapp.config.settings import (
    READ_SECTION,
    WRITE_SECTION,
    ConfigurationError,
    RateLimitSettings,
)
from todoapp.ratelimit.partition import PartitionKey
from todoapp.ratelimit.replenisher import Replenisher
from todoapp.ratelimit.token_bucket import Clock, NoLimiter, TokenBucketLimiter

logger = logging.getLogger(__name__)

Limiter = Union[TokenBucketLimiter, NoLimiter]

REQUIRED_SECTIONS = (READ_SECTION, WRITE_SECTION)


class RateLimiterRegistry:
    """
    Thread-safe map of partition key → limiter.

    Concurrent first access to the same key from many request handlers
    converges on a single limiter instance.

    Entries are never evicted, so the map grows with the number of
    distinct users seen since startup.
    """

    def __init__(
        self,
        policies: Mapping[str, RateLimitSettings],
        clock: Clock = time.monotonic,
        replenish_interval: float = 0.1,
        autostart_replenisher: bool = True,
    ) -> None:
        missing = [name for name in REQUIRED_SECTIONS if name not in policies]
        if missing:
            raise ConfigurationError(
                f"Missing rate limit configuration section(s): {', '.join(missing)}"
            )
        for name in REQUIRED_SECTIONS:
            if not isinstance(policies[name], RateLimitSettings):
                raise ConfigurationError(f"Rate limit section '{name}' is not a RateLimitSettings")

        self._policies = {name: policies[name] for name in REQUIRED_SECTIONS}
        self._clock = clock
        self._autostart = autostart_replenisher
        self._limiters: dict[PartitionKey, TokenBucketLimiter] = {}
        self._lock = threading.Lock()
        self._no_limiter = NoLimiter()
        self.replenisher = Replenisher(self.replenish_all, interval=replenish_interval)

    def policy(self, operation_class: str) -> RateLimitSettings:
        return self._policies[operation_class]

    def get_or_create(self, key: PartitionKey) -> Limiter:
        """Return the limiter for ``key``, creating it on first use."""
        if key.is_anonymous:
            return self._no_limiter

        limiter = self._limiters.get(key)
        if limiter is not None:
            return limiter

        with self._lock:
            limiter = self._limiters.get(key)
            if limiter is None:
                try:
                    options = self._policies[key.operation_class]
                except KeyError:
                    raise ValueError(f"Unknown operation class: {key.operation_class!r}") from None
                limiter = TokenBucketLimiter(options, clock=self._clock)
                self._limiters[key] = limiter
                logger.debug("Created limiter for partition %s", key)

        if self._autostart and (limiter.is_auto_replenishing or limiter.queue_limit > 0):
            self.replenisher.start()
        return limiter

    @property
    def partition_count(self) -> int:
        with self._lock:
            return len(self._limiters)

    def limiters(self) -> list[TokenBucketLimiter]:
        """Snapshot of all live limiters."""
        with self._lock:
            return list(self._limiters.values())

    def replenish_all(self) -> None:
        """
        Replenisher tick.

        Auto-replenishing buckets are always refilled. Lazily refilled
        buckets are only touched while requests are queued on them, so
        waiters are not stranded until the next request arrives.
        """
        for limiter in self.limiters():
            if limiter.is_auto_replenishing or limiter.queued_count:
                limiter.replenish()

    def close(self) -> None:
        """Stop the background replenisher."""
        self.replenisher.stop()
