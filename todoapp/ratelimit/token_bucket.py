"""
Token bucket limiter with a bounded waiter queue.

Each limiter serves one partition. Its state (token count, last
replenishment time, queued waiters) is only touched while holding the
instance lock, so concurrent request handlers and the background
replenisher never observe a negative balance or a count above capacity.

Waiters are asyncio futures bound to the loop of the request that
queued. Tokens for a waiter are deducted under the lock when it is
dequeued; the future is then resolved on its own loop. A waiter that
was cancelled in the meantime gets its tokens put back.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Optional

from todoapp.config.settings import QueueProcessingOrder, RateLimitSettings
from todoapp.ratelimit.lease import GRANTED, Lease

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(eq=False)
class _Waiter:
    """A queued acquisition, compared by identity."""

    cost: int
    loop: asyncio.AbstractEventLoop
    future: asyncio.Future = field(repr=False)


class TokenBucketLimiter:
    """
    Token bucket for a single partition.

    The bucket starts full. With ``auto_replenishment`` the owning
    registry's replenisher calls ``replenish()`` on a timer; otherwise
    tokens for all whole periods elapsed since the last refill are added
    lazily whenever the bucket is accessed.
    """

    def __init__(self, options: RateLimitSettings, clock: Clock = time.monotonic) -> None:
        self._options = options
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = options.token_limit
        self._last_replenish = clock()
        self._queue: deque[_Waiter] = deque()
        self._queue_count = 0

    @property
    def options(self) -> RateLimitSettings:
        return self._options

    @property
    def is_auto_replenishing(self) -> bool:
        return self._options.auto_replenishment

    @property
    def queue_limit(self) -> int:
        return self._options.queue_limit

    @property
    def available_tokens(self) -> int:
        with self._lock:
            return self._tokens

    @property
    def queued_count(self) -> int:
        """Tokens currently requested by queued waiters."""
        with self._lock:
            return self._queue_count

    # ----- Acquisition -----

    def try_acquire(self, cost: int = 1) -> Lease:
        """Take ``cost`` tokens if they are available right now. Never queues."""
        self._check_cost(cost)
        with self._lock:
            now = self._clock()
            if not self.is_auto_replenishing:
                self._replenish_locked(now)
            return self._take_locked(cost) or self._denied_lease_locked(cost, now)

    async def acquire(self, cost: int = 1, timeout: Optional[float] = None) -> Lease:
        """
        Take ``cost`` tokens, queueing if the bucket is empty and the queue has room.

        A queued call resolves once tokens are handed to it, or returns a
        denied lease after ``timeout`` seconds. Cancelling the calling task
        releases the queue slot without consuming tokens.
        """
        self._check_cost(cost)
        loop = asyncio.get_running_loop()

        with self._lock:
            now = self._clock()
            if not self.is_auto_replenishing:
                self._replenish_locked(now)
            lease = self._take_locked(cost)
            if lease is not None:
                return lease
            if self._queue_count + cost > self._options.queue_limit:
                return self._denied_lease_locked(cost, now)
            waiter = _Waiter(cost=cost, loop=loop, future=loop.create_future())
            self._queue.append(waiter)
            self._queue_count += cost

        try:
            if timeout is None:
                return await waiter.future
            return await asyncio.wait_for(waiter.future, timeout)
        except asyncio.TimeoutError:
            self._abandon(waiter)
            with self._lock:
                return self._denied_lease_locked(cost, self._clock())
        except asyncio.CancelledError:
            self._abandon(waiter)
            raise

    # ----- Replenishment -----

    def replenish(self) -> None:
        """Add tokens for every whole period elapsed and serve queued waiters."""
        with self._lock:
            self._replenish_locked(self._clock())

    def _replenish_locked(self, now: float) -> None:
        period = self._options.replenishment_period
        periods = int((now - self._last_replenish) // period)
        if periods <= 0:
            return
        self._last_replenish += periods * period
        self._tokens = min(
            self._options.token_limit,
            self._tokens + periods * self._options.tokens_per_period,
        )
        self._drain_queue_locked()

    # ----- Internals -----

    def _check_cost(self, cost: int) -> None:
        if cost < 1:
            raise ValueError(f"cost must be at least 1, got {cost}")
        if cost > self._options.token_limit:
            raise ValueError(
                f"cost {cost} exceeds the bucket capacity of {self._options.token_limit}"
            )

    def _take_locked(self, cost: int) -> Optional[Lease]:
        # Oldest-first callers may not jump ahead of anyone already queued
        if self._queue_count and self._options.queue_processing_order is QueueProcessingOrder.OLDEST_FIRST:
            return None
        if self._tokens >= cost:
            self._tokens -= cost
            return GRANTED
        return None

    def _denied_lease_locked(self, cost: int, now: float) -> Lease:
        deficit = cost - self._tokens + self._queue_count
        periods = max(math.ceil(deficit / self._options.tokens_per_period), 1)
        wait = periods * self._options.replenishment_period - (now - self._last_replenish)
        return Lease(granted=False, retry_after=max(wait, 0.0))

    def _drain_queue_locked(self) -> None:
        oldest_first = self._options.queue_processing_order is QueueProcessingOrder.OLDEST_FIRST
        while self._queue:
            waiter = self._queue[0] if oldest_first else self._queue[-1]
            if waiter.future.cancelled():
                self._remove_locked(waiter)
                continue
            if self._tokens < waiter.cost:
                break
            self._remove_locked(waiter)
            self._tokens -= waiter.cost
            try:
                waiter.loop.call_soon_threadsafe(self._resolve, waiter)
            except RuntimeError:
                # The waiter's loop is closed; nobody will consume the grant
                self._tokens += waiter.cost

    def _remove_locked(self, waiter: _Waiter) -> bool:
        try:
            self._queue.remove(waiter)
        except ValueError:
            return False
        self._queue_count -= waiter.cost
        return True

    def _resolve(self, waiter: _Waiter) -> None:
        """Runs on the waiter's loop after its tokens were deducted."""
        if waiter.future.done():
            self._refund(waiter.cost)
            return
        waiter.future.set_result(GRANTED)

    def _refund(self, cost: int) -> None:
        with self._lock:
            self._tokens = min(self._options.token_limit, self._tokens + cost)
            self._drain_queue_locked()

    def _abandon(self, waiter: _Waiter) -> None:
        with self._lock:
            if self._remove_locked(waiter):
                logger.debug("Abandoned queued acquisition of %d token(s)", waiter.cost)
                # The head of the queue may have been blocking smaller requests
                self._drain_queue_locked()


class NoLimiter:
    """Limiter that admits everything. Serves the anonymous partition."""

    is_auto_replenishing = False
    queue_limit = 0
    available_tokens = math.inf
    queued_count = 0

    def try_acquire(self, cost: int = 1) -> Lease:
        return GRANTED

    async def acquire(self, cost: int = 1, timeout: Optional[float] = None) -> Lease:
        return GRANTED

    def replenish(self) -> None:
        pass
