"""
Background replenisher.

Runs in its own thread and periodically invokes a tick callback (the
registry's ``replenish_all``), which refills auto-replenishing buckets
independently of request traffic.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Replenisher:
    """
    Daemon thread that calls ``tick`` every ``interval`` seconds.

    ``start()`` is idempotent so the registry can call it whenever it
    creates a limiter that needs timed refills.
    """

    def __init__(
        self,
        tick: Callable[[], None],
        interval: float = 0.1,
        name: str = "rate-limit-replenisher",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._tick = tick
        self._interval = interval
        self._name = name
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the background thread if it is not already running."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stopped.clear()
            self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
            self._thread.start()
        logger.info("Replenisher '%s' started (interval=%.3fs)", self._name, self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the thread to stop and wait for it to finish."""
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stopped.set()
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)
            logger.info("Replenisher '%s' stopped", self._name)

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def _loop(self) -> None:
        while not self._stopped.wait(self._interval):
            self.run_once()

    def run_once(self) -> None:
        """Execute a single tick synchronously (useful for testing)."""
        try:
            self._tick()
        except Exception:
            logger.exception("Unhandled error in replenisher '%s'", self._name)
