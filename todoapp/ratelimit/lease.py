"""Outcome of a single acquisition attempt against a limiter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Lease:
    """
    Granted or denied admission.

    ``retry_after`` is the number of seconds until the bucket is expected
    to hold enough tokens. Only denied leases carry it, and it may be None
    when the limiter has no estimate.
    """

    granted: bool
    retry_after: Optional[float] = None


GRANTED = Lease(granted=True)
