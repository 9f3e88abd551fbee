"""Per-user token bucket rate limiting."""

from todoapp.ratelimit.lease import GRANTED, Lease
from todoapp.ratelimit.middleware import AdmissionGateMiddleware
from todoapp.ratelimit.partition import (
    ANONYMOUS,
    ANONYMOUS_KEY,
    PartitionKey,
    build_partition_key,
    is_authenticated,
    operation_class,
    resolve_identity,
)
from todoapp.ratelimit.registry import RateLimiterRegistry
from todoapp.ratelimit.replenisher import Replenisher
from todoapp.ratelimit.responder import rate_limited_response, retry_after_seconds
from todoapp.ratelimit.token_bucket import NoLimiter, TokenBucketLimiter

__all__ = [
    "GRANTED",
    "Lease",
    "AdmissionGateMiddleware",
    "ANONYMOUS",
    "ANONYMOUS_KEY",
    "PartitionKey",
    "build_partition_key",
    "is_authenticated",
    "operation_class",
    "resolve_identity",
    "RateLimiterRegistry",
    "Replenisher",
    "rate_limited_response",
    "retry_after_seconds",
    "NoLimiter",
    "TokenBucketLimiter",
]
