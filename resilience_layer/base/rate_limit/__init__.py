"""Identity-based rate limiting over a pluggable counter store."""

from .identity import IDENTITY_HEADERS, resolve_identity
from .limiter import DEFAULT_BUCKETS, BucketConfig, RateLimitDecision, RateLimiter

__all__ = [
    "IDENTITY_HEADERS",
    "resolve_identity",
    "BucketConfig",
    "DEFAULT_BUCKETS",
    "RateLimitDecision",
    "RateLimiter",
]
