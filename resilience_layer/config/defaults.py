"""resilience_layer.config.defaults
================================

Central place for the small, stable default values used across the
resilience layer and its HTTP service. Environment variables, an optional
config file, or in-code overrides can replace them (see
``resilience_layer.config``).

This module avoids importing from other packages of the project so it can be
imported anywhere without circular dependencies. Only plain constants live
here; durations are in seconds.
"""

from __future__ import annotations

# ---- Environment ----

# Environment name that turns on enforcement (rate limiting against the store).
PRODUCTION_ENVIRONMENT = "production"
# Assumed environment when neither RESILIENCE_ENV nor APP_ENV is set.
DEFAULT_ENVIRONMENT = "development"


# ---- Circuit breaker ----
BREAKER_DEFAULT_FAILURE_THRESHOLD = 5
BREAKER_DEFAULT_RESET_TIMEOUT = 30.0
BREAKER_DEFAULT_HALF_OPEN_REQUESTS = 3


# ---- Rate limiting ----

# Key namespace for fixed-window counters.
RATE_LIMIT_KEY_PREFIX = "ratelimit"
# Nominal limit/remaining reported when limiting is bypassed (fail-open).
RATE_LIMIT_NOMINAL_LIMIT = 999
# Identity used when no explicit id or client address header is available.
RATE_LIMIT_ANONYMOUS_IDENTITY = "anonymous"

# bucket -> (limit, window_seconds)
RATE_LIMIT_DEFAULT_BUCKETS = {
    "standard": (20, 10.0),
    "sensitive": (5, 60.0),
    "write": (10, 60.0),
    "strict": (3, 60.0),
}


# ---- Cache ----
CACHE_DEFAULT_KEY_PREFIX = "resilience:cache:"
CACHE_DEFAULT_MAXSIZE = 1024


# ---- Service / HTTP layer ----

# Upper bound applied to client-supplied x-request-timeout values.
REQUEST_TIMEOUT_DEFAULT_SECONDS = 30.0
REQUEST_TIMEOUT_MAX_SECONDS = 120.0
SERVICE_DEFAULT_TITLE = "Resilience Layer"
