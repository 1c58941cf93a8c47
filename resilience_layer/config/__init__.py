"""Unified configuration layer for the resilience components.

Goals
-----
* Centralize defaults (breaker thresholds, rate-limit buckets, timeouts).
* Merge sources in a predictable order (later wins):
    1. Built-in defaults (``config/defaults.py``)
    2. Optional external config file (JSON or YAML) named by RESILIENCE_CONFIG_FILE
    3. Environment variables
    4. In-code overrides passed to :func:`get_settings`
* Validate the merged result once with a Pydantic v2 model so invalid values
  fail at startup instead of deep inside a request.

Environment Variable Conventions
--------------------------------
RESILIENCE_ENV (alias APP_ENV), RESILIENCE_REDIS_URL (alias REDIS_URL),
RESILIENCE_LOG_LEVEL, RESILIENCE_REQUEST_TIMEOUT_SECONDS,
RESILIENCE_BREAKER_FAILURE_THRESHOLD, RESILIENCE_BREAKER_RESET_TIMEOUT,
RESILIENCE_BREAKER_HALF_OPEN_REQUESTS.

External Config File (Optional)
-------------------------------
JSON is tried first, then YAML. Structure example:

```
environment: production
breaker:
  failure_threshold: 3
buckets:
  write: {limit: 5, window_seconds: 30}
```

Public API
----------
* get_settings(overrides: dict | None = None) -> ResilienceSettings
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field

from .defaults import (
    BREAKER_DEFAULT_FAILURE_THRESHOLD,
    BREAKER_DEFAULT_HALF_OPEN_REQUESTS,
    BREAKER_DEFAULT_RESET_TIMEOUT,
    CACHE_DEFAULT_KEY_PREFIX,
    CACHE_DEFAULT_MAXSIZE,
    PRODUCTION_ENVIRONMENT,
    RATE_LIMIT_DEFAULT_BUCKETS,
    REQUEST_TIMEOUT_DEFAULT_SECONDS,
)
from .env import CONFIG_FILE_VAR, get_environment, resolve_store_url


class BreakerSettings(BaseModel):
    """Default thresholds for breakers created by the registry."""

    failure_threshold: int = Field(default=BREAKER_DEFAULT_FAILURE_THRESHOLD, ge=1)
    reset_timeout: float = Field(default=BREAKER_DEFAULT_RESET_TIMEOUT, ge=0)
    half_open_requests: int = Field(default=BREAKER_DEFAULT_HALF_OPEN_REQUESTS, ge=1)


class BucketSettings(BaseModel):
    limit: int = Field(gt=0)
    window_seconds: float = Field(gt=0)


def _default_buckets() -> Dict[str, BucketSettings]:
    return {
        name: BucketSettings(limit=limit, window_seconds=window)
        for name, (limit, window) in RATE_LIMIT_DEFAULT_BUCKETS.items()
    }


class ResilienceSettings(BaseModel):
    """Validated settings consumed by the composition root.

    Attributes
    ----------
    environment:
        Deployment environment name; rate limits are enforced only in
        ``production``.
    redis_url:
        Counter/cache store URL. ``None`` is a valid state: limiting fails
        open and recovery treats the cache as empty.
    log_level:
        Level name for the shared ``resilience`` logger.
    request_timeout_seconds:
        Default per-request deadline applied by the HTTP middleware.
    breaker:
        Defaults for lazily created circuit breakers.
    buckets:
        Rate-limit bucket table (``limit`` requests per ``window_seconds``).
    cache_maxsize / cache_key_prefix:
        In-memory cache bound and key namespace for the recovery cache.
    """

    environment: str = Field(default_factory=get_environment)
    redis_url: Optional[str] = None
    log_level: str = "INFO"
    request_timeout_seconds: float = Field(default=REQUEST_TIMEOUT_DEFAULT_SECONDS, gt=0)
    breaker: BreakerSettings = Field(default_factory=BreakerSettings)
    buckets: Dict[str, BucketSettings] = Field(default_factory=_default_buckets)
    cache_maxsize: int = Field(default=CACHE_DEFAULT_MAXSIZE, gt=0)
    cache_key_prefix: str = CACHE_DEFAULT_KEY_PREFIX

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == PRODUCTION_ENVIRONMENT


def _deep_merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in extra.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = _deep_merge(dict(out[key]), value)
        else:
            out[key] = value
    return out


def _load_external_config() -> Dict[str, Any]:
    path = os.getenv(CONFIG_FILE_VAR)
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = yaml.safe_load(text) or {}
    return data if isinstance(data, dict) else {}


_ENV_FIELDS = {
    "RESILIENCE_LOG_LEVEL": ("log_level",),
    "RESILIENCE_REQUEST_TIMEOUT_SECONDS": ("request_timeout_seconds",),
    "RESILIENCE_BREAKER_FAILURE_THRESHOLD": ("breaker", "failure_threshold"),
    "RESILIENCE_BREAKER_RESET_TIMEOUT": ("breaker", "reset_timeout"),
    "RESILIENCE_BREAKER_HALF_OPEN_REQUESTS": ("breaker", "half_open_requests"),
}


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if any(os.getenv(name) for name in ("RESILIENCE_ENV", "APP_ENV")):
        out["environment"] = get_environment()
    url, _ = resolve_store_url()
    if url:
        out["redis_url"] = url
    for var, path in _ENV_FIELDS.items():
        val = os.getenv(var)
        if val is None or not val.strip():
            continue
        target = out
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = val.strip()
    return out


def get_settings(overrides: Optional[Mapping[str, Any]] = None) -> ResilienceSettings:
    """Return merged, validated settings.

    Merge order (later wins): defaults -> external config -> env vars -> overrides.
    Nested sections (``breaker``, ``buckets``) merge key by key.

    Raises
    ------
    pydantic.ValidationError
        When a merged value fails validation (e.g. a non-numeric timeout).
    """
    cfg: Dict[str, Any] = ResilienceSettings().model_dump()
    cfg = _deep_merge(cfg, _load_external_config())
    cfg = _deep_merge(cfg, _env_overrides())
    if overrides:
        cfg = _deep_merge(cfg, overrides)
    return ResilienceSettings.model_validate(cfg)


__all__ = [
    "BreakerSettings",
    "BucketSettings",
    "ResilienceSettings",
    "get_settings",
]
