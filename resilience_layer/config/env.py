"""resilience_layer.config.env
===========================

Environment variable names and small helpers for the deployment environment
and the counter/cache store location.

Failure Modes
-------------
- Helpers never raise on unset variables; they return ``None`` or the default
  environment and callers decide how to degrade (an absent store URL means
  fail-open rate limiting and cache-miss recovery).
"""

from __future__ import annotations

import os
from typing import Optional, Tuple

from .defaults import DEFAULT_ENVIRONMENT, PRODUCTION_ENVIRONMENT

# Canonical name first, then accepted aliases.
ENVIRONMENT_VARS: Tuple[str, ...] = ("RESILIENCE_ENV", "APP_ENV")
STORE_URL_VARS: Tuple[str, ...] = ("RESILIENCE_REDIS_URL", "REDIS_URL")
CONFIG_FILE_VAR = "RESILIENCE_CONFIG_FILE"


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if the provided string looks like a placeholder/test value.

    Heuristics: contains 'placeholder', 'changeme', 'example', or starts with
    'test_'. Case-insensitive and tolerant of surrounding spaces.
    """
    if val is None:
        return False
    v = str(val).strip().lower()
    return "placeholder" in v or "changeme" in v or "example" in v or v.startswith("test_")


def _first_set(names: Tuple[str, ...]) -> Tuple[Optional[str], Optional[str]]:
    for name in names:
        if val := (os.environ.get(name) or "").strip():
            return val, name
    return None, None


def get_environment() -> str:
    """Return the lowercase deployment environment name."""
    value, _ = _first_set(ENVIRONMENT_VARS)
    return (value or DEFAULT_ENVIRONMENT).lower()


def is_production() -> bool:
    return get_environment() == PRODUCTION_ENVIRONMENT


def resolve_store_url() -> Tuple[Optional[str], Optional[str]]:
    """Return ``(url, env_var_used)`` for the Redis store, or ``(None, None)``.

    Placeholder values count as unset so sample ``.env`` files never point the
    service at a fake host.
    """
    value, name = _first_set(STORE_URL_VARS)
    if value is None or is_placeholder(value):
        return None, None
    return value, name


__all__ = [
    "ENVIRONMENT_VARS",
    "STORE_URL_VARS",
    "CONFIG_FILE_VAR",
    "is_placeholder",
    "get_environment",
    "is_production",
    "resolve_store_url",
]
