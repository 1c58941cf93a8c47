"""Caller identity resolution for rate limiting.

Priority: an explicit non-empty identity, then the ``cf-connecting-ip``,
``x-real-ip`` and ``x-forwarded-for`` (first hop) headers of the bound
request context, then ``"anonymous"``.
"""
from __future__ import annotations

from typing import Optional, Tuple

from ...config.defaults import RATE_LIMIT_ANONYMOUS_IDENTITY
from ..context import RequestContext, current_context

IDENTITY_HEADERS: Tuple[str, ...] = ("cf-connecting-ip", "x-real-ip", "x-forwarded-for")


def resolve_identity(identity: Optional[str] = None, ctx: Optional[RequestContext] = None) -> str:
    if identity is not None and identity.strip():
        return identity.strip()
    ctx = ctx or current_context()
    for name in IDENTITY_HEADERS:
        value = ctx.header(name)
        if value is None:
            continue
        if name == "x-forwarded-for":
            value = value.split(",")[0].strip()
        if value:
            return value
    return RATE_LIMIT_ANONYMOUS_IDENTITY


__all__ = ["IDENTITY_HEADERS", "resolve_identity"]
