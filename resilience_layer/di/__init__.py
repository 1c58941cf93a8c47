"""Composition root for the resilience layer."""
from __future__ import annotations

from .container import ResilienceContainer, build_container

__all__ = ["ResilienceContainer", "build_container"]
