"""
Backend-agnostic store interfaces for the resilience layer.

Re-exports the Protocols under ``resilience_layer.base.interfaces_parts``.
Concrete in-memory and Redis backends live in ``resilience_layer.stores``;
nothing under ``base`` imports them.
"""

from __future__ import annotations

from .interfaces_parts import CacheStore, CounterStore, WindowCount

__all__ = ["CacheStore", "CounterStore", "WindowCount"]
