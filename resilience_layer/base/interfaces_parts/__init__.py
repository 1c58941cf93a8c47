"""Store protocols split into single-class modules.

``resilience_layer.base.interfaces`` re-exports these as the stable API.
"""

from .cache_store import CacheStore
from .counter_store import CounterStore
from .window_count import WindowCount

__all__ = ["CacheStore", "CounterStore", "WindowCount"]
