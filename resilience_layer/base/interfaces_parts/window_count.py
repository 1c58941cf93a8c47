"""WindowCount value (single-class module)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WindowCount:
    """Counter value after an increment within a fixed window.

    ``reset_at`` is the epoch second at which the window closes.
    """

    count: int
    reset_at: float
