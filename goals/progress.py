"""Progress derivation rules."""

from __future__ import annotations

import math


def clamp_progress(value: float) -> int:
    """Round half up and clamp into [0, 100]."""
    return max(0, min(100, math.floor(value + 0.5)))


def compute_progress(current_value: float | None, target_value: float | None) -> int | None:
    """Percentage of ``target_value`` reached, or None when it cannot be derived."""
    if current_value is None or target_value is None or target_value <= 0:
        return None
    return clamp_progress(100 * current_value / target_value)


def initial_progress(current_value: float | None, target_value: float | None) -> int:
    derived = compute_progress(current_value, target_value)
    return 0 if derived is None else derived
