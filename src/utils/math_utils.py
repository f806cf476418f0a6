"""
Mathematical Utilities

Provides bounded arithmetic used across the decision pipeline:
- Clamping to score ranges
- Safe division for normalisation
- Means over possibly-empty samples
"""

import math
from typing import Iterable, Optional


class StatisticalUtils:
    """Statistical calculation utilities."""

    @staticmethod
    def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
        """Safe division that handles zero denominators."""
        if denominator == 0 or math.isnan(denominator):
            return default
        return numerator / denominator

    @staticmethod
    def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
        """Clamp value into [lower, upper]; non-finite values collapse to lower."""
        if value is None or not math.isfinite(value):
            return lower
        return max(lower, min(upper, value))

    @staticmethod
    def mean(values: Iterable[float]) -> Optional[float]:
        """Arithmetic mean, or None for an empty sample."""
        values = list(values)
        if not values:
            return None
        return math.fsum(values) / len(values)


def clamp(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    """Module-level shortcut for StatisticalUtils.clamp."""
    return StatisticalUtils.clamp(value, lower, upper)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Module-level shortcut for StatisticalUtils.safe_divide."""
    return StatisticalUtils.safe_divide(numerator, denominator, default)
