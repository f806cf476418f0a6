"""
Volatility factor.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class VolatilityFactor(FactorCheck):
    """Extreme volatility (> threshold) contradicts any entry."""

    def __init__(self, threshold: float = 90.0, **kwargs):
        super().__init__(**kwargs)
        self.threshold = threshold

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        if context.volatility > self.threshold:
            result = FactorResult.contradicts("extreme volatility")
            self.log_result(result, f"- volatility={context.volatility:.0f}")
            return result
        return FactorResult.none()
