"""
Support / resistance factor.

Confirms when a confident price-level detector agrees with the direction
(a bounce off support for BUY, a rejection at resistance for SELL).
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class SupportResistanceFactor(FactorCheck):
    """Aligned level detector with confidence > min_confidence."""

    def __init__(self, min_confidence: float = 70.0, **kwargs):
        super().__init__(**kwargs)
        self.min_confidence = min_confidence

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        for signal in self.of(signals, self.sources.levels):
            if signal.direction is direction and signal.confidence > self.min_confidence:
                result = FactorResult.confirms("valid support/resistance interaction")
                self.log_result(result, f"- {signal.source} conf={signal.confidence:.0f}")
                return result
        return FactorResult.none()
