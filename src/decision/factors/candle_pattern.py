"""
Candle pattern factor.

Candlestick patterns are only worth counting when several of them are
confident; a set dominated by weak patterns is treated as misleading.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class CandlePatternFactor(FactorCheck):
    """
    Scoring Logic:
    - >= 2 aligned candle signals with confidence > 75: "reliable candle patterns"
    - more low-confidence (< 60) than high-confidence candle signals:
      "misleading candle patterns"
    """

    def __init__(self, high_confidence: float = 75.0, low_confidence: float = 60.0,
                 min_reliable: int = 2, **kwargs):
        super().__init__(**kwargs)
        self.high_confidence = high_confidence
        self.low_confidence = low_confidence
        self.min_reliable = min_reliable

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        candles = self.of(signals, self.sources.candles)
        if not candles:
            return FactorResult.none()

        high = [s for s in candles if s.confidence > self.high_confidence]
        low = [s for s in candles if s.confidence < self.low_confidence]
        reliable = [s for s in high if s.direction is direction]

        confluence = "reliable candle patterns" if len(reliable) >= self.min_reliable else None
        contraindication = "misleading candle patterns" if len(low) > len(high) else None

        result = FactorResult(confluence=confluence, contraindication=contraindication)
        self.log_result(result, f"- high={len(high)}, low={len(low)}")
        return result
