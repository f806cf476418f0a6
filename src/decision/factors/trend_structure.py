"""
Trend structure factor.

A directional setup needs a trending market whose structural detectors
(trendlines, levels, chart patterns) lean the same way.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class TrendStructureFactor(FactorCheck):
    """
    Scoring Logic:
    - trend strength > threshold and structure net-aligned: "trend structure valid"
    - trend strength <= threshold: "trend structure invalid"
    - structure net-opposed: "trend structure opposes direction"

    Without structural signals the whole set stands in for structure.
    """

    def __init__(self, trend_threshold: float = 60.0, **kwargs):
        super().__init__(**kwargs)
        self.trend_threshold = trend_threshold

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        structural = self.of(signals, self.sources.structural) or list(signals)
        net = self.net_alignment(structural, direction)

        if net < 0:
            result = FactorResult.contradicts("trend structure opposes direction")
        elif context.trend_strength <= self.trend_threshold:
            result = FactorResult.contradicts("trend structure invalid")
        elif net > 0:
            result = FactorResult.confirms("trend structure valid")
        else:
            result = FactorResult.none()

        self.log_result(result, f"- trend={context.trend_strength:.0f}, net={net}")
        return result
