"""
Entry timing factor.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class EntryTimingFactor(FactorCheck):
    """Confirms when upstream timing analysis flagged an optimal entry."""

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        if optimal_entry:
            return FactorResult.confirms("optimal entry timing")
        return FactorResult.none()
