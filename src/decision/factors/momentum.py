"""
Momentum factor.

Compares oscillator-type detectors (momentum, RSI, MACD, stochastic) with
the provisional direction.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class MomentumFactor(FactorCheck):
    """
    Scoring Logic:
    - majority aligned: "momentum aligned"
    - majority opposed: "momentum diverges"
    - tie: "momentum indecisive"
    - no momentum signals: nothing
    """

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        momentum = [s for s in self.of(signals, self.sources.momentum) if s.is_directional]
        if not momentum:
            return FactorResult.none()

        net = self.net_alignment(momentum, direction)
        if net > 0:
            result = FactorResult.confirms("momentum aligned")
        elif net < 0:
            result = FactorResult.contradicts("momentum diverges")
        else:
            result = FactorResult.contradicts("momentum indecisive")

        self.log_result(result, f"- {len(momentum)} oscillator(s), net={net}")
        return result
