"""
Consensus factor.

Broad agreement across detectors confirms; a single strong, confident
dissenter contradicts.
"""

from typing import Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal


class ConsensusFactor(FactorCheck):

    def __init__(self, min_directional: int = 3, agreement: float = 0.75,
                 opposing_threshold: float = 70.0, **kwargs):
        super().__init__(**kwargs)
        self.min_directional = min_directional
        self.agreement = agreement
        self.opposing_threshold = opposing_threshold

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        directional = [s for s in signals if s.is_directional]
        aligned = sum(1 for s in directional if s.direction is direction)

        confluence = None
        if len(directional) >= self.min_directional and aligned / len(directional) >= self.agreement:
            confluence = "signal consensus"

        contraindication = None
        if any(
            s.direction is direction.opposite
            and s.strength >= self.opposing_threshold
            and s.confidence >= self.opposing_threshold
            for s in directional
        ):
            contraindication = "strong opposing signals"

        result = FactorResult(confluence=confluence, contraindication=contraindication)
        self.log_result(result, f"- {aligned}/{len(directional)} aligned")
        return result
