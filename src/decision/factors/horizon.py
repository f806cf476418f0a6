"""
Horizon alignment factor.

A direction backed on several horizons is sturdier than one resting on a
single horizon; short-term noise fighting the long-term picture is a warning.
"""

from typing import Dict, Optional, Sequence

from decision.factors.base import FactorCheck, FactorResult
from decision.models import Direction, MarketContext, Signal, TimeframeClass


class HorizonAlignmentFactor(FactorCheck):
    """
    Scoring Logic:
    - aligned in >= 2 horizon classes, no class leaning against: "multi-horizon agreement"
    - short and long classes lean opposite ways: "short/long horizon conflict"
    """

    def check(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> FactorResult:
        leans: Dict[TimeframeClass, Optional[Direction]] = {}
        for horizon in TimeframeClass:
            group = [s for s in signals if s.timeframe_class is horizon and s.is_directional]
            if group:
                net = self.net_alignment(group, Direction.UP)
                leans[horizon] = Direction.UP if net > 0 else Direction.DOWN if net < 0 else None

        aligned = [h for h, lean in leans.items() if lean is direction]
        opposing = [h for h, lean in leans.items() if lean is direction.opposite]

        confluence = None
        if len(aligned) >= 2 and not opposing:
            confluence = "multi-horizon agreement"

        contraindication = None
        short_lean = leans.get(TimeframeClass.SHORT)
        long_lean = leans.get(TimeframeClass.LONG)
        if short_lean is not None and long_lean is not None and short_lean is not long_lean:
            contraindication = "short/long horizon conflict"

        result = FactorResult(confluence=confluence, contraindication=contraindication)
        summary = {h.value: (lean.value if lean else None) for h, lean in leans.items()}
        self.log_result(result, f"- leans={summary}")
        return result
