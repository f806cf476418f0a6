"""
Weighted Aggregator

Combines heterogeneous signals into buy / sell scores without letting any
single detector dominate:

    weight = base_weight(source) x confidence / 100 x multiplier(horizon, timeframe)

Directional signals add their weight to one side; neutral signals add an
attenuated share to both. Every signal adds its full weight to the total,
so the normalised fractions stay within [0, 1].
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence

from config.settings import AggregatorConfig
from decision.models import Direction, MarketContext, Signal, TimeframeClass
from utils.math_utils import clamp, safe_divide

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedScores:
    """
    Weighted buy / sell totals for one signal set.

    Attributes:
        buy_score: Weighted support for BUY
        sell_score: Weighted support for SELL
        total_weight: Sum of all signal weights
        signal_count: Number of signals aggregated
        contributions: (source, direction, weight) per signal, input order
        buy_fraction: buy_score / total_weight in [0, 1]
        sell_fraction: sell_score / total_weight in [0, 1]
    """
    buy_score: float = 0.0
    sell_score: float = 0.0
    total_weight: float = 0.0
    signal_count: int = 0
    contributions: tuple = field(default_factory=tuple)
    buy_fraction: float = 0.0
    sell_fraction: float = 0.0

    @property
    def has_data(self) -> bool:
        return self.total_weight > 0

    @property
    def dominant(self) -> Direction:
        """Side with the larger fraction (neutral on a tie)."""
        if self.buy_fraction > self.sell_fraction:
            return Direction.UP
        if self.sell_fraction > self.buy_fraction:
            return Direction.DOWN
        return Direction.NEUTRAL

    def fraction(self, direction: Direction) -> float:
        if direction is Direction.UP:
            return self.buy_fraction
        if direction is Direction.DOWN:
            return self.sell_fraction
        return 0.0

    def with_fractions(self, buy_fraction: float, sell_fraction: float) -> "AggregatedScores":
        return replace(
            self,
            buy_fraction=clamp(buy_fraction, 0.0, 1.0),
            sell_fraction=clamp(sell_fraction, 0.0, 1.0),
        )

    def __repr__(self) -> str:
        return (
            f"AggregatedScores(buy={self.buy_fraction:.2f}, sell={self.sell_fraction:.2f}, "
            f"weight={self.total_weight:.2f}, n={self.signal_count})"
        )


class WeightedAggregator:
    """
    Computes weighted buy / sell scores from normalised signals.

    This is a pure calculation component - no side effects or state.
    """

    def __init__(self, config: AggregatorConfig = None, name: str = "WeightedAggregator"):
        self.config = config or AggregatorConfig()
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def base_weight(self, source: str) -> float:
        return self.config.base_weights.get(source, self.config.default_base_weight)

    def timeframe_multiplier(self, timeframe_class: TimeframeClass, timeframe: str) -> float:
        """Multiplier for a detector horizon on a chart timeframe (1.0 when unlisted)."""
        row = self.config.timeframe_multipliers.get(timeframe)
        if not row:
            return 1.0
        return row.get(TimeframeClass(timeframe_class).value, 1.0)

    def weight(self, signal: Signal, context: MarketContext) -> float:
        return (
            self.base_weight(signal.source)
            * (signal.confidence / 100.0)
            * self.timeframe_multiplier(signal.timeframe_class, context.timeframe)
        )

    def aggregate(self, signals: Sequence[Signal], context: MarketContext) -> AggregatedScores:
        """
        Aggregate signals into weighted scores.

        Args:
            signals: Normalised signals
            context: Market context (timeframe selects the multiplier row)

        Returns:
            AggregatedScores; all zero for empty input
        """
        buy_score = 0.0
        sell_score = 0.0
        total_weight = 0.0
        contributions: List[tuple] = []
        attenuation = self.config.neutral_attenuation

        for signal in signals:
            weight = self.weight(signal, context)
            if signal.direction is Direction.UP:
                buy_score += weight
            elif signal.direction is Direction.DOWN:
                sell_score += weight
            else:
                buy_score += attenuation * weight
                sell_score += attenuation * weight
            total_weight += weight
            contributions.append((signal.source, signal.direction, weight))

        scores = AggregatedScores(
            buy_score=buy_score,
            sell_score=sell_score,
            total_weight=total_weight,
            signal_count=len(contributions),
            contributions=tuple(contributions),
            buy_fraction=clamp(safe_divide(buy_score, total_weight), 0.0, 1.0),
            sell_fraction=clamp(safe_divide(sell_score, total_weight), 0.0, 1.0),
        )

        self.logger.debug(f"Aggregated: {scores!r}")
        for source, direction, weight in sorted(contributions, key=lambda c: c[2], reverse=True):
            self.logger.debug(f"  • {source} ({direction.value}): {weight:.3f}")

        return scores

    def weights_by_source(self, scores: AggregatedScores) -> Dict[str, float]:
        """Total contributed weight per source."""
        totals: Dict[str, float] = {}
        for source, _, weight in scores.contributions:
            totals[source] = totals.get(source, 0.0) + weight
        return totals
