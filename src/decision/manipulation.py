"""
Manipulation Assessor

Scores how statistically suspicious a signal configuration looks. Rules are
additive and every rule that fires records a human-readable factor.

Primary triggers:
1. Balance - many directional signals split almost evenly
2. Horizon conflict - short and long detectors agree internally but oppose each other
3. Reversal - a strong reversal / trap pattern
4. Volume extremes - abnormally high or low volume readings

Loadings (only once a primary trigger fired):
5. OTC market loading
6. Short chart timeframe loading

Supplementary:
7. OTC one-sided bias
8. Implausibly high detector confidence

The score maps onto a risk tier and, together with the provisional action,
onto a PROCEED / CAUTION / ABORT recommendation.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from config.settings import ManipulationConfig, SourceCategories
from decision.models import (
    Action,
    Direction,
    ManipulationAssessment,
    MarketContext,
    Recommendation,
    RiskTier,
    Signal,
    TimeframeClass,
)
from utils.math_utils import StatisticalUtils, clamp

logger = logging.getLogger(__name__)


class ManipulationAssessor:
    """
    Anti-manipulation scoring.

    This is a pure calculation component - no side effects or state.
    """

    def __init__(
        self,
        config: ManipulationConfig = None,
        sources: SourceCategories = None,
        name: str = "ManipulationAssessor",
    ):
        self.config = config or ManipulationConfig()
        self.sources = sources or SourceCategories()
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    def assess(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        provisional_action: Action,
    ) -> ManipulationAssessment:
        """
        Assess a signal set for manipulation risk.

        Args:
            signals: Normalised signals
            context: Market context
            provisional_action: Action the engine is leaning towards

        Returns:
            ManipulationAssessment with score, factors, tier and recommendation
        """
        factors: List[str] = []
        score = 0.0

        for rule in (self._balance, self._horizon_conflict, self._reversal, self._volume_extremes):
            points, reasons = rule(signals)
            score += points
            factors.extend(reasons)

        triggered = score > 0

        if triggered:
            if context.is_otc and self.config.otc_loading > 0:
                score += self.config.otc_loading
                factors.append(f"OTC market loading (+{self.config.otc_loading:.0f})")

            loading = self.config.timeframe_loadings.get(context.timeframe, 0.0)
            if loading > 0:
                score += loading
                factors.append(f"{context.timeframe} timeframe loading (+{loading:.0f})")

        points, reasons = self._otc_one_sided(signals, context)
        score += points
        factors.extend(reasons)

        points, reasons = self._implausible_confidence(signals)
        score += points
        factors.extend(reasons)

        score = round(clamp(score), 2)
        tier = self.risk_tier(score)
        recommendation = self.recommend(score, provisional_action)

        assessment = ManipulationAssessment(
            score=score,
            suspicious_factors=tuple(factors),
            risk_tier=tier,
            recommendation=recommendation,
        )

        self.logger.debug(f"Manipulation score {score:.0f} ({tier.value}) -> {recommendation.value}")
        for factor in factors:
            self.logger.debug(f"  • {factor}")

        return assessment

    def risk_tier(self, score: float) -> RiskTier:
        thresholds = self.config.tier_thresholds
        if score >= thresholds["CRITICAL"]:
            return RiskTier.CRITICAL
        if score >= thresholds["HIGH"]:
            return RiskTier.HIGH
        if score >= thresholds["MEDIUM"]:
            return RiskTier.MEDIUM
        return RiskTier.LOW

    def recommend(self, score: float, provisional_action: Action) -> Recommendation:
        if Action(provisional_action) is Action.WAIT:
            return Recommendation.PROCEED
        if score >= self.config.abort_threshold:
            return Recommendation.ABORT
        if score >= self.config.caution_threshold:
            return Recommendation.CAUTION
        return Recommendation.PROCEED

    # ========================================================================
    # Primary triggers
    # ========================================================================

    def _balance(self, signals: Sequence[Signal]) -> Tuple[float, List[str]]:
        cfg = self.config
        up = [s for s in signals if s.direction is Direction.UP]
        down = [s for s in signals if s.direction is Direction.DOWN]
        directional = len(up) + len(down)

        if directional < cfg.balance_min_directional:
            return 0.0, []

        balance_ratio = abs(len(up) - len(down)) / directional
        if balance_ratio >= cfg.balance_ratio_threshold:
            return 0.0, []

        points = cfg.balance_max_points * (1.0 - balance_ratio / cfg.balance_ratio_threshold)
        reasons = [f"suspiciously balanced signals ({len(up)} up / {len(down)} down)"]

        up_strength = StatisticalUtils.mean(s.strength for s in up)
        down_strength = StatisticalUtils.mean(s.strength for s in down)
        if (up_strength is not None and down_strength is not None
                and up_strength > cfg.opposing_strength_threshold
                and down_strength > cfg.opposing_strength_threshold):
            points += cfg.opposing_strength_points
            reasons.append("high-strength opposing signals")

        return points, reasons

    def _horizon_conflict(self, signals: Sequence[Signal]) -> Tuple[float, List[str]]:
        cfg = self.config
        short = [s for s in signals if s.timeframe_class is TimeframeClass.SHORT and s.is_directional]
        long = [s for s in signals if s.timeframe_class is TimeframeClass.LONG and s.is_directional]

        short_direction = _unanimous(short)
        long_direction = _unanimous(long)
        if short_direction is None or long_direction is None or short_direction is long_direction:
            return 0.0, []

        points = cfg.horizon_conflict_points
        reasons = [
            f"short-horizon signals ({short_direction.value}) contradict "
            f"long-horizon signals ({long_direction.value})"
        ]

        short_strength = StatisticalUtils.mean(s.strength for s in short)
        long_strength = StatisticalUtils.mean(s.strength for s in long)
        if short_strength > cfg.horizon_strength_threshold and long_strength > cfg.horizon_strength_threshold:
            points += cfg.horizon_strength_points
            reasons.append("strong conflicting horizons")

        return points, reasons

    def _reversal(self, signals: Sequence[Signal]) -> Tuple[float, List[str]]:
        cfg = self.config
        reversals = [s for s in signals if s.source in self.sources.reversal]
        if not reversals:
            return 0.0, []

        strongest = max(reversals, key=lambda s: s.strength)
        if strongest.strength <= cfg.reversal_strength_threshold:
            return 0.0, []

        span = max(1.0, cfg.reversal_full_strength - cfg.reversal_strength_threshold)
        points = min(
            cfg.reversal_max_points,
            cfg.reversal_max_points * (strongest.strength - cfg.reversal_strength_threshold) / span,
        )
        return points, [f"strong reversal pattern ({strongest.source}, strength {strongest.strength:.0f})"]

    def _volume_extremes(self, signals: Sequence[Signal]) -> Tuple[float, List[str]]:
        cfg = self.config
        strength = StatisticalUtils.mean(s.strength for s in signals if s.source in self.sources.volume)
        if strength is None:
            return 0.0, []
        if strength > cfg.volume_high_threshold:
            return cfg.volume_high_points, [f"abnormal volume spike (strength {strength:.0f})"]
        if strength < cfg.volume_low_threshold:
            return cfg.volume_low_points, [f"abnormally low volume (strength {strength:.0f})"]
        return 0.0, []

    # ========================================================================
    # Supplementary rules
    # ========================================================================

    def _otc_one_sided(self, signals: Sequence[Signal], context: MarketContext) -> Tuple[float, List[str]]:
        if not context.is_otc:
            return 0.0, []

        directional = [s for s in signals if s.is_directional]
        if not directional:
            return 0.0, []

        buy = sum(s.strength * s.confidence / 100.0 for s in directional if s.direction is Direction.UP)
        sell = sum(s.strength * s.confidence / 100.0 for s in directional if s.direction is Direction.DOWN)
        ratio = max(buy, sell) / max(0.01, min(buy, sell))

        if ratio <= self.config.otc_bias_ratio:
            return 0.0, []
        side = "buy" if buy > sell else "sell"
        return self.config.otc_bias_points, [f"OTC one-sided {side} bias"]

    def _implausible_confidence(self, signals: Sequence[Signal]) -> Tuple[float, List[str]]:
        suspicious = [s for s in signals if s.confidence >= self.config.implausible_confidence]
        if not suspicious:
            return 0.0, []
        names = ", ".join(sorted({s.source for s in suspicious}))
        return self.config.implausible_confidence_points, [f"implausibly high confidence ({names})"]


def _unanimous(signals: Sequence[Signal]) -> Optional[Direction]:
    """Shared direction of a non-empty group, else None."""
    directions = {s.direction for s in signals}
    if len(directions) == 1:
        return directions.pop()
    return None
