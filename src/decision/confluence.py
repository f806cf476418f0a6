"""
Confluence Grader

Turns confirming factors (confluences), contradicting factors
(contraindications), confidence and market context into a letter grade:

    raw = 60 * min(1, confluences / ideal) - 12 * contraindications + 0.6 * (confidence - 50)

The confluence count is never below the number of strong, confident
detectors agreeing with the direction (capped at the ideal count), whatever
categories those detectors belong to.

Penalties apply to unforgiving contexts (30s charts without a strong trend,
OTC markets with any contraindication, high volatility) and a bonus to
broad confluence. Only A and B setups may trade.

Also derives the decision-level risk level and the expected success rate.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from config.settings import GradingConfig
from decision.factors import FactorCheck, create_default_factor_checks
from decision.models import (
    Action,
    Direction,
    Grade,
    ManipulationAssessment,
    MarketContext,
    RiskLevel,
    RiskTier,
    Signal,
)
from utils.math_utils import clamp

logger = logging.getLogger(__name__)


TRADEABLE_GRADES = (Grade.A, Grade.B)

_GRADE_SUCCESS_ADJUSTMENT = {Grade.A: 10, Grade.B: 5, Grade.C: 0, Grade.D: -5, Grade.F: -10}
_RISK_SUCCESS_ADJUSTMENT = {RiskLevel.LOW: 10, RiskLevel.MEDIUM: 0, RiskLevel.HIGH: -15}
_TIER_SUCCESS_PENALTY = {RiskTier.LOW: 0, RiskTier.MEDIUM: 5, RiskTier.HIGH: 10, RiskTier.CRITICAL: 15}


@dataclass
class ConfluenceResult:
    """
    Result from confluence grading.

    Attributes:
        grade: Letter grade
        raw_score: Unclamped grading score
        confluences: Distinct confirming factors
        contraindications: Distinct contradicting factors
        adjustments: Label -> points for every penalty / bonus applied
        agreement: Strong aligned detectors credited (capped at the ideal count)
    """
    grade: Grade
    raw_score: float
    confluences: Tuple[str, ...]
    contraindications: Tuple[str, ...]
    adjustments: dict = field(default_factory=dict)
    agreement: int = 0

    @property
    def confluence_count(self) -> int:
        return max(len(self.confluences), self.agreement)

    @property
    def tradeable(self) -> bool:
        return self.grade in TRADEABLE_GRADES

    def __repr__(self) -> str:
        return (
            f"ConfluenceResult(grade={self.grade.value}, raw={self.raw_score:.1f}, "
            f"confluences={self.confluence_count}, contraindications={len(self.contraindications)})"
        )


class ConfluenceGrader:
    """
    Grades a provisional decision.

    Factor checks run only for a directional provisional action; a check
    that raises is logged and contributes nothing.
    """

    def __init__(
        self,
        config: GradingConfig = None,
        factor_checks: Optional[List[FactorCheck]] = None,
        name: str = "ConfluenceGrader",
    ):
        self.config = config or GradingConfig()
        self.factor_checks = factor_checks if factor_checks is not None else create_default_factor_checks()
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    # ========================================================================
    # Factors
    # ========================================================================

    def derive_factors(
        self,
        signals: Sequence[Signal],
        context: MarketContext,
        direction: Direction,
        optimal_entry: bool = False,
    ) -> Tuple[List[str], List[str]]:
        """
        Run all factor checks against a provisional direction.

        Returns:
            (confluences, contraindications); both empty for a neutral direction
        """
        confluences: List[str] = []
        contraindications: List[str] = []

        if direction not in (Direction.UP, Direction.DOWN):
            return confluences, contraindications

        for factor_check in self.factor_checks:
            try:
                result = factor_check.check(signals, context, direction, optimal_entry)
            except Exception as e:
                self.logger.error(f"Error in factor check {factor_check.name}: {e}")
                self.logger.exception("Full traceback:")
                continue

            if result.confluence:
                confluences.append(result.confluence)
            if result.contraindication:
                contraindications.append(result.contraindication)

        return confluences, contraindications

    def agreement(self, signals: Sequence[Signal], direction: Direction) -> int:
        """
        Count strong, confident detectors aligned with a provisional direction.

        Every aligned signal record counts, whatever its source category.

        Returns:
            Number of agreeing detectors, capped at the ideal confluence count
        """
        if direction not in (Direction.UP, Direction.DOWN):
            return 0

        cfg = self.config
        agreeing = sum(
            1 for s in signals
            if s.direction is direction
            and s.strength >= cfg.agreement_strength
            and s.confidence >= cfg.agreement_confidence
        )
        return min(agreeing, cfg.ideal_confluence_count)

    # ========================================================================
    # Grading
    # ========================================================================

    def grade(
        self,
        confidence: float,
        context: MarketContext,
        confluences: Iterable[str] = (),
        contraindications: Iterable[str] = (),
        agreement: int = 0,
    ) -> ConfluenceResult:
        """
        Grade a setup.

        Args:
            confidence: Current decision confidence (0-100)
            context: Market context
            confluences: Confirming factors (duplicates counted once)
            contraindications: Contradicting factors (duplicates counted once)
            agreement: Strong aligned detectors (see agreement())

        Returns:
            ConfluenceResult
        """
        cfg = self.config
        confirming = _distinct(confluences)
        contradicting = _distinct(contraindications)
        agreement = min(max(0, int(agreement)), cfg.ideal_confluence_count)
        count = max(len(confirming), agreement)
        against = len(contradicting)

        raw = (
            cfg.confluence_points * min(1.0, count / cfg.ideal_confluence_count)
            - cfg.contraindication_penalty * against
            + cfg.confidence_factor * (confidence - 50.0)
        )

        adjustments = {}
        if context.timeframe == "30s" and context.trend_strength < cfg.scalping_trend_threshold:
            adjustments["30s chart without strong trend"] = -cfg.scalping_penalty
        if context.is_otc and against > 0:
            adjustments["OTC market with contraindications"] = -cfg.otc_contraindication_penalty
        if context.volatility > cfg.high_volatility_threshold:
            adjustments["high volatility"] = -cfg.high_volatility_penalty
        if count >= cfg.bonus_confluence_count:
            adjustments["broad confluence"] = cfg.bonus_points

        raw += sum(adjustments.values())
        grade = self.grade_for(raw)

        result = ConfluenceResult(
            grade=grade,
            raw_score=raw,
            confluences=confirming,
            contraindications=contradicting,
            adjustments=adjustments,
            agreement=agreement,
        )

        self.logger.debug(f"Graded: {result!r}")
        for label, points in adjustments.items():
            self.logger.debug(f"  • {label}: {points:+.0f}")

        return result

    def grade_for(self, raw_score: float) -> Grade:
        thresholds = self.config.grade_thresholds
        for grade in (Grade.A, Grade.B, Grade.C, Grade.D):
            if raw_score >= thresholds[grade.value]:
                return grade
        return Grade.F

    # ========================================================================
    # Risk level & success rate
    # ========================================================================

    def risk_level(
        self,
        confidence: float,
        confluence_count: int,
        contraindication_count: int,
        context: MarketContext,
    ) -> RiskLevel:
        """
        Qualitative decision risk.

        Points: +25 fewer than 3 confluences, +20 more than one
        contraindication, +15 volatility > 70, +10 OTC, +10 30s chart,
        +20 confidence < 70. <= 20 LOW, <= 50 MEDIUM, else HIGH.
        """
        points = 0
        if confluence_count < 3:
            points += 25
        if contraindication_count > 1:
            points += 20
        if context.volatility > 70:
            points += 15
        if context.is_otc:
            points += 10
        if context.timeframe == "30s":
            points += 10
        if confidence < 70:
            points += 20

        if points <= 20:
            return RiskLevel.LOW
        if points <= 50:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH

    def expected_success_rate(
        self,
        confidence: float,
        grade: Grade,
        risk_level: RiskLevel,
        context: MarketContext,
        manipulation: Optional[ManipulationAssessment] = None,
    ) -> float:
        """Heuristic win-rate estimate, clamped to [45, 90]."""
        rate = confidence * 0.8
        rate += _GRADE_SUCCESS_ADJUSTMENT[grade]
        rate += _RISK_SUCCESS_ADJUSTMENT[risk_level]
        if context.is_otc:
            rate -= 8
        if context.timeframe == "30s":
            rate -= 5
        elif context.timeframe == "5m":
            rate += 3
        if manipulation is not None:
            rate -= _TIER_SUCCESS_PENALTY[manipulation.risk_tier]

        return clamp(float(round(rate)), 45.0, 90.0)

    @staticmethod
    def gate(action: Action, grade: Grade) -> bool:
        """True when the grade allows the action to stand."""
        return action is Action.WAIT or grade in TRADEABLE_GRADES


def _distinct(labels: Iterable[str]) -> Tuple[str, ...]:
    seen = []
    for label in labels:
        if label and label not in seen:
            seen.append(label)
    return tuple(seen)
