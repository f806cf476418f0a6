"""
Decision Orchestrator - Core decision state machine.

Runs one evaluation through a fixed sequence of states:

    COLLECTING -> AGGREGATING -> BIAS_ADJUSTING -> ASSESSING_RISK
        -> GRADING -> TIMING -> FINALIZED

Every evaluation ends in FINALIZED with exactly one Decision. Too little
signal data short-circuits to a WAIT decision; malformed context fails fast.

Design Pattern: Composition
- SignalNormalizer, WeightedAggregator, AdaptiveBiasCorrector,
  ManipulationAssessor, ConfluenceGrader and TimingCalculator are composed
- The caller owns the BiasState; the orchestrator returns an updated copy
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union
import logging

from pydantic import ValidationError

from config.settings import DecisionEngineConfig
from decision.aggregator import AggregatedScores, WeightedAggregator
from decision.bias import AdaptiveBiasCorrector, PerturbationPolicy
from decision.confluence import ConfluenceGrader
from decision.errors import ConfigurationError, InsufficientDataError, InvalidContextError
from decision.factors import FactorCheck, FactorResult, create_default_factor_checks
from decision.manipulation import ManipulationAssessor
from decision.models import (
    Action,
    BiasState,
    Decision,
    Direction,
    Grade,
    ManipulationAssessment,
    MarketContext,
    Recommendation,
    RiskTier,
    Signal,
)
from decision.normalizer import SignalNormalizer
from decision.timing import TimingCalculator
from utils.logger import get_decision_logger
from utils.math_utils import clamp

logger = logging.getLogger(__name__)


INSUFFICIENT_DATA_REASON = "insufficient signal data"


class DecisionState(str, Enum):
    """Evaluation state machine states."""
    COLLECTING = "COLLECTING"
    AGGREGATING = "AGGREGATING"
    BIAS_ADJUSTING = "BIAS_ADJUSTING"
    ASSESSING_RISK = "ASSESSING_RISK"
    GRADING = "GRADING"
    TIMING = "TIMING"
    FINALIZED = "FINALIZED"


@dataclass
class EvaluationTrace:
    """States visited by one evaluation, with a short note per state."""
    steps: List[Tuple[DecisionState, str]] = field(default_factory=list)

    @property
    def states(self) -> List[DecisionState]:
        return [state for state, _ in self.steps]

    @property
    def final_state(self) -> Optional[DecisionState]:
        return self.steps[-1][0] if self.steps else None


class DecisionOrchestrator:
    """
    Main decision orchestrator.

    Workflow:
    1. Validate context, normalise signals, reset bias on market change
    2. Aggregate weighted buy / sell scores
    3. Apply streak bias correction and pick a provisional direction
    4. Assess manipulation risk (ABORT forces WAIT)
    5. Grade the setup (only A / B may trade)
    6. Compute timing and finalize
    """

    def __init__(
        self,
        config: Union[DecisionEngineConfig, Mapping[str, Any], None] = None,
        factor_checks: Optional[List[FactorCheck]] = None,
        name: str = "DecisionOrchestrator",
    ):
        """
        Initialize the orchestrator.

        Args:
            config: DecisionEngineConfig or a mapping validated into one
            factor_checks: Override the default confluence factor checks
            name: Orchestrator name for logging

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        self.config = self._validate_config(config)
        self.name = name

        cfg = self.config
        self.normalizer = SignalNormalizer(cfg.sources)
        self.aggregator = WeightedAggregator(cfg.aggregator)
        self.bias_corrector = AdaptiveBiasCorrector(cfg.bias)
        self.assessor = ManipulationAssessor(cfg.manipulation, cfg.sources)
        self.grader = ConfluenceGrader(
            cfg.grading,
            factor_checks if factor_checks is not None else create_default_factor_checks(cfg.sources),
        )
        self.timing = TimingCalculator(cfg.timing)

        self.logger = logging.getLogger(f"{__name__}.{name}")
        self.decision_logger = get_decision_logger(f"{__name__}.{name}")
        self.logger.info(
            f"DecisionOrchestrator initialized: "
            f"{len(self.grader.factor_checks)} factor checks, "
            f"min_signals={cfg.orchestrator.min_signal_count}, "
            f"perturbation={self.bias_corrector.perturbation!r}"
        )

    @staticmethod
    def _validate_config(config) -> DecisionEngineConfig:
        if config is None:
            return DecisionEngineConfig()
        if isinstance(config, DecisionEngineConfig):
            try:
                return DecisionEngineConfig.model_validate(config.model_dump())
            except ValidationError as e:
                raise ConfigurationError(f"Invalid decision engine configuration: {e}") from e
        if isinstance(config, Mapping):
            try:
                return DecisionEngineConfig(**config)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid decision engine configuration: {e}") from e
        raise ConfigurationError(
            f"Expected DecisionEngineConfig or mapping, got {type(config).__name__}"
        )

    # ========================================================================
    # Public API
    # ========================================================================

    def evaluate(
        self,
        signals: Optional[Iterable[Any]],
        context: MarketContext,
        bias_state: Optional[BiasState] = None,
        *,
        factors: Optional[Iterable[FactorResult]] = None,
        optimal_entry: bool = False,
        perturbation: Optional[PerturbationPolicy] = None,
    ) -> Tuple[Decision, ManipulationAssessment, BiasState]:
        """
        Evaluate a signal set and produce one decision.

        Args:
            signals: Detector outputs (Signal, mappings or pattern records)
            context: Market context
            bias_state: Session streak counters (never mutated)
            factors: Caller-supplied confirming / contradicting factors
            optimal_entry: Upstream timing flag
            perturbation: Exploratory bias variation for this call

        Returns:
            (Decision, ManipulationAssessment, updated BiasState)

        Raises:
            InvalidContextError: If context is not a valid MarketContext
        """
        decision, assessment, new_state, _ = self.evaluate_with_trace(
            signals,
            context,
            bias_state,
            factors=factors,
            optimal_entry=optimal_entry,
            perturbation=perturbation,
        )
        return decision, assessment, new_state

    def evaluate_with_trace(
        self,
        signals: Optional[Iterable[Any]],
        context: MarketContext,
        bias_state: Optional[BiasState] = None,
        *,
        factors: Optional[Iterable[FactorResult]] = None,
        optimal_entry: bool = False,
        perturbation: Optional[PerturbationPolicy] = None,
    ) -> Tuple[Decision, ManipulationAssessment, BiasState, EvaluationTrace]:
        """Same as evaluate(), also returning the state machine trace."""
        if not isinstance(context, MarketContext):
            raise InvalidContextError(f"Expected MarketContext, got {type(context).__name__}")

        trace = EvaluationTrace()

        with self.decision_logger.performance.timer(
            "evaluate", timeframe=context.timeframe, market_type=context.market_type
        ):
            # COLLECTING
            normalized = self.normalizer.normalize(signals)
            state = bias_state.copy() if bias_state is not None else BiasState()
            if state.market_type is not None and state.market_type != context.market_type:
                self.logger.info(
                    f"🔄 Market type changed {state.market_type} -> {context.market_type}, resetting bias state"
                )
                state.reset(context.market_type)
            state.market_type = context.market_type
            self._enter(trace, DecisionState.COLLECTING, f"{len(normalized)} signal(s)")

            # AGGREGATING
            scores = self.aggregator.aggregate(normalized, context)
            self._enter(trace, DecisionState.AGGREGATING, repr(scores))

            try:
                self._require_data(scores)
                decision, assessment = self._decide(
                    normalized, context, state, scores, trace,
                    factors=factors, optimal_entry=optimal_entry, perturbation=perturbation,
                )
            except InsufficientDataError as e:
                self.logger.info(f"⚠️ {e}")
                decision, assessment = self._insufficient_data_decision(normalized, context, scores)

            # FINALIZED
            state.record(decision.action.direction)
            self._enter(trace, DecisionState.FINALIZED, decision.action.value)

        self.decision_logger.decision(
            decision.action.value,
            decision.confidence,
            decision.grade.value,
            timeframe=context.timeframe,
            market_type=context.market_type,
        )
        if assessment.risk_tier is not RiskTier.LOW:
            self.decision_logger.manipulation_alert(
                assessment.score,
                assessment.risk_tier.value,
                assessment.suspicious_factors,
                timeframe=context.timeframe,
                market_type=context.market_type,
            )

        return decision, assessment, state, trace

    # ========================================================================
    # Pipeline
    # ========================================================================

    def _require_data(self, scores: AggregatedScores) -> None:
        minimum = self.config.orchestrator.min_signal_count
        if not scores.has_data:
            raise InsufficientDataError("No weighted signal data")
        if scores.signal_count < minimum:
            raise InsufficientDataError(
                f"Only {scores.signal_count} signal(s), need at least {minimum}"
            )

    def _decide(
        self,
        signals: List[Signal],
        context: MarketContext,
        state: BiasState,
        scores: AggregatedScores,
        trace: EvaluationTrace,
        factors: Optional[Iterable[FactorResult]],
        optimal_entry: bool,
        perturbation: Optional[PerturbationPolicy],
    ) -> Tuple[Decision, ManipulationAssessment]:
        cfg = self.config.orchestrator
        reasoning: List[str] = []

        # BIAS_ADJUSTING
        correction = self.bias_corrector.correction(state, perturbation)
        corrected = self.bias_corrector.apply(scores, correction)
        provisional, confidence = self._provisional(corrected, context)
        reasoning.append(
            f"weighted buy {corrected.buy_fraction:.2f} vs sell {corrected.sell_fraction:.2f} "
            f"across {corrected.signal_count} signals"
        )
        if correction.active:
            reasoning.append(
                f"bias correction after {correction.streak} consecutive {correction.direction.value} "
                f"decisions (x{correction.adjustment:.2f} / x{correction.boost:.2f})"
            )
        self._enter(trace, DecisionState.BIAS_ADJUSTING, f"provisional {provisional.value}")

        # ASSESSING_RISK
        action = provisional
        assessment = self.assessor.assess(signals, context, provisional)
        contraindications: List[str] = []

        if assessment.recommendation is Recommendation.ABORT:
            action = Action.WAIT
            confidence = max(cfg.confidence_floor, confidence - cfg.abort_penalty)
            reasoning.append(
                f"manipulation risk {assessment.risk_tier.value} (score {assessment.score:.0f}): aborted"
            )
        elif assessment.recommendation is Recommendation.CAUTION:
            confidence = max(0.0, confidence - cfg.caution_penalty)
            reasoning.append(
                f"manipulation risk {assessment.risk_tier.value} (score {assessment.score:.0f}): caution"
            )
        if assessment.risk_tier is not RiskTier.LOW:
            contraindications.append(f"{assessment.risk_tier.value.lower()} manipulation risk")
        self._enter(trace, DecisionState.ASSESSING_RISK, assessment.recommendation.value)

        # GRADING
        confluences, derived = self.grader.derive_factors(
            signals, context, provisional.direction, optimal_entry
        )
        contraindications.extend(derived)
        for factor in factors or ():
            if factor.confluence:
                confluences.append(factor.confluence)
            if factor.contraindication:
                contraindications.append(factor.contraindication)

        agreement = self.grader.agreement(signals, provisional.direction)

        graded = self.grader.grade(confidence, context, confluences, contraindications, agreement)
        if not self.grader.gate(action, graded.grade):
            reasoning.append(
                f"grade {graded.grade.value} setup rejected, only A or B setups may trade"
            )
            action = Action.WAIT
            confidence = max(cfg.confidence_floor, confidence - cfg.gate_penalty)
        elif graded.confluences:
            reasoning.append(f"confluences: {', '.join(graded.confluences)}")
        if graded.agreement > len(graded.confluences):
            reasoning.append(f"{graded.agreement} strong detectors agree")

        risk_level = self.grader.risk_level(
            confidence, graded.confluence_count, len(graded.contraindications), context
        )
        success_rate = self.grader.expected_success_rate(
            confidence, graded.grade, risk_level, context, assessment
        )
        self._enter(trace, DecisionState.GRADING, graded.grade.value)

        # TIMING
        timing = self.timing.calculate(
            action, confidence, graded.confluence_count, context, optimal_entry
        )
        self._enter(trace, DecisionState.TIMING, f"enter_now={timing.enter_now}")

        decision = Decision(
            action=action,
            confidence=confidence,
            grade=graded.grade,
            confluence_count=graded.confluence_count,
            contraindications=graded.contraindications,
            timing=timing,
            expected_success_rate=success_rate,
            reasoning=tuple(reasoning),
            risk_level=risk_level,
            bias_adjustment=correction.adjustment,
            bias_boost=correction.boost,
            buy_score=corrected.buy_fraction,
            sell_score=corrected.sell_fraction,
        )
        return decision, assessment

    def _provisional(self, scores: AggregatedScores, context: MarketContext) -> Tuple[Action, float]:
        """Provisional action and its confidence from corrected fractions."""
        cfg = self.config.orchestrator
        dominant = scores.dominant
        fraction = scores.fraction(dominant)
        other = scores.fraction(dominant.opposite)

        if (dominant is not Direction.NEUTRAL
                and fraction >= cfg.min_dominant_fraction
                and fraction >= cfg.differential_factor * other):
            damping = 1.0 - max(0.0, (context.volatility - 50.0) / 100.0)
            confidence = min(cfg.max_confidence, 100.0 * fraction * damping)
            return Action.from_direction(dominant), clamp(confidence)

        leading = max(scores.buy_fraction, scores.sell_fraction)
        confidence = clamp(
            leading / cfg.min_dominant_fraction * cfg.wait_confidence_ceiling,
            cfg.wait_confidence_floor,
            cfg.wait_confidence_ceiling,
        )
        return Action.WAIT, confidence

    def _insufficient_data_decision(
        self,
        signals: List[Signal],
        context: MarketContext,
        scores: AggregatedScores,
    ) -> Tuple[Decision, ManipulationAssessment]:
        cfg = self.config.orchestrator
        provisional = Action.from_direction(scores.dominant)
        assessment = self.assessor.assess(signals, context, provisional)

        confidence = cfg.insufficient_confidence
        risk_level = self.grader.risk_level(confidence, 0, 0, context)
        decision = Decision(
            action=Action.WAIT,
            confidence=confidence,
            grade=Grade.F,
            confluence_count=0,
            contraindications=(),
            timing=self.timing.calculate(Action.WAIT, confidence, 0, context),
            expected_success_rate=self.grader.expected_success_rate(
                confidence, Grade.F, risk_level, context, assessment
            ),
            reasoning=(INSUFFICIENT_DATA_REASON,),
            risk_level=risk_level,
            buy_score=scores.buy_fraction,
            sell_score=scores.sell_fraction,
        )
        return decision, assessment

    def _enter(self, trace: EvaluationTrace, state: DecisionState, note: str = "") -> None:
        trace.steps.append((state, note))
        self.logger.debug(f"→ {state.value} {note}".rstrip())

    def get_stats(self) -> dict:
        """
        Get orchestrator configuration summary.

        Returns:
            Dict with component configuration
        """
        return {
            'name': self.name,
            'factor_checks': [c.name for c in self.grader.factor_checks],
            'min_signal_count': self.config.orchestrator.min_signal_count,
            'ideal_confluence_count': self.config.grading.ideal_confluence_count,
            'otc_loading': self.config.manipulation.otc_loading,
            'perturbation': repr(self.bias_corrector.perturbation),
            'timing_table': sorted(self.config.timing.table),
        }


def create_decision_orchestrator(use_config_file: bool = True) -> DecisionOrchestrator:
    """
    Factory function to create an orchestrator.

    Args:
        use_config_file: Load config/decision.yaml (with env overrides)
                         instead of the built-in defaults

    Returns:
        Configured DecisionOrchestrator instance
    """
    if not use_config_file:
        return DecisionOrchestrator()

    from config.loader import get_decision_config

    return DecisionOrchestrator(get_decision_config())
