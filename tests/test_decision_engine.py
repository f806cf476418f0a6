"""
Tests for the DecisionOrchestrator.

Covers the end-to-end behaviour of evaluate():
1. Strong aligned setup (BUY, tradeable grade, low manipulation risk)
2. Balanced opposing signals (manipulation flagged, WAIT)
3. Lone strong reversal on OTC (high manipulation score)
4. Determinism, bounds, grade gate, abort gate, bias dampening
5. Insufficient data, market-type reset, context validation
"""

import pytest

from decision import (
    Action,
    BiasState,
    ConfigurationError,
    DecisionOrchestrator,
    DecisionState,
    Direction,
    FactorResult,
    Grade,
    InvalidContextError,
    MarketContext,
    Recommendation,
    RiskLevel,
    RiskTier,
    SeededPerturbation,
    Signal,
    TimeframeClass,
    VolumeProfile,
)


# ============================================================================
# Helpers
# ============================================================================

ALIGNED_SOURCES = ["trendline", "support_resistance", "momentum", "volume", "candle_pattern"]


def make_signal(source, direction="up", strength=80.0, confidence=90.0, horizon="short"):
    return Signal(
        source=source,
        direction=Direction(direction),
        strength=strength,
        confidence=confidence,
        timeframe_class=TimeframeClass(horizon),
    )


def aligned_signals(direction="up"):
    return [make_signal(source, direction) for source in ALIGNED_SOURCES]


def balanced_signals():
    return [
        make_signal("momentum", "up", strength=90, confidence=80),
        make_signal("rsi", "up", strength=90, confidence=80),
        make_signal("macd", "down", strength=90, confidence=80),
        make_signal("stochastic", "down", strength=90, confidence=80),
    ]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def orchestrator():
    return DecisionOrchestrator()


@pytest.fixture
def trending_context():
    return MarketContext(
        timeframe="1m",
        market_type="regular",
        volatility=20,
        trend_strength=85,
        volume_profile=VolumeProfile.HIGH,
    )


@pytest.fixture
def choppy_context():
    return MarketContext(timeframe="1m", volatility=40, trend_strength=50)


# ============================================================================
# Scenarios
# ============================================================================

def test_strong_aligned_setup_buys(orchestrator, trending_context):
    """Five aligned structural/momentum/volume signals in a trending market."""
    decision, assessment, new_state = orchestrator.evaluate(
        aligned_signals(), trending_context, BiasState()
    )

    assert decision.action is Action.BUY
    assert decision.grade in (Grade.A, Grade.B)
    assert assessment.risk_tier is RiskTier.LOW
    assert assessment.score == 0

    assert decision.confidence == pytest.approx(95.0)
    assert decision.confluence_count == 5
    assert decision.contraindications == ()
    assert decision.risk_level is RiskLevel.LOW
    assert decision.expected_success_rate == 90.0
    assert decision.timing.enter_now is False
    assert decision.timing.wait_seconds == pytest.approx(13.0)
    assert decision.timing.validity_seconds == 27.0

    assert new_state.consecutive_by_direction[Direction.UP] == 1


def test_aligned_setup_with_optimal_entry_is_grade_a(orchestrator, trending_context):
    decision, _, _ = orchestrator.evaluate(
        aligned_signals(), trending_context, BiasState(), optimal_entry=True
    )

    assert decision.action is Action.BUY
    assert decision.grade is Grade.A
    assert decision.confluence_count == 6
    assert decision.timing.enter_now is True
    assert decision.timing.wait_seconds == 0


def test_aligned_sell_setup(orchestrator, trending_context):
    decision, _, new_state = orchestrator.evaluate(
        aligned_signals("down"), trending_context, BiasState()
    )

    assert decision.action is Action.SELL
    assert decision.sell_score == pytest.approx(1.0)
    assert new_state.consecutive_by_direction[Direction.DOWN] == 1


def test_balanced_opposing_signals_wait(orchestrator, choppy_context):
    """Two strong up vs two strong down signals."""
    decision, assessment, new_state = orchestrator.evaluate(
        balanced_signals(), choppy_context, BiasState()
    )

    assert decision.action is Action.WAIT
    assert assessment.risk_tier in (RiskTier.MEDIUM, RiskTier.HIGH)
    assert assessment.score == pytest.approx(45.0)
    assert any("balanced" in factor for factor in assessment.suspicious_factors)
    assert "high-strength opposing signals" in assessment.suspicious_factors
    assert assessment.recommendation is Recommendation.PROCEED
    assert "medium manipulation risk" in decision.contraindications
    assert new_state.consecutive_by_direction[Direction.NEUTRAL] == 1


def test_lone_reversal_on_otc_is_flagged(orchestrator):
    context = MarketContext(timeframe="1m", market_type="otc", volatility=40, trend_strength=50)
    signals = [make_signal("reversal", "up", strength=95, confidence=90)]

    decision, assessment, _ = orchestrator.evaluate(signals, context, BiasState())

    assert assessment.score >= 60
    assert assessment.recommendation in (Recommendation.CAUTION, Recommendation.ABORT)
    assert decision.action is Action.WAIT
    assert decision.reasoning == ("insufficient signal data",)


@pytest.mark.parametrize("sources", [
    ["trendline"] * 5,
    ["candle_pattern"] * 5,
    ["fibonacci", "chart_pattern", "elliott_wave", "breakout", "dow_theory"],
    ["rsi", "macd", "stochastic", "momentum", "volume"],
    ["a", "b", "c", "d", "e"],
])
def test_strong_agreement_buys_whatever_the_sources(orchestrator, sources):
    """Five strong up detectors trade even when they share a category."""
    context = MarketContext(timeframe="1m", volatility=20, trend_strength=85)
    signals = [make_signal(source) for source in sources]

    decision, assessment, new_state = orchestrator.evaluate(signals, context, BiasState())

    assert decision.action is Action.BUY
    assert decision.grade in (Grade.A, Grade.B)
    assert decision.confluence_count == 5
    assert assessment.risk_tier is RiskTier.LOW
    assert new_state.consecutive_by_direction[Direction.UP] == 1


def test_unmapped_detectors_are_credited_in_reasoning(orchestrator):
    context = MarketContext(timeframe="1m", volatility=20, trend_strength=85)
    signals = [make_signal(source) for source in "abcde"]

    decision, _, _ = orchestrator.evaluate(signals, context, BiasState())

    assert "5 strong detectors agree" in decision.reasoning


def test_weak_agreement_is_not_credited(orchestrator):
    context = MarketContext(timeframe="1m", volatility=20, trend_strength=85)
    signals = [make_signal("trendline", strength=60, confidence=60)] * 5

    decision, _, _ = orchestrator.evaluate(signals, context, BiasState())

    assert decision.action is Action.WAIT
    assert decision.grade not in (Grade.A, Grade.B)
    assert decision.confluence_count < 5


# ============================================================================
# Properties
# ============================================================================

def test_identical_inputs_give_identical_outputs(orchestrator, trending_context):
    state = BiasState({Direction.UP: 4}, market_type="regular")

    first = orchestrator.evaluate(aligned_signals(), trending_context, state)
    second = orchestrator.evaluate(aligned_signals(), trending_context, state)

    assert first == second


def test_seeded_perturbation_is_reproducible(orchestrator, trending_context):
    state = BiasState({Direction.UP: 5}, market_type="regular")

    first, _, _ = orchestrator.evaluate(
        aligned_signals(), trending_context, state, perturbation=SeededPerturbation(seed=7)
    )
    second, _, _ = orchestrator.evaluate(
        aligned_signals(), trending_context, state, perturbation=SeededPerturbation(seed=7)
    )

    assert first == second
    assert 0.5 <= first.bias_adjustment <= 1.0
    assert 1.0 <= first.bias_boost <= 1.5


@pytest.mark.parametrize("signals,volatility,market_type,timeframe", [
    ([], 0, "regular", "1m"),
    ([make_signal("trendline", "up", 100, 100)] * 8, 100, "otc", "30s"),
    (balanced_signals(), 100, "otc", "30s"),
    ([make_signal("fibonacci", "neutral", 50, 50)] * 3, 50, "regular", "5m"),
    ([make_signal("reversal", "down", 100, 100, "long")] * 2, 0, "regular", "15m"),
    (aligned_signals("down") + balanced_signals(), 65, "exotic", "4h"),
])
def test_decision_values_stay_in_bounds(orchestrator, signals, volatility, market_type, timeframe):
    context = MarketContext(timeframe=timeframe, market_type=market_type, volatility=volatility)

    decision, assessment, _ = orchestrator.evaluate(signals, context, BiasState())

    assert 0 <= decision.confidence <= 100
    assert 0 <= decision.expected_success_rate <= 100
    assert 0 <= assessment.score <= 100
    assert 0 <= decision.buy_score <= 1
    assert 0 <= decision.sell_score <= 1
    assert decision.timing.wait_seconds >= 0
    assert decision.timing.validity_seconds > 0


def test_low_grade_setup_is_forced_to_wait(orchestrator):
    """Two aligned signals in a weak trend: BUY-leaning but graded F."""
    context = MarketContext(timeframe="1m", volatility=20, trend_strength=50)
    signals = [make_signal("trendline", "up"), make_signal("momentum", "up")]

    decision, _, _ = orchestrator.evaluate(signals, context, BiasState())

    assert decision.grade is Grade.F
    assert decision.action is Action.WAIT
    assert decision.confidence == pytest.approx(70.0)
    assert any("grade F" in reason for reason in decision.reasoning)


def test_only_grades_a_and_b_trade(orchestrator, trending_context, choppy_context):
    cases = [
        (aligned_signals(), trending_context),
        (aligned_signals()[:3], choppy_context),
        (balanced_signals(), trending_context),
        ([make_signal("trendline", "up"), make_signal("momentum", "up")], choppy_context),
    ]
    for signals, context in cases:
        decision, _, _ = orchestrator.evaluate(signals, context, BiasState())
        if decision.action is not Action.WAIT:
            assert decision.grade in (Grade.A, Grade.B)


def test_abort_recommendation_forces_wait(orchestrator):
    context = MarketContext(timeframe="30s", market_type="otc", volatility=20, trend_strength=85)
    signals = [
        make_signal("trendline", "up"),
        make_signal("momentum", "up"),
        make_signal("reversal", "up", strength=95),
    ]

    decision, assessment, new_state = orchestrator.evaluate(signals, context, BiasState())

    assert assessment.recommendation is Recommendation.ABORT
    assert decision.action is Action.WAIT
    assert decision.confidence == pytest.approx(70.0)
    assert any("aborted" in reason for reason in decision.reasoning)
    assert new_state.consecutive_by_direction[Direction.NEUTRAL] == 1


def test_bias_dampens_buy_streak(orchestrator, trending_context):
    state = BiasState()
    decisions = []
    for _ in range(5):
        decision, _, state = orchestrator.evaluate(
            aligned_signals(), trending_context, state, optimal_entry=True
        )
        decisions.append(decision)

    assert all(d.action is Action.BUY for d in decisions)
    assert decisions[2].bias_adjustment == 1.0
    assert decisions[3].bias_adjustment == pytest.approx(0.9)
    assert decisions[4].bias_adjustment == pytest.approx(0.8)
    assert decisions[4].bias_adjustment <= decisions[2].bias_adjustment
    assert decisions[4].buy_score < decisions[2].buy_score
    assert state.consecutive_by_direction[Direction.UP] == 5


def test_empty_input_waits(orchestrator, choppy_context):
    decision, assessment, new_state = orchestrator.evaluate([], choppy_context, BiasState())

    assert decision.action is Action.WAIT
    assert decision.confidence == 30
    assert decision.reasoning == ("insufficient signal data",)
    assert decision.grade is Grade.F
    assert decision.timing.validity_seconds == 90
    assert assessment.score == 0
    assert new_state.consecutive_by_direction[Direction.NEUTRAL] == 1


def test_single_signal_is_insufficient(orchestrator, trending_context):
    decision, _, _ = orchestrator.evaluate(
        [make_signal("trendline", "up")], trending_context, BiasState()
    )

    assert decision.action is Action.WAIT
    assert decision.reasoning == ("insufficient signal data",)


def test_zero_confidence_signals_are_insufficient(orchestrator, trending_context):
    signals = [make_signal("trendline", "up", confidence=0), make_signal("momentum", "up", confidence=0)]

    decision, _, _ = orchestrator.evaluate(signals, trending_context, BiasState())

    assert decision.reasoning == ("insufficient signal data",)


# ============================================================================
# State handling
# ============================================================================

def test_input_bias_state_is_not_mutated(orchestrator, trending_context):
    state = BiasState({Direction.UP: 2}, market_type="regular")
    snapshot = state.copy()

    _, _, new_state = orchestrator.evaluate(aligned_signals(), trending_context, state)

    assert state == snapshot
    assert new_state is not state
    assert new_state.consecutive_by_direction[Direction.UP] == 3


def test_market_type_change_resets_bias(orchestrator):
    state = BiasState({Direction.UP: 6}, market_type="regular")
    context = MarketContext(timeframe="1m", market_type="otc", volatility=20, trend_strength=85)

    decision, _, new_state = orchestrator.evaluate(aligned_signals(), context, state)

    assert decision.bias_adjustment == 1.0
    assert new_state.market_type == "otc"
    assert new_state.streak == 1


def test_state_advances_by_exactly_one_increment(orchestrator, trending_context, choppy_context):
    state = BiasState({Direction.UP: 2}, market_type="regular")

    _, _, after_buy = orchestrator.evaluate(aligned_signals(), trending_context, state)
    _, _, after_wait = orchestrator.evaluate(balanced_signals(), choppy_context, after_buy)

    assert after_buy.consecutive_by_direction == {Direction.UP: 3, Direction.DOWN: 0, Direction.NEUTRAL: 0}
    assert after_wait.consecutive_by_direction == {Direction.UP: 0, Direction.DOWN: 0, Direction.NEUTRAL: 1}


def test_missing_bias_state_starts_fresh(orchestrator, trending_context):
    _, _, new_state = orchestrator.evaluate(aligned_signals(), trending_context)

    assert new_state.streak == 1
    assert new_state.market_type == "regular"


# ============================================================================
# Inputs, factors and trace
# ============================================================================

def test_raw_detector_output_is_normalised(orchestrator, trending_context):
    raw = [
        {"source": s, "direction": "bullish", "strength": 80, "confidence": 90, "timeframeClass": "short"}
        for s in ALIGNED_SOURCES
    ]

    decision, _, _ = orchestrator.evaluate(raw, trending_context, BiasState())
    expected, _, _ = orchestrator.evaluate(aligned_signals(), trending_context, BiasState())

    assert decision == expected


def test_caller_factors_are_counted(orchestrator, trending_context):
    decision, _, _ = orchestrator.evaluate(
        aligned_signals(),
        trending_context,
        BiasState(),
        factors=[
            FactorResult.confirms("higher timeframe trend"),
            FactorResult.confirms("signal consensus"),
        ],
    )

    assert decision.confluence_count == 6
    assert decision.grade is Grade.A


def test_trace_visits_every_state(orchestrator, trending_context):
    *_, trace = orchestrator.evaluate_with_trace(aligned_signals(), trending_context, BiasState())

    assert trace.states == [
        DecisionState.COLLECTING,
        DecisionState.AGGREGATING,
        DecisionState.BIAS_ADJUSTING,
        DecisionState.ASSESSING_RISK,
        DecisionState.GRADING,
        DecisionState.TIMING,
        DecisionState.FINALIZED,
    ]


def test_trace_short_circuits_on_insufficient_data(orchestrator, trending_context):
    *_, trace = orchestrator.evaluate_with_trace([], trending_context, BiasState())

    assert trace.states == [
        DecisionState.COLLECTING,
        DecisionState.AGGREGATING,
        DecisionState.FINALIZED,
    ]
    assert trace.final_state is DecisionState.FINALIZED


def test_invalid_context_fails_fast(orchestrator):
    with pytest.raises(InvalidContextError):
        orchestrator.evaluate(aligned_signals(), {"timeframe": "1m"}, BiasState())


def test_invalid_config_is_rejected():
    with pytest.raises(ConfigurationError):
        DecisionOrchestrator({"grading": {"grade_thresholds": {"A": 50, "B": 75, "C": 60, "D": 45}}})

    with pytest.raises(ConfigurationError):
        DecisionOrchestrator(42)


def test_config_mapping_is_accepted(trending_context):
    orchestrator = DecisionOrchestrator({"orchestrator": {"min_signal_count": 6}})

    decision, _, _ = orchestrator.evaluate(aligned_signals(), trending_context, BiasState())

    assert decision.reasoning == ("insufficient signal data",)
    assert orchestrator.get_stats()["min_signal_count"] == 6


def test_decision_to_dict(orchestrator, trending_context):
    decision, _, _ = orchestrator.evaluate(aligned_signals(), trending_context, BiasState())

    data = decision.to_dict()

    assert data["action"] == "BUY"
    assert data["grade"] in ("A", "B")
    assert data["timing"]["validity_seconds"] == 27.0
    assert isinstance(data["reasoning"], list)
