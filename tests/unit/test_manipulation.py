"""
Unit tests for the ManipulationAssessor.

Tests:
- Each primary trigger in isolation
- OTC / timeframe loadings only after a trigger
- Supplementary OTC bias and confidence rules
- Risk tiers and recommendations
"""

import pytest

from config.settings import ManipulationConfig
from decision.manipulation import ManipulationAssessor
from decision.models import (
    Action,
    Direction,
    MarketContext,
    Recommendation,
    RiskTier,
    Signal,
    TimeframeClass,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def assessor():
    return ManipulationAssessor()


@pytest.fixture
def quiet_context():
    """Regular market on a timeframe without loading."""
    return MarketContext(timeframe="15m")


def sig(source, direction, strength=50.0, confidence=50.0, horizon=TimeframeClass.SHORT):
    return Signal(source, Direction(direction), strength, confidence, horizon)


# ============================================================================
# Primary triggers
# ============================================================================

def test_clean_set_scores_zero(assessor, quiet_context):
    signals = [sig("trendline", "up"), sig("momentum", "up"), sig("volume", "up")]

    assessment = assessor.assess(signals, quiet_context, Action.BUY)

    assert assessment.score == 0
    assert assessment.suspicious_factors == ()
    assert assessment.risk_tier is RiskTier.LOW
    assert assessment.recommendation is Recommendation.PROCEED
    assert not assessment.is_manipulated


def test_perfect_balance_with_strong_sides(assessor, quiet_context):
    signals = [
        sig("momentum", "up", 90), sig("rsi", "up", 90),
        sig("macd", "down", 90), sig("stochastic", "down", 90),
    ]

    assessment = assessor.assess(signals, quiet_context, Action.WAIT)

    assert assessment.score == pytest.approx(35)
    assert assessment.risk_tier is RiskTier.MEDIUM
    assert "high-strength opposing signals" in assessment.suspicious_factors


def test_partial_balance_scales_down(assessor, quiet_context):
    signals = [sig("rsi", "up")] * 3 + [sig("macd", "down")] * 2

    assessment = assessor.assess(signals, quiet_context, Action.BUY)

    assert assessment.score == pytest.approx(5)


def test_balance_needs_enough_directional_signals(assessor, quiet_context):
    signals = [sig("rsi", "up", 90), sig("macd", "down", 90), sig("volume", "neutral")]

    assert assessor.assess(signals, quiet_context, Action.BUY).score == 0


def test_horizon_conflict(assessor, quiet_context):
    signals = [
        sig("momentum", "up", 60), sig("rsi", "up", 60),
        sig("trendline", "down", 60, horizon=TimeframeClass.LONG),
    ]

    assessment = assessor.assess(signals, quiet_context, Action.BUY)

    assert assessment.score == pytest.approx(20)
    assert any("contradict" in f for f in assessment.suspicious_factors)


def test_strong_horizon_conflict_adds_points(assessor, quiet_context):
    signals = [
        sig("momentum", "up", 80), sig("rsi", "up", 80),
        sig("trendline", "down", 80, horizon=TimeframeClass.LONG),
    ]

    assert assessor.assess(signals, quiet_context, Action.BUY).score == pytest.approx(30)


def test_mixed_short_group_is_not_a_conflict(assessor, quiet_context):
    signals = [
        sig("momentum", "up", 80), sig("rsi", "down", 80),
        sig("trendline", "down", 80, horizon=TimeframeClass.LONG),
    ]

    assert assessor.assess(signals, quiet_context, Action.SELL).score == 0


@pytest.mark.parametrize("strength,expected", [
    (60, 0),
    (65, 0),
    (77.5, 12.5),
    (90, 25),
    (100, 25),
])
def test_reversal_points(assessor, quiet_context, strength, expected):
    assessment = assessor.assess([sig("bull_trap", "down", strength)], quiet_context, Action.SELL)

    assert assessment.score == pytest.approx(expected)


@pytest.mark.parametrize("strength,expected", [(85, 15), (20, 10), (50, 0)])
def test_volume_extremes(assessor, quiet_context, strength, expected):
    signals = [sig("volume", "up", strength), sig("order_flow", "up", strength)]

    assert assessor.assess(signals, quiet_context, Action.BUY).score == pytest.approx(expected)


# ============================================================================
# Loadings and supplementary rules
# ============================================================================

def test_loadings_need_a_trigger(assessor):
    context = MarketContext(timeframe="30s", market_type="otc")
    signals = [sig("rsi", "up", 60, 60), sig("macd", "down", 60, 60)]

    assert assessor.assess(signals, context, Action.BUY).score == 0


def test_otc_and_timeframe_loadings(assessor):
    context = MarketContext(timeframe="1m", market_type="otc")
    signals = [sig("volume", "up", 90, 80), sig("volume_trend", "down", 90, 80)]

    assessment = assessor.assess(signals, context, Action.BUY)

    assert assessment.score == pytest.approx(15 + 20 + 10)
    assert any("OTC market loading" in f for f in assessment.suspicious_factors)
    assert any("1m timeframe loading" in f for f in assessment.suspicious_factors)


def test_configurable_otc_loading():
    assessor = ManipulationAssessor(ManipulationConfig(otc_loading=10, timeframe_loadings={}))
    context = MarketContext(timeframe="1m", market_type="otc")
    signals = [sig("volume", "up", 90, 80), sig("volume_trend", "down", 90, 80)]

    assert assessor.assess(signals, context, Action.BUY).score == pytest.approx(25)


def test_otc_one_sided_bias(assessor):
    context = MarketContext(timeframe="15m", market_type="otc")

    assessment = assessor.assess([sig("rsi", "up", 60, 60)], context, Action.BUY)

    assert assessment.score == pytest.approx(15)
    assert "OTC one-sided buy bias" in assessment.suspicious_factors


def test_one_sided_bias_ignored_outside_otc(assessor, quiet_context):
    assert assessor.assess([sig("rsi", "up", 60, 60)], quiet_context, Action.BUY).score == 0


def test_implausible_confidence(assessor, quiet_context):
    assessment = assessor.assess([sig("rsi", "up", 50, 99)], quiet_context, Action.BUY)

    assert assessment.score == pytest.approx(10)


def test_score_is_clamped_to_100(assessor):
    context = MarketContext(timeframe="30s", market_type="otc")
    short_up = [sig(s, "up", 95, 99) for s in ("reversal", "volume", "momentum", "rsi")]
    long_down = [
        sig(s, "down", 95, 99, TimeframeClass.LONG)
        for s in ("trendline", "chart_pattern", "elliott_wave", "dow_theory")
    ]

    assessment = assessor.assess(short_up + long_down, context, Action.BUY)

    assert assessment.score == 100
    assert assessment.risk_tier is RiskTier.CRITICAL
    assert assessment.recommendation is Recommendation.ABORT


# ============================================================================
# Tiers and recommendations
# ============================================================================

@pytest.mark.parametrize("score,tier", [
    (0, RiskTier.LOW),
    (34.9, RiskTier.LOW),
    (35, RiskTier.MEDIUM),
    (59.9, RiskTier.MEDIUM),
    (60, RiskTier.HIGH),
    (79.9, RiskTier.HIGH),
    (80, RiskTier.CRITICAL),
])
def test_risk_tiers(assessor, score, tier):
    assert assessor.risk_tier(score) is tier


@pytest.mark.parametrize("score,action,recommendation", [
    (90, Action.WAIT, Recommendation.PROCEED),
    (70, Action.BUY, Recommendation.ABORT),
    (69, Action.SELL, Recommendation.CAUTION),
    (40, Action.BUY, Recommendation.CAUTION),
    (39, Action.BUY, Recommendation.PROCEED),
])
def test_recommendations(assessor, score, action, recommendation):
    assert assessor.recommend(score, action) is recommendation


def test_invalid_tier_thresholds_rejected():
    with pytest.raises(ValueError):
        ManipulationConfig(tier_thresholds={"MEDIUM": 60, "HIGH": 35, "CRITICAL": 80})
