"""
Unit tests for the SignalNormalizer.
"""

from types import SimpleNamespace

import pytest

from decision.models import Direction, Signal, TimeframeClass
from decision.normalizer import SignalNormalizer


@pytest.fixture
def normalizer():
    return SignalNormalizer()


def test_none_and_empty_input(normalizer):
    assert normalizer.normalize(None) == []
    assert normalizer.normalize([]) == []


def test_signal_passes_through(normalizer):
    signal = Signal("rsi", Direction.UP, 60, 70, TimeframeClass.SHORT)

    [result] = normalizer.normalize([signal])

    assert result == signal


def test_camel_case_mapping(normalizer):
    [result] = normalizer.normalize([
        {"source": "Fibonacci", "direction": "bearish", "strength": 55, "confidence": 65,
         "timeframeClass": "long"}
    ])

    assert result.source == "fibonacci"
    assert result.direction is Direction.DOWN
    assert result.strength == 55
    assert result.confidence == 65
    assert result.timeframe_class is TimeframeClass.LONG


@pytest.mark.parametrize("label,expected", [
    ("buy", Direction.UP),
    ("CALL", Direction.UP),
    ("long", Direction.UP),
    ("put", Direction.DOWN),
    ("short", Direction.DOWN),
    ("sideways", Direction.NEUTRAL),
    ("wait", Direction.NEUTRAL),
    ("sideways-ish", Direction.NEUTRAL),
])
def test_direction_aliases(normalizer, label, expected):
    assert normalizer.parse_direction(label) is expected


def test_pattern_result_record(normalizer):
    [result] = normalizer.normalize([
        {"source": "candle_pattern", "found": True, "confidence": 72, "buyScore": 40, "sellScore": 85}
    ])

    assert result.direction is Direction.DOWN
    assert result.strength == 85
    assert result.confidence == 72
    assert result.timeframe_class is TimeframeClass.SHORT


def test_pattern_result_not_found_is_dropped(normalizer):
    assert normalizer.normalize([{"source": "candle_pattern", "found": False, "confidence": 90}]) == []


def test_pattern_result_equal_scores_is_neutral(normalizer):
    [result] = normalizer.normalize([
        {"source": "micro_pattern", "found": True, "confidence": 50, "buy_score": 30, "sell_score": 30}
    ])

    assert result.direction is Direction.NEUTRAL


def test_object_attributes(normalizer):
    detector_output = SimpleNamespace(source="macd", direction="up", strength=70, confidence=60)

    [result] = normalizer.normalize([detector_output])

    assert result.source == "macd"
    assert result.direction is Direction.UP
    assert result.timeframe_class is TimeframeClass.SHORT


def test_unit_scale_is_rescaled(normalizer):
    [result] = normalizer.normalize([
        {"source": "rsi", "direction": "up", "strength": 0.8, "confidence": 0.65, "scale": "unit"}
    ])

    assert result.strength == pytest.approx(80)
    assert result.confidence == pytest.approx(65)


def test_records_without_source_are_skipped(normalizer):
    results = normalizer.normalize([
        {"direction": "up", "strength": 50, "confidence": 50},
        {"source": "  ", "direction": "up"},
        None,
        {"source": "volume", "direction": "up", "strength": 50, "confidence": 50},
    ])

    assert [s.source for s in results] == ["volume"]


def test_missing_strength_falls_back_to_confidence(normalizer):
    [result] = normalizer.normalize([{"source": "breakout", "direction": "up", "confidence": 77}])

    assert result.strength == 77
    assert result.timeframe_class is TimeframeClass.MEDIUM


def test_unknown_source_defaults_to_medium_horizon(normalizer):
    [result] = normalizer.normalize([{"source": "sentiment", "direction": "down", "strength": 40, "confidence": 40}])

    assert result.timeframe_class is TimeframeClass.MEDIUM


def test_unknown_horizon_uses_default(normalizer):
    [result] = normalizer.normalize([
        {"source": "trendline", "direction": "up", "strength": 40, "confidence": 40, "timeframe_class": "weekly"}
    ])

    assert result.timeframe_class is TimeframeClass.LONG


def test_out_of_range_values_are_clamped(normalizer):
    [result] = normalizer.normalize([{"source": "rsi", "direction": "up", "strength": 250, "confidence": "n/a"}])

    assert result.strength == 100
    assert result.confidence == 100
