"""
Unit tests for the TimingCalculator.
"""

import pytest

from config.settings import TimingConfig, TimingRow
from decision.models import Action, MarketContext
from decision.timing import TimingCalculator


@pytest.fixture
def calculator():
    return TimingCalculator()


def context(timeframe="1m", **kwargs):
    kwargs.setdefault("volatility", 20)
    return MarketContext(timeframe=timeframe, **kwargs)


def test_wait_means_reevaluate(calculator):
    window = calculator.calculate(Action.WAIT, 90, 6, context(), optimal_entry=True)

    assert not window.enter_now
    assert window.wait_seconds == 0
    assert window.validity_seconds == 90


def test_high_confidence_one_minute(calculator):
    window = calculator.calculate(Action.BUY, 95, 5, context())

    assert not window.enter_now
    assert window.wait_seconds == pytest.approx(13)
    assert window.validity_seconds == 27


def test_enter_now_needs_optimal_entry(calculator):
    window = calculator.calculate(Action.SELL, 80, 4, context(), optimal_entry=True)

    assert window.enter_now
    assert window.wait_seconds == 0
    assert window.validity_seconds == 30


@pytest.mark.parametrize("confidence,confluences", [(79, 6), (90, 3)])
def test_enter_now_thresholds(calculator, confidence, confluences):
    window = calculator.calculate(Action.BUY, confidence, confluences, context(), optimal_entry=True)

    assert not window.enter_now


def test_wait_shrinks_with_confidence(calculator):
    window = calculator.calculate(Action.BUY, 79, 2, context())

    assert window.wait_seconds == pytest.approx(22.6)


def test_unlisted_timeframe_scales_reference_row(calculator):
    row = calculator.row_for("2m")

    assert row == TimingRow(wait_min=20, wait_max=80, validity=60)

    window = calculator.calculate(Action.BUY, 50, 1, context("2m"))

    assert window.wait_seconds == pytest.approx(80)
    assert window.validity_seconds == 66


def test_unparseable_timeframe_uses_reference_row(calculator):
    assert calculator.row_for("weird") == calculator.config.table["1m"]

    window = calculator.calculate(Action.BUY, 70, 2, context("weird"))

    assert window.wait_seconds == pytest.approx(28)
    assert window.validity_seconds == 30


def test_scalping_row(calculator):
    window = calculator.calculate(Action.SELL, 70, 2, context("30s"))

    assert window.wait_seconds == pytest.approx(14)
    assert window.validity_seconds == 15


def test_otc_extends_validity(calculator):
    window = calculator.calculate(Action.BUY, 70, 2, context(market_type="otc"))

    assert window.validity_seconds == 35


def test_noise_extends_validity(calculator):
    window = calculator.calculate(Action.BUY, 70, 2, context(noise_level=70))

    assert window.validity_seconds == 33


def test_volatility_extends_validity(calculator):
    window = calculator.calculate(Action.BUY, 70, 2, context(volatility=85, noise_level=10))

    assert window.validity_seconds == 36


def test_validity_is_whole_seconds(calculator):
    window = calculator.calculate(Action.BUY, 70, 2, context(market_type="otc", noise_level=55))

    assert window.validity_seconds == int(window.validity_seconds)
    assert window.validity_seconds > 30


def test_custom_table():
    config = TimingConfig(table={
        "1m": TimingRow(wait_min=0, wait_max=10, validity=20),
        "3m": TimingRow(wait_min=30, wait_max=30, validity=100),
    })
    calculator = TimingCalculator(config)

    assert calculator.calculate(Action.BUY, 70, 2, context("3m")).wait_seconds == 30


def test_table_needs_reference_row():
    with pytest.raises(ValueError):
        TimingConfig(table={"5m": TimingRow(wait_min=1, wait_max=2, validity=3)})


def test_wait_range_must_be_ordered():
    with pytest.raises(ValueError):
        TimingRow(wait_min=10, wait_max=5, validity=30)
