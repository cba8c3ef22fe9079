"""Unit tests for the composite signal."""

import pytest

from conftest import make_candles, random_walk
from trading_engine.core.types import StrategyConfig
from trading_engine.strategies.base import candles_to_frame
from trading_engine.strategies.composite import CompositeSignalStrategy, WARMUP_BARS, signal


def test_signal_zero_during_warmup(rising_candles):
    cfg = StrategyConfig()
    for i in range(WARMUP_BARS):
        assert signal(rising_candles, i, cfg) == 0.0


def test_signal_flat_prices_is_zero(flat_candles):
    cfg = StrategyConfig()
    for i in range(WARMUP_BARS, len(flat_candles)):
        assert signal(flat_candles, i, cfg) == 0.0


def test_signal_rising_prices_is_long(rising_candles):
    # trend > 0, close above SMA20 and RSI pinned at 100
    sig = signal(rising_candles, 50, StrategyConfig())
    trend = 15.0 / 125.5
    mean_rev = -9.5 / 150.0
    assert sig == pytest.approx(0.4 * trend + 0.3 * mean_rev + 0.3 * 1.0)
    assert sig > 0.2


def test_signal_falling_prices_is_short():
    candles = make_candles([300.0 - i for i in range(80)])
    assert signal(candles, 79, StrategyConfig()) < -0.2


def test_signal_zero_weights():
    cfg = StrategyConfig(trend_weight=0.0, mean_rev_weight=0.0, carry_weight=0.0)
    candles = random_walk(120)
    assert signal(candles, 100, cfg) == 0.0


def test_signal_ignores_future_bars():
    candles = random_walk(120)
    cfg = StrategyConfig()
    i = 80
    altered = candles[: i + 1] + make_candles([1.0] * 39, start=candles[i].timestamp + 3600)
    assert signal(candles, i, cfg) == signal(altered, i, cfg)


def test_signal_matches_series():
    candles = random_walk(150)
    cfg = StrategyConfig()
    strat = CompositeSignalStrategy()
    series = strat.signal_series(strat.compute_indicators(candles_to_frame(candles)), cfg)
    for i in (50, 75, 149):
        assert signal(candles, i, cfg) == pytest.approx(series.iloc[i])


def test_signal_index_out_of_range(flat_candles):
    with pytest.raises(IndexError):
        signal(flat_candles, len(flat_candles), StrategyConfig())


def test_rsi_edge_cases():
    strat = CompositeSignalStrategy()
    flat = strat.compute_indicators(candles_to_frame(make_candles([100.0] * 30)))
    assert flat["rsi"].iloc[-1] == 50.0
    up = strat.compute_indicators(candles_to_frame(make_candles([100.0 + i for i in range(30)])))
    assert up["rsi"].iloc[-1] == 100.0
    down = strat.compute_indicators(candles_to_frame(make_candles([100.0 - i for i in range(30)])))
    assert down["rsi"].iloc[-1] == pytest.approx(0.0)
