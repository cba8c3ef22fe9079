"""Unit tests for analytics.metrics."""

import math

import pytest
from trading_engine.analytics.metrics import (
    sharpe_ratio,
    sortino_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
    compute_metrics,
)
from trading_engine.core.types import EquityCurvePoint, PositionSide, Trade


def _trade(pnl, pct=None):
    return Trade(
        entry_timestamp=0,
        exit_timestamp=3600,
        side=PositionSide.LONG,
        entry_price=100.0,
        exit_price=100.0 + pnl,
        size=1.0,
        pnl=pnl,
        pnl_percentage=pnl if pct is None else pct,
        signal_strength=0.5,
        exit_reason="take_profit",
    )


def test_sharpe_ratio_empty():
    assert sharpe_ratio([]) == 0.0


def test_sharpe_ratio_constant():
    assert sharpe_ratio([0.01] * 10) == 0.0  # zero std


def test_sharpe_ratio_value():
    returns = [1.0, -1.0, 2.0]
    mean = 2.0 / 3.0
    std = math.sqrt(sum((r - mean) ** 2 for r in returns) / 3)
    assert sharpe_ratio(returns) == pytest.approx(mean / std * math.sqrt(252))


def test_sortino_no_losers():
    assert sortino_ratio([1.0, 2.0, 3.0]) == 0.0


def test_sortino_value():
    returns = [4.0, -1.0, -3.0]
    downside_std = 1.0  # std of [-1, -3]
    assert sortino_ratio(returns) == pytest.approx(0.0 / downside_std)
    assert sortino_ratio([6.0, -1.0, -3.0]) == pytest.approx((2.0 / 3.0) / downside_std * math.sqrt(252))


def test_win_rate():
    assert win_rate([1, -1, 1, 1]) == 75.0
    assert win_rate([]) == 0.0


def test_profit_factor():
    assert profit_factor([10, -5, 10, -5]) == 2.0
    assert profit_factor([10, 10]) == 0.0
    assert profit_factor([-5, -5]) == 0.0


def test_expectancy():
    assert expectancy([10, -5, 5]) == pytest.approx(10 / 3)
    assert expectancy([]) == 0.0


def test_max_drawdown():
    curve = [
        EquityCurvePoint(0, 100.0, 0.0),
        EquityCurvePoint(1, 120.0, 0.0),
        EquityCurvePoint(2, 100.0, 16.666),
        EquityCurvePoint(3, 110.0, 8.333),
    ]
    assert max_drawdown(curve) == pytest.approx(16.666)
    assert max_drawdown([]) == 0.0


def test_compute_metrics():
    trades = [_trade(10.0), _trade(-5.0), _trade(15.0), _trade(-3.0)]
    m = compute_metrics(trades, 1000.0, 1017.0)
    assert m.total_trades == 4
    assert m.winning_trades == 2
    assert m.losing_trades == 2
    assert m.expectancy == pytest.approx(4.25)
    assert m.win_rate == 50.0
    assert m.avg_win == pytest.approx(12.5)
    assert m.avg_loss == pytest.approx(4.0)
    assert m.profit_factor == pytest.approx(25.0 / 8.0)
    assert m.total_return == pytest.approx(1.7)


def test_compute_metrics_single_winner():
    m = compute_metrics([_trade(10.0, 10.0)], 100.0, 110.0)
    assert m.win_rate == 100.0
    assert m.profit_factor == 0.0
    assert m.sharpe_ratio == 0.0
    assert m.sortino_ratio == 0.0
    assert all(math.isfinite(v) for v in m.to_dict().values())


def test_compute_metrics_no_trades():
    m = compute_metrics([], 1000.0, 1000.0)
    assert m.total_trades == 0
    assert m.total_return == 0.0
    assert m.max_drawdown == 0.0
