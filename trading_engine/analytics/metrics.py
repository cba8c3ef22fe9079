"""
Performance metrics: total return, win rate, profit factor, max drawdown, Sharpe, Sortino.
Ratios are computed over per-trade percentage returns and annualised with sqrt(252).
Every ratio is finite: degenerate inputs give 0, never NaN or inf.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, asdict
from typing import List, Sequence

import numpy as np

from trading_engine.core.types import EquityCurvePoint, Trade

PERIODS_PER_YEAR = 252.0


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics. Percent values are 0..100 scale."""
    total_return: float
    win_rate: float
    profit_factor: float
    max_drawdown: float
    sharpe_ratio: float
    sortino_ratio: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float
    expectancy: float

    def to_dict(self) -> dict:
        return asdict(self)


def _finite(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def sharpe_ratio(returns: Sequence[float], periods_per_year: float = PERIODS_PER_YEAR) -> float:
    """mean / std * sqrt(periods). 0 for empty or constant returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    std = arr.std()
    if std <= 1e-12:
        return 0.0
    return _finite(arr.mean() / std * np.sqrt(periods_per_year))


def sortino_ratio(returns: Sequence[float], periods_per_year: float = PERIODS_PER_YEAR) -> float:
    """mean / std(negative returns) * sqrt(periods). 0 when there are no losing returns."""
    if len(returns) == 0:
        return 0.0
    arr = np.asarray(returns, dtype=float)
    downside = arr[arr < 0]
    if len(downside) == 0:
        return 0.0
    dd = downside.std()
    if dd <= 1e-12:
        return 0.0
    return _finite(arr.mean() / dd * np.sqrt(periods_per_year))


def max_drawdown(equity_curve: Sequence[EquityCurvePoint]) -> float:
    """Largest drawdown (percent) seen on the curve."""
    if not equity_curve:
        return 0.0
    return _finite(max(p.drawdown for p in equity_curve))


def win_rate(pnls: Sequence[float]) -> float:
    """Percent of trades with positive PnL."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls) * 100.0


def profit_factor(pnls: Sequence[float]) -> float:
    """(avg_win * wins) / (avg_loss * losses). 0 when there are no losing trades."""
    wins = [p for p in pnls if p > 0]
    losses = [-p for p in pnls if p < 0]
    if not losses:
        return 0.0
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(losses) / len(losses)
    denominator = avg_loss * len(losses)
    if denominator <= 0:
        return 0.0
    return _finite(avg_win * len(wins) / denominator)


def expectancy(pnls: Sequence[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return sum(pnls) / len(pnls)


def compute_metrics(
    trades: Sequence[Trade],
    initial_capital: float,
    final_capital: float,
    equity_curve: Sequence[EquityCurvePoint] = (),
) -> PerformanceMetrics:
    """Aggregate a simulation's trades and equity curve."""
    pnls: List[float] = [t.pnl for t in trades]
    returns: List[float] = [t.pnl_percentage for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    total_return = (final_capital - initial_capital) / initial_capital * 100.0 if initial_capital else 0.0
    return PerformanceMetrics(
        total_return=_finite(total_return),
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        max_drawdown=max_drawdown(equity_curve),
        sharpe_ratio=sharpe_ratio(returns),
        sortino_ratio=sortino_ratio(returns),
        total_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(-p for p in losses) / len(losses) if losses else 0.0,
        expectancy=expectancy(pnls),
    )
