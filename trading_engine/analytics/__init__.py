"""Analytics: performance metrics (return, win rate, profit factor, drawdown, Sharpe, Sortino)."""

from trading_engine.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    sharpe_ratio,
    sortino_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
)

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "sharpe_ratio",
    "sortino_ratio",
    "max_drawdown",
    "win_rate",
    "profit_factor",
    "expectancy",
]
