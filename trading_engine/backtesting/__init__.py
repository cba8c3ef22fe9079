"""Backtesting: position simulator and backtest runner."""

from trading_engine.backtesting.engine import PositionSimulator, SimulationResult, simulate
from trading_engine.backtesting.runner import (
    BacktestRequest,
    BacktestSummary,
    BacktestRunner,
    BacktestStore,
    InMemoryBacktestStore,
)

__all__ = [
    "PositionSimulator",
    "SimulationResult",
    "simulate",
    "BacktestRequest",
    "BacktestSummary",
    "BacktestRunner",
    "BacktestStore",
    "InMemoryBacktestStore",
]
