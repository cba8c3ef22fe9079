"""
Backtest service: validate a request, load candles from a feed, simulate,
compute metrics and persist the run with its trades and equity curve.
"""

from __future__ import annotations
import logging
import re
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from trading_engine.analytics.metrics import PerformanceMetrics, compute_metrics
from trading_engine.backtesting.engine import PositionSimulator, SimulationResult, validate_strategy_config
from trading_engine.core.errors import ConfigurationError, InputDataError
from trading_engine.core.types import EquityCurvePoint, StrategyConfig, Trade
from trading_engine.data.feeds import CandleFeed
from trading_engine.utils.timeframes import SUPPORTED_INTERVALS

logger = logging.getLogger("trading_engine.backtest")

SYMBOL_RE = re.compile(r"^[A-Z0-9]{2,10}/[A-Z]{2,5}$|^[A-Z0-9]{4,12}$")
MIN_INITIAL_CAPITAL = 100.0
MAX_INITIAL_CAPITAL = 1_000_000_000.0


@dataclass
class BacktestRequest:
    name: str
    symbol: str
    interval: str
    start_timestamp: int
    end_timestamp: int
    initial_capital: float = 10000.0
    strategy_config: StrategyConfig = field(default_factory=StrategyConfig)

    def validate(self) -> None:
        """Raises ConfigurationError on the first invalid field."""
        if not isinstance(self.name, str) or not 1 <= len(self.name) <= 100:
            raise ConfigurationError("name must be 1-100 characters", field="name")
        if not isinstance(self.symbol, str) or len(self.symbol) > 20 or not SYMBOL_RE.match(self.symbol):
            raise ConfigurationError(f"Invalid symbol format: {self.symbol!r}", field="symbol")
        if self.interval not in SUPPORTED_INTERVALS:
            raise ConfigurationError(f"Invalid interval: {self.interval!r}", field="interval")
        for name in ("start_timestamp", "end_timestamp"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive integer", field=name)
        if self.end_timestamp <= self.start_timestamp:
            raise ConfigurationError("End timestamp must be after start timestamp", field="end_timestamp")
        if not MIN_INITIAL_CAPITAL <= self.initial_capital <= MAX_INITIAL_CAPITAL:
            raise ConfigurationError(
                f"initial_capital must be between {MIN_INITIAL_CAPITAL:.0f} and {MAX_INITIAL_CAPITAL:.0f}",
                field="initial_capital",
            )
        validate_strategy_config(self.strategy_config)


@dataclass
class BacktestSummary:
    backtest_run_id: str
    metrics: PerformanceMetrics
    trades_count: int
    final_capital: float


@dataclass
class StoredBacktest:
    id: str
    request: BacktestRequest
    metrics: PerformanceMetrics
    final_capital: float
    trades: List[Trade]
    equity_curve: List[EquityCurvePoint]


class BacktestStore(ABC):
    @abstractmethod
    def save(self, backtest: StoredBacktest) -> None:
        ...

    @abstractmethod
    def get(self, backtest_run_id: str) -> StoredBacktest:
        """Raises KeyError for unknown ids."""


class InMemoryBacktestStore(BacktestStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, StoredBacktest] = {}

    def save(self, backtest: StoredBacktest) -> None:
        with self._lock:
            self._runs[backtest.id] = backtest

    def get(self, backtest_run_id: str) -> StoredBacktest:
        with self._lock:
            return self._runs[backtest_run_id]


class BacktestRunner:
    """Ties feed, simulator, metrics and store together. Nothing is stored for a failed run."""

    def __init__(
        self,
        feed: CandleFeed,
        store: Optional[BacktestStore] = None,
        simulator: Optional[PositionSimulator] = None,
    ):
        self.feed = feed
        self.store = store or InMemoryBacktestStore()
        self.simulator = simulator or PositionSimulator()

    def run(self, request: BacktestRequest) -> BacktestSummary:
        request.validate()
        candles = self.feed.get_candles(
            request.symbol, request.interval, start=request.start_timestamp, end=request.end_timestamp,
        )
        warmup = self.simulator.strategy.warmup_bars
        if len(candles) <= warmup:
            available = self.feed.available_range(request.symbol, request.interval)
            what = "No data found" if not candles else f"Only {len(candles)} candles found"
            raise InputDataError(
                f"{what} for {request.symbol} {request.interval} in the selected range; need more than {warmup}",
                available_range=available,
                required=warmup + 1,
                available=len(candles),
            )

        logger.info(
            "Backtest '%s': %s %s, %d candles, capital %.2f",
            request.name, request.symbol, request.interval, len(candles), request.initial_capital,
        )
        result: SimulationResult = self.simulator.simulate(candles, request.strategy_config, request.initial_capital)
        metrics = compute_metrics(result.trades, request.initial_capital, result.final_capital, result.equity_curve)

        backtest_run_id = str(uuid.uuid4())
        self.store.save(StoredBacktest(
            id=backtest_run_id,
            request=request,
            metrics=metrics,
            final_capital=result.final_capital,
            trades=list(result.trades),
            equity_curve=list(result.equity_curve),
        ))
        logger.info(
            "Backtest %s done: %d trades, return %.2f%%, max DD %.2f%%",
            backtest_run_id, metrics.total_trades, metrics.total_return, metrics.max_drawdown,
        )
        return BacktestSummary(
            backtest_run_id=backtest_run_id,
            metrics=metrics,
            trades_count=len(result.trades),
            final_capital=result.final_capital,
        )

    def list_trades(self, backtest_run_id: str, offset: int = 0, limit: int = 100) -> List[Trade]:
        trades = self.store.get(backtest_run_id).trades
        return trades[max(0, offset): max(0, offset) + max(0, limit)]

    def list_equity_curve(self, backtest_run_id: str, offset: int = 0, limit: int = 1000) -> List[EquityCurvePoint]:
        curve = self.store.get(backtest_run_id).equity_curve
        return curve[max(0, offset): max(0, offset) + max(0, limit)]
