"""
Position simulator: bar-by-bar, no lookahead, one position at a time, close-price fills.

Per bar after warm-up:
  1. composite signal
  2. mark-to-market equity point (drawdown from running peak)
  3. exit on stop loss / take profit / signal reversal
  4. entry when |signal| clears the threshold
Any position still open at the last bar is closed at its close.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from trading_engine.core.errors import ConfigurationError, InputDataError
from trading_engine.core.types import (
    Candle,
    EquityCurvePoint,
    PositionSide,
    SimulatedPosition,
    StrategyConfig,
    Trade,
)
from trading_engine.strategies.base import BaseStrategy, candles_to_frame
from trading_engine.strategies.composite import CompositeSignalStrategy

logger = logging.getLogger("trading_engine.backtest")

# Hard cap on capital committed to one position, independent of max_position_size.
MAX_CAPITAL_FRACTION = 0.95


@dataclass
class SimulationResult:
    """Simulator output: closed trades, one equity point per simulated bar, final capital."""
    trades: List[Trade] = field(default_factory=list)
    equity_curve: List[EquityCurvePoint] = field(default_factory=list)
    final_capital: float = 0.0


def validate_strategy_config(config: StrategyConfig) -> None:
    """Reject configs the simulator cannot run. Weights may be any finite value."""
    for name in StrategyConfig.__dataclass_fields__:
        value = getattr(config, name)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ConfigurationError(f"{name} must be a finite number, got {value!r}", field=name)
    if config.stop_loss < 0:
        raise ConfigurationError("stop_loss must be >= 0", field="stop_loss")
    if config.take_profit < 0:
        raise ConfigurationError("take_profit must be >= 0", field="take_profit")
    if config.signal_threshold < 0:
        raise ConfigurationError("signal_threshold must be >= 0", field="signal_threshold")
    if config.max_position_size <= 0:
        raise ConfigurationError("max_position_size must be > 0", field="max_position_size")


def validate_candles(candles: Sequence[Candle], warmup_bars: int) -> None:
    if not candles:
        raise InputDataError("No candles supplied", required=warmup_bars + 1, available=0)
    if len(candles) <= warmup_bars:
        raise InputDataError(
            f"Need more than {warmup_bars} candles for indicator warm-up, got {len(candles)}",
            available_range=(candles[0].timestamp, candles[-1].timestamp),
            required=warmup_bars + 1,
            available=len(candles),
        )
    for prev, cur in zip(candles, candles[1:]):
        if cur.timestamp <= prev.timestamp:
            raise InputDataError(
                f"Candles must be strictly ascending by timestamp ({prev.timestamp} then {cur.timestamp})"
            )
    for c in candles:
        if not (c.close > 0 and math.isfinite(c.close)):
            raise InputDataError(f"Invalid close price {c.close!r} at {c.timestamp}")


def _unrealized(position: SimulatedPosition, price: float) -> float:
    if position.side == PositionSide.LONG:
        return position.size * (price - position.entry_price)
    return position.size * (position.entry_price - price)


def _close(position: SimulatedPosition, candle: Candle, reason: str) -> Trade:
    pnl = _unrealized(position, candle.close)
    notional = position.entry_price * position.size
    return Trade(
        entry_timestamp=position.entry_timestamp,
        exit_timestamp=candle.timestamp,
        side=position.side,
        entry_price=position.entry_price,
        exit_price=candle.close,
        size=position.size,
        pnl=pnl,
        pnl_percentage=(pnl / notional) * 100.0 if notional else 0.0,
        signal_strength=position.signal_at_entry,
        exit_reason=reason,
    )


class PositionSimulator:
    """
    Runs a strategy over historical candles. Deterministic: no clock, no randomness.
    Capital is tracked as initial_capital + realized P&L so that
    final_capital == initial_capital + sum(trade.pnl) holds exactly.
    """

    def __init__(self, strategy: Optional[BaseStrategy] = None):
        self.strategy = strategy or CompositeSignalStrategy()

    def simulate(
        self,
        candles: Sequence[Candle],
        config: StrategyConfig,
        initial_capital: float,
    ) -> SimulationResult:
        validate_strategy_config(config)
        if not (initial_capital > 0 and math.isfinite(initial_capital)):
            raise ConfigurationError("initial_capital must be a positive number", field="initial_capital")
        warmup = self.strategy.warmup_bars
        validate_candles(candles, warmup)

        df = self.strategy.compute_indicators(candles_to_frame(candles))
        signals = self.strategy.signal_series(df, config).to_numpy()

        realized = 0.0
        capital = initial_capital
        peak = initial_capital
        position: Optional[SimulatedPosition] = None
        trades: List[Trade] = []
        equity_curve: List[EquityCurvePoint] = []
        last = len(candles) - 1
        threshold = config.signal_threshold

        for i in range(warmup, len(candles)):
            candle = candles[i]
            sig = float(signals[i])

            equity = capital + (_unrealized(position, candle.close) if position is not None else 0.0)
            peak = max(peak, equity)
            drawdown = (peak - equity) / peak * 100.0 if peak > 0 else 0.0
            equity_curve.append(EquityCurvePoint(
                timestamp=candle.timestamp,
                equity=equity,
                drawdown=min(100.0, max(0.0, drawdown)),
            ))

            if position is not None:
                if position.side == PositionSide.LONG:
                    change = (candle.close - position.entry_price) / position.entry_price
                else:
                    change = (position.entry_price - candle.close) / position.entry_price
                reason = ""
                if change <= -config.stop_loss:
                    reason = "stop_loss"
                elif change >= config.take_profit:
                    reason = "take_profit"
                elif position.side == PositionSide.LONG and sig < -threshold:
                    reason = "signal_reverse"
                elif position.side == PositionSide.SHORT and sig > threshold:
                    reason = "signal_reverse"
                if reason:
                    trade = _close(position, candle, reason)
                    realized += trade.pnl
                    capital = initial_capital + realized
                    trades.append(trade)
                    position = None

            # A position opened on the last bar could not close after its entry.
            if position is None and i < last:
                side = None
                if sig > threshold:
                    side = PositionSide.LONG
                elif sig < -threshold:
                    side = PositionSide.SHORT
                if side is not None:
                    size = min(capital * config.max_position_size, capital * MAX_CAPITAL_FRACTION) / candle.close
                    if size > 0:
                        position = SimulatedPosition(
                            side=side,
                            entry_price=candle.close,
                            entry_timestamp=candle.timestamp,
                            size=size,
                            signal_at_entry=sig,
                        )

        if position is not None:
            trade = _close(position, candles[last], "end_of_data")
            realized += trade.pnl
            capital = initial_capital + realized
            trades.append(trade)

        logger.info(
            "Simulated %d bars: %d trades, final capital %.2f",
            len(equity_curve), len(trades), capital,
        )
        return SimulationResult(trades=trades, equity_curve=equity_curve, final_capital=capital)


def simulate(candles: Sequence[Candle], config: StrategyConfig, initial_capital: float) -> SimulationResult:
    """Simulate the composite strategy over `candles`."""
    return PositionSimulator().simulate(candles, config, initial_capital)
