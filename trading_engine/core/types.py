"""
Core data types: candles, strategy config, simulated positions, trades, run records.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class RunMode(str, Enum):
    PAPER = "paper"
    LIVE = "live"


class RunStatus(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"
    ERROR = "error"


class OrderStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    UNCONFIRMED = "unconfirmed"  # accepted by the exchange, no id returned
    REJECTED = "rejected"
    FILLED = "filled"
    CANCELED = "canceled"


# Orders in these states are still live on the venue (or may be).
OUTSTANDING_ORDER_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.SUBMITTED,
    OrderStatus.UNCONFIRMED,
})


@dataclass(frozen=True)
class Candle:
    """OHLCV candle. timestamp is epoch seconds."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class StrategyConfig:
    """
    Composite strategy parameters, all fractions.
    Weights are used as given; callers own any normalisation.
    """
    trend_weight: float = 0.4
    mean_rev_weight: float = 0.3
    carry_weight: float = 0.3
    signal_threshold: float = 0.2
    stop_loss: float = 0.03
    take_profit: float = 0.08
    max_position_size: float = 0.2

    @classmethod
    def from_dict(cls, data: dict) -> "StrategyConfig":
        """Accepts snake_case or the camelCase keys used by API payloads."""
        aliases = {
            "trendWeight": "trend_weight",
            "meanRevWeight": "mean_rev_weight",
            "carryWeight": "carry_weight",
            "signalThreshold": "signal_threshold",
            "stopLoss": "stop_loss",
            "takeProfit": "take_profit",
            "maxPositionSize": "max_position_size",
        }
        kwargs = {}
        for key, value in (data or {}).items():
            name = aliases.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = float(value)
        return cls(**kwargs)


@dataclass
class SimulatedPosition:
    """Open position during a simulation. Never persisted."""
    side: PositionSide
    entry_price: float
    entry_timestamp: int
    size: float
    signal_at_entry: float


@dataclass(frozen=True)
class Trade:
    """Closed simulated trade."""
    entry_timestamp: int
    exit_timestamp: int
    side: PositionSide
    entry_price: float
    exit_price: float
    size: float
    pnl: float
    pnl_percentage: float
    signal_strength: float
    exit_reason: str  # "stop_loss" | "take_profit" | "signal_reverse" | "end_of_data"


@dataclass(frozen=True)
class EquityCurvePoint:
    timestamp: int
    equity: float
    drawdown: float  # percent below running peak, 0..100


@dataclass
class LivePosition:
    """Position a run believes it holds (paper fills or submitted live orders)."""
    side: PositionSide
    size: float
    entry_price: float
    opened_at: float


@dataclass
class RunRecord:
    """
    Run/bot record as persisted by the run store.
    Times are epoch seconds; the store hands out snapshots, writes are authoritative.
    """
    id: str
    symbol: str
    interval: str = "1h"
    mode: RunMode = RunMode.PAPER
    status: RunStatus = RunStatus.STOPPED
    bot_id: Optional[str] = None
    live_armed: bool = False
    armed_at: Optional[float] = None
    live_failure_count: int = 0
    last_heartbeat_at: Optional[float] = None
    last_live_action_at: Optional[float] = None
    last_live_failure_at: Optional[float] = None
    kill_switch_active: bool = False
    last_error: Optional[str] = None
    strategy_config: StrategyConfig = field(default_factory=StrategyConfig)
    capital: float = 10000.0
    position: Optional[LivePosition] = None
    created_at: float = 0.0


@dataclass
class OrderRecord:
    """Order as recorded for a run."""
    id: str
    run_id: str
    client_order_id: str
    symbol: str
    side: OrderSide
    volume: float
    status: OrderStatus
    price: Optional[float] = None
    exchange_order_id: Optional[str] = None
    reason: str = ""
    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass
class RunEvent:
    """Audit event attached to a run."""
    run_id: str
    event_type: str  # "start" | "pause" | "stop" | "kill" | "tick" | "order" | "fill" | "error" | "risk_alert" | "config_change" | "heartbeat"
    message: str
    severity: str = "info"
    payload: dict = field(default_factory=dict)
    created_at: float = 0.0
