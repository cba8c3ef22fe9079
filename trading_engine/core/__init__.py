"""Core: config, types, errors, logging."""

from trading_engine.core.config import load_config, Config
from trading_engine.core.types import (
    Candle,
    StrategyConfig,
    SimulatedPosition,
    Trade,
    EquityCurvePoint,
    RunRecord,
    RunMode,
    RunStatus,
    OrderStatus,
    PositionSide,
)
from trading_engine.core.errors import (
    TradingEngineError,
    InputDataError,
    ConfigurationError,
    InvalidTransitionError,
    CircuitTripped,
    ExchangeResponseError,
    OrderSubmissionError,
)
from trading_engine.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "Candle",
    "StrategyConfig",
    "SimulatedPosition",
    "Trade",
    "EquityCurvePoint",
    "RunRecord",
    "RunMode",
    "RunStatus",
    "OrderStatus",
    "PositionSide",
    "TradingEngineError",
    "InputDataError",
    "ConfigurationError",
    "InvalidTransitionError",
    "CircuitTripped",
    "ExchangeResponseError",
    "OrderSubmissionError",
    "setup_logging",
]
