"""Strategies: base interface and the composite signal engine."""

from trading_engine.strategies.base import BaseStrategy, candles_to_frame
from trading_engine.strategies.composite import CompositeSignalStrategy, WARMUP_BARS, signal

__all__ = ["BaseStrategy", "candles_to_frame", "CompositeSignalStrategy", "WARMUP_BARS", "signal"]
