"""Abstract strategy: indicators + per-bar signal."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Sequence

import pandas as pd

from trading_engine.core.types import Candle, StrategyConfig


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """OHLCV DataFrame (columns: timestamp, open, high, low, close, volume)."""
    return pd.DataFrame(
        {
            "timestamp": [c.timestamp for c in candles],
            "open": [float(c.open) for c in candles],
            "high": [float(c.high) for c in candles],
            "low": [float(c.low) for c in candles],
            "close": [float(c.close) for c in candles],
            "volume": [float(c.volume) for c in candles],
        }
    )


class BaseStrategy(ABC):
    """Strategy computes causal indicators and a scalar signal per bar."""

    warmup_bars: int = 0

    @abstractmethod
    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add indicator columns to an OHLCV DataFrame. No lookahead."""

    @abstractmethod
    def signal_series(self, df: pd.DataFrame, config: StrategyConfig) -> pd.Series:
        """Signal for every row of an indicator frame; 0 during warm-up."""

    def signal(self, history: Sequence[Candle], index: int, config: StrategyConfig) -> float:
        """Signal for bar `index` using only history[: index + 1]."""
        if index < 0 or index >= len(history):
            raise IndexError(f"bar index {index} outside history of {len(history)} candles")
        if index < self.warmup_bars:
            return 0.0
        df = self.compute_indicators(candles_to_frame(history[: index + 1]))
        return float(self.signal_series(df, config).iloc[-1])
