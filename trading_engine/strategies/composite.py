"""
Composite trend / mean-reversion / momentum signal.

  trend     = (SMA20 - SMA50) / SMA50
  mean_rev  = (SMA20 - close) / close
  momentum  = (RSI14 - 50) / 50
  signal    = trend_weight * trend + mean_rev_weight * mean_rev + carry_weight * momentum

Rolling windows are causal, so the value at bar i only depends on bars <= i.
"""

from __future__ import annotations
from typing import Sequence

import numpy as np
import pandas as pd

from trading_engine.core.types import Candle, StrategyConfig
from trading_engine.strategies.base import BaseStrategy

SHORT_MA = 20
LONG_MA = 50
RSI_LEN = 14
WARMUP_BARS = LONG_MA

# Rolling sums of clipped deltas can leave residue instead of an exact zero.
_ZERO_EPS = 1e-12


class CompositeSignalStrategy(BaseStrategy):
    """Weighted linear blend of three independent components. Stateless."""

    def __init__(self, short_ma: int = SHORT_MA, long_ma: int = LONG_MA, rsi_len: int = RSI_LEN):
        self.short_ma = short_ma
        self.long_ma = long_ma
        self.rsi_len = rsi_len
        self.warmup_bars = max(long_ma, short_ma, rsi_len)

    def compute_indicators(self, df: pd.DataFrame) -> pd.DataFrame:
        df = df.copy()
        close = df["close"].astype(float)
        df["sma_short"] = close.rolling(self.short_ma).mean()
        df["sma_long"] = close.rolling(self.long_ma).mean()
        # RSI: simple average of the last rsi_len close-to-close gains / losses
        delta = close.diff()
        avg_gain = delta.clip(lower=0).rolling(self.rsi_len).mean()
        avg_loss = (-delta).clip(lower=0).rolling(self.rsi_len).mean()
        gain = avg_gain.where(avg_gain.abs() > _ZERO_EPS, 0.0)
        loss = avg_loss.where(avg_loss.abs() > _ZERO_EPS, 0.0)
        rs = gain / loss.replace(0.0, np.nan)
        rsi = 100.0 - 100.0 / (1.0 + rs)
        # No losses: 100 if anything went up, neutral if the window was flat
        rsi = rsi.where(loss > 0, np.where(gain > 0, 100.0, 50.0))
        df["rsi"] = rsi.where(avg_gain.notna() & avg_loss.notna())
        return df

    def components(self, df: pd.DataFrame) -> pd.DataFrame:
        """trend / mean_rev / momentum columns; 0 where undefined or not finite."""
        close = df["close"].astype(float)
        sma_s = df["sma_short"]
        sma_l = df["sma_long"]
        with np.errstate(divide="ignore", invalid="ignore"):
            trend = (sma_s - sma_l) / sma_l
            mean_rev = (sma_s - close) / close
            momentum = (df["rsi"] - 50.0) / 50.0
        out = pd.DataFrame({"trend": trend, "mean_rev": mean_rev, "momentum": momentum})
        return out.replace([np.inf, -np.inf], np.nan).fillna(0.0)

    def signal_series(self, df: pd.DataFrame, config: StrategyConfig) -> pd.Series:
        comp = self.components(df)
        sig = (
            config.trend_weight * comp["trend"]
            + config.mean_rev_weight * comp["mean_rev"]
            + config.carry_weight * comp["momentum"]
        )
        sig = sig.replace([np.inf, -np.inf], np.nan).fillna(0.0)
        sig.iloc[: self.warmup_bars] = 0.0
        return sig


_DEFAULT = CompositeSignalStrategy()


def signal(history: Sequence[Candle], index: int, config: StrategyConfig) -> float:
    """Composite signal for bar `index`; 0.0 before the warm-up window is filled."""
    return _DEFAULT.signal(history, index, config)
