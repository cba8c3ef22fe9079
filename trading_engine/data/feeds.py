"""
Candle feeds: ordered OHLCV candles for (symbol, interval, time range).
The engine never fetches or caches candles itself; it is handed a feed.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from trading_engine.core.types import Candle

logger = logging.getLogger("trading_engine.data")

CSV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


class CandleFeed(ABC):
    """Source of historical candles, ascending by timestamp."""

    @abstractmethod
    def get_candles(
        self,
        symbol: str,
        interval: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Candle]:
        """Candles with start <= timestamp <= end. With `limit`, only the most recent ones."""

    def available_range(self, symbol: str, interval: str) -> Optional[Tuple[int, int]]:
        """(first, last) timestamp the feed holds for the series, if known."""
        return None


def _select(candles: List[Candle], start: Optional[int], end: Optional[int], limit: Optional[int]) -> List[Candle]:
    out = [
        c for c in candles
        if (start is None or c.timestamp >= start) and (end is None or c.timestamp <= end)
    ]
    if limit is not None:
        out = out[-limit:] if limit > 0 else []
    return out


def frame_to_candles(df: pd.DataFrame) -> List[Candle]:
    """DataFrame with CSV_COLUMNS -> sorted, de-duplicated candles."""
    df = df[CSV_COLUMNS].dropna()
    df = df.drop_duplicates(subset="timestamp", keep="last").sort_values("timestamp")
    return [
        Candle(
            timestamp=int(row.timestamp),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in df.itertuples(index=False)
    ]


class InMemoryCandleFeed(CandleFeed):
    """Series held in memory, keyed by (symbol, interval)."""

    def __init__(self, series: Optional[Dict[Tuple[str, str], Iterable[Candle]]] = None):
        self._series: Dict[Tuple[str, str], List[Candle]] = {}
        for (symbol, interval), candles in (series or {}).items():
            self.put(symbol, interval, candles)

    def put(self, symbol: str, interval: str, candles: Iterable[Candle]) -> None:
        merged = {c.timestamp: c for c in self._series.get((symbol, interval), [])}
        merged.update({c.timestamp: c for c in candles})
        self._series[(symbol, interval)] = [merged[ts] for ts in sorted(merged)]

    def get_candles(self, symbol, interval, start=None, end=None, limit=None) -> List[Candle]:
        return _select(self._series.get((symbol, interval), []), start, end, limit)

    def available_range(self, symbol: str, interval: str) -> Optional[Tuple[int, int]]:
        candles = self._series.get((symbol, interval))
        if not candles:
            return None
        return candles[0].timestamp, candles[-1].timestamp


class CsvCandleFeed(CandleFeed):
    """
    One CSV per series: columns timestamp (epoch seconds), open, high, low, close, volume.
    A single file serves every symbol/interval when `path` points to a file;
    a directory is searched for '<SYMBOL>_<interval>.csv' with '/' removed from the symbol.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._cache: Dict[Path, List[Candle]] = {}

    def _file_for(self, symbol: str, interval: str) -> Path:
        if self.path.is_dir():
            return self.path / f"{symbol.replace('/', '').upper()}_{interval}.csv"
        return self.path

    def _load(self, symbol: str, interval: str) -> List[Candle]:
        file = self._file_for(symbol, interval)
        if file not in self._cache:
            if not file.exists():
                logger.warning("Candle file not found: %s", file)
                return []
            self._cache[file] = frame_to_candles(pd.read_csv(file))
        return self._cache[file]

    def get_candles(self, symbol, interval, start=None, end=None, limit=None) -> List[Candle]:
        return _select(self._load(symbol, interval), start, end, limit)

    def available_range(self, symbol: str, interval: str) -> Optional[Tuple[int, int]]:
        candles = self._load(symbol, interval)
        if not candles:
            return None
        return candles[0].timestamp, candles[-1].timestamp


def binance_symbol(symbol: str) -> str:
    """'BTC/USD' -> 'BTCUSDT'; already-joined symbols pass through."""
    base, _, quote = symbol.upper().partition("/")
    if not quote:
        return base
    if quote == "USD":
        quote = "USDT"
    return base + quote


class BinanceCandleFeed(CandleFeed):
    """Public Binance spot klines. No keys needed; the client is created on first use."""

    def __init__(self, timeout: float = 10.0, client=None):
        self._timeout = timeout
        self._client = client

    def _get_client(self):
        if self._client is None:
            from binance.client import Client

            self._client = Client(requests_params={"timeout": self._timeout})
        return self._client

    def get_candles(self, symbol, interval, start=None, end=None, limit=None) -> List[Candle]:
        client = self._get_client()
        if start is not None:
            raw = client.get_historical_klines(
                binance_symbol(symbol),
                interval,
                start_str=int(start) * 1000,
                end_str=int(end) * 1000 if end is not None else None,
            )
        else:
            raw = client.get_klines(symbol=binance_symbol(symbol), interval=interval, limit=limit or 500)
        df = pd.DataFrame(raw, columns=[
            "open_time", "open", "high", "low", "close", "volume",
            "close_time", "quote_av", "num_trades", "tb_base_av", "tb_quote_av", "ignore",
        ])
        if df.empty:
            return []
        df[["open", "high", "low", "close", "volume"]] = df[["open", "high", "low", "close", "volume"]].astype(float)
        df["timestamp"] = (df["open_time"].astype("int64") // 1000).astype("int64")
        return _select(frame_to_candles(df), start, end, limit)
