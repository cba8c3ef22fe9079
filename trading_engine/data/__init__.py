"""Data: candle feed interface and implementations."""

from trading_engine.data.feeds import (
    CandleFeed,
    InMemoryCandleFeed,
    CsvCandleFeed,
    BinanceCandleFeed,
    frame_to_candles,
)

__all__ = ["CandleFeed", "InMemoryCandleFeed", "CsvCandleFeed", "BinanceCandleFeed", "frame_to_candles"]
