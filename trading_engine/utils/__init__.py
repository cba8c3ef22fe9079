"""Utils: intervals, exchange lot size filters."""

from trading_engine.utils.timeframes import timeframe_minutes, timeframe_seconds, SUPPORTED_INTERVALS
from trading_engine.utils.exchange_filters import parse_pair_filters, round_quantity

__all__ = [
    "timeframe_minutes",
    "timeframe_seconds",
    "SUPPORTED_INTERVALS",
    "parse_pair_filters",
    "round_quantity",
]
