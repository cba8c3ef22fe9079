"""Interval string helpers."""

SUPPORTED_INTERVALS = ("1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w")


def timeframe_minutes(tf: str) -> int:
    """Convert an interval (e.g. '5m', '1h', '1d', '1w') to minutes."""
    tf = tf.strip().lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    if tf.endswith("w"):
        return int(tf[:-1]) * 60 * 24 * 7
    raise ValueError(f"Unsupported timeframe: {tf}")


def timeframe_seconds(tf: str) -> int:
    return timeframe_minutes(tf) * 60
