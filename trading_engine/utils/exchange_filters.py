"""Lot size helpers from exchange pair info."""

from __future__ import annotations
import math
from typing import Optional


def parse_pair_filters(pair_info: Optional[dict]) -> tuple[float, float]:
    """
    Extract min_qty and lot_step from a Kraken AssetPairs entry
    (ordermin, lot_decimals). Uses defaults if pair_info is None.
    """
    min_qty = 0.0001
    lot_step = 0.00000001
    if not pair_info:
        return min_qty, lot_step
    if pair_info.get("ordermin") is not None:
        min_qty = float(pair_info["ordermin"])
    if pair_info.get("lot_decimals") is not None:
        lot_step = 10.0 ** -int(pair_info["lot_decimals"])
    return min_qty, lot_step


def round_quantity(qty: float, min_qty: float, step_size: float) -> float:
    """Round down to step size; return 0 if below min_qty."""
    if qty <= 0:
        return 0.0
    rounded = math.floor(qty / step_size) * step_size
    if rounded < min_qty:
        return 0.0
    return round(rounded, 8)
