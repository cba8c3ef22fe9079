"""
Exchange order responses -> NormalizedOrder.

This is the only place that reads raw order payloads. Kraken wraps results as
{"error": [...], "result": {"txid": [...], "descr": {...}}}.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

from trading_engine.core.errors import ExchangeResponseError
from trading_engine.core.types import OrderStatus


@dataclass(frozen=True)
class NormalizedOrder:
    exchange_order_id: Optional[str]
    status: OrderStatus

    @property
    def needs_reconciliation(self) -> bool:
        """No exchange id: the order may or may not exist on the venue."""
        return self.exchange_order_id is None


def normalize(raw: Any) -> NormalizedOrder:
    """
    First transaction id in `txid` -> SUBMITTED.
    Missing, empty or malformed ids -> (None, UNCONFIRMED). Never raises.
    """
    txids = raw.get("txid") if isinstance(raw, dict) else None
    if isinstance(txids, (list, tuple)) and txids:
        first = txids[0]
        if isinstance(first, str) and first:
            return NormalizedOrder(exchange_order_id=first, status=OrderStatus.SUBMITTED)
    elif isinstance(txids, str) and txids:
        return NormalizedOrder(exchange_order_id=txids, status=OrderStatus.SUBMITTED)
    return NormalizedOrder(exchange_order_id=None, status=OrderStatus.UNCONFIRMED)


def unwrap(envelope: Any) -> Dict[str, Any]:
    """
    Split the exchange envelope. Raises ExchangeResponseError for an explicit error list;
    a missing or non-dict result comes back as {} and normalizes to UNCONFIRMED.
    """
    if not isinstance(envelope, dict):
        return {}
    errors = envelope.get("error") or []
    if isinstance(errors, str):
        errors = [errors]
    if errors:
        messages = tuple(str(e) for e in errors)
        raise ExchangeResponseError("Exchange rejected order: " + "; ".join(messages), errors=messages)
    result = envelope.get("result")
    return result if isinstance(result, dict) else {}
