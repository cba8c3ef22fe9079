"""Unit tests for execution.normalizer."""

import pytest

from trading_engine.core.errors import ExchangeResponseError
from trading_engine.core.types import OrderStatus
from trading_engine.execution.normalizer import normalize, unwrap


def test_normalize_txid():
    order = normalize({"txid": ["ABC123"]})
    assert order.exchange_order_id == "ABC123"
    assert order.status == OrderStatus.SUBMITTED
    assert not order.needs_reconciliation


def test_normalize_takes_first_txid():
    assert normalize({"txid": ["FIRST", "SECOND"]}).exchange_order_id == "FIRST"


@pytest.mark.parametrize("raw", [{}, None, [], "garbage", {"txid": []}, {"txid": [None]}, {"txid": [123]}, {"txid": [""]}])
def test_normalize_unconfirmed(raw):
    order = normalize(raw)
    assert order.exchange_order_id is None
    assert order.status == OrderStatus.UNCONFIRMED
    assert order.needs_reconciliation


def test_unwrap_result():
    envelope = {"error": [], "result": {"txid": ["OXYZ"], "descr": {"order": "buy 0.1 XBTUSD @ market"}}}
    assert normalize(unwrap(envelope)).exchange_order_id == "OXYZ"


def test_unwrap_error():
    with pytest.raises(ExchangeResponseError) as exc:
        unwrap({"error": ["EOrder:Insufficient funds"]})
    assert exc.value.errors == ("EOrder:Insufficient funds",)


def test_unwrap_missing_result():
    assert unwrap({"error": []}) == {}
    assert unwrap(None) == {}
