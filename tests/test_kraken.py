"""Tests for execution.kraken with a fake requests session."""

import base64

import pytest
import requests

from trading_engine.core.errors import OrderSubmissionError
from trading_engine.core.types import OrderRecord, OrderSide, OrderStatus
from trading_engine.execution.base import OrderRequest
from trading_engine.execution.kraken import KrakenOrderSubmitter, kraken_pair, sign_request

SECRET = base64.b64encode(b"0123456789abcdef" * 4).decode()


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}", response=self)

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.posts = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response


def _request():
    return OrderRequest("cid-1", "BTC/USD", OrderSide.BUY, 0.0123, reference_price=50000.0)


def test_kraken_pair():
    assert kraken_pair("BTC/USD") == "XBTUSD"
    assert kraken_pair("eth/usd") == "ETHUSD"


def test_sign_request_deterministic():
    data = {"nonce": "1616492376594", "ordertype": "market", "pair": "XBTUSD"}
    sig = sign_request("/0/private/AddOrder", data, SECRET)
    assert sig == sign_request("/0/private/AddOrder", data, SECRET)
    assert len(base64.b64decode(sig)) == 64
    other = dict(data, nonce="1616492376595")
    assert sign_request("/0/private/AddOrder", other, SECRET) != sig


def test_submit_posts_market_order():
    envelope = {"error": [], "result": {"txid": ["OABC"]}}
    session = FakeSession(FakeResponse(envelope))
    submitter = KrakenOrderSubmitter("key", SECRET, timeout=3.0, session=session)
    assert submitter.submit(_request()) == envelope
    post = session.posts[0]
    assert post["url"] == "https://api.kraken.com/0/private/AddOrder"
    assert post["timeout"] == 3.0
    assert post["data"]["pair"] == "XBTUSD"
    assert post["data"]["type"] == "buy"
    assert post["data"]["volume"] == "0.01230000"
    assert post["data"]["cl_ord_id"] == "cid-1"
    assert post["headers"]["API-Key"] == "key"


def test_submit_timeout():
    session = FakeSession(exc=requests.Timeout("slow"))
    submitter = KrakenOrderSubmitter("key", SECRET, session=session)
    with pytest.raises(OrderSubmissionError):
        submitter.submit(_request())


def test_submit_http_error():
    session = FakeSession(FakeResponse({}, status=502))
    submitter = KrakenOrderSubmitter("key", SECRET, session=session)
    with pytest.raises(OrderSubmissionError):
        submitter.submit(_request())


def test_credentials_ready():
    assert KrakenOrderSubmitter("key", SECRET).credentials_ready()
    assert not KrakenOrderSubmitter("", SECRET).credentials_ready()
    assert not KrakenOrderSubmitter("key", "not base64!").credentials_ready()


def _order(exchange_order_id=None):
    return OrderRecord(
        id="o-1", run_id="r-1", client_order_id="cid-1", symbol="BTC/USD", side=OrderSide.BUY,
        volume=0.0123, status=OrderStatus.UNCONFIRMED, exchange_order_id=exchange_order_id,
    )


def test_cancel_by_txid():
    session = FakeSession(FakeResponse({"error": [], "result": {"count": 1}}))
    assert KrakenOrderSubmitter("key", SECRET, session=session).cancel(_order("OABC"))
    post = session.posts[0]
    assert post["url"].endswith("/0/private/CancelOrder")
    assert post["data"]["txid"] == "OABC"
    assert "cl_ord_id" not in post["data"]


def test_cancel_by_client_id_without_txid():
    session = FakeSession(FakeResponse({"error": [], "result": {"count": 1}}))
    assert KrakenOrderSubmitter("key", SECRET, session=session).cancel(_order())
    post = session.posts[0]
    assert post["data"]["cl_ord_id"] == "cid-1"
    assert "txid" not in post["data"]


def test_cancel_failure_returns_false():
    session = FakeSession(exc=requests.ConnectionError("down"))
    assert not KrakenOrderSubmitter("key", SECRET, session=session).cancel(_order("OABC"))


def test_cancel_rejected_returns_false():
    session = FakeSession(FakeResponse({"error": ["EOrder:Unknown order"]}))
    assert not KrakenOrderSubmitter("key", SECRET, session=session).cancel(_order("OABC"))
