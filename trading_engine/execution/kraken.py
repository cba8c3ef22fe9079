"""
Kraken spot REST order submission with bounded timeouts.
"""

from __future__ import annotations
import base64
import hashlib
import hmac
import logging
import time
import urllib.parse
from typing import Any, Dict, Optional

import requests

from trading_engine.core.errors import ExchangeResponseError, OrderSubmissionError
from trading_engine.core.types import OrderRecord
from trading_engine.execution.base import OrderRequest, OrderSubmitter
from trading_engine.execution.normalizer import unwrap

logger = logging.getLogger("trading_engine.execution.kraken")

ADD_ORDER_PATH = "/0/private/AddOrder"
CANCEL_ORDER_PATH = "/0/private/CancelOrder"
ASSET_PAIRS_PATH = "/0/public/AssetPairs"


def kraken_pair(symbol: str) -> str:
    """'BTC/USD' -> 'XBTUSD'."""
    return symbol.upper().replace("BTC", "XBT").replace("/", "")


def sign_request(url_path: str, data: Dict[str, Any], secret: str) -> str:
    """API-Sign header: HMAC-SHA512(path + SHA256(nonce + postdata)) with the base64 secret."""
    postdata = urllib.parse.urlencode(data)
    encoded = (str(data["nonce"]) + postdata).encode()
    message = url_path.encode() + hashlib.sha256(encoded).digest()
    mac = hmac.new(base64.b64decode(secret), message, hashlib.sha512)
    return base64.b64encode(mac.digest()).decode()


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry idempotent calls on HTTP 429."""
    def decorator(f):
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except requests.HTTPError as e:
                    last_exc = e
                    status = e.response.status_code if e.response is not None else None
                    if status == 429 and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


class KrakenOrderSubmitter(OrderSubmitter):
    """Market orders on Kraken. AddOrder is never retried automatically."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.kraken.com",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def credentials_ready(self) -> bool:
        if not self._api_key or not self._api_secret:
            return False
        try:
            base64.b64decode(self._api_secret, validate=True)
        except ValueError:
            logger.warning("Kraken API secret is not valid base64")
            return False
        return True

    def _private(self, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        data = {"nonce": str(int(time.time() * 1000)), **data}
        headers = {
            "API-Key": self._api_key,
            "API-Sign": sign_request(path, data, self._api_secret),
        }
        try:
            resp = self._session.post(self._base_url + path, data=data, headers=headers, timeout=self._timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.Timeout as e:
            raise OrderSubmissionError(f"Kraken request timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            raise OrderSubmissionError(f"Kraken request failed: {e}") from e
        except ValueError as e:
            raise OrderSubmissionError("Kraken returned a non-JSON body") from e

    def submit(self, request: OrderRequest) -> Dict[str, Any]:
        payload = {
            "ordertype": "market",
            "type": request.side.value,
            "volume": f"{request.volume:.8f}",
            "pair": kraken_pair(request.symbol),
            "cl_ord_id": request.client_order_id,
        }
        logger.info(
            "Submitting %s %s %s (client id %s)",
            request.side.value, payload["volume"], payload["pair"], request.client_order_id,
        )
        return self._private(ADD_ORDER_PATH, payload)

    def cancel(self, order: OrderRecord) -> bool:
        if order.exchange_order_id:
            payload = {"txid": order.exchange_order_id}
        else:
            payload = {"cl_ord_id": order.client_order_id}
        try:
            result = unwrap(self._private(CANCEL_ORDER_PATH, payload))
        except (OrderSubmissionError, ExchangeResponseError) as e:
            logger.warning("CancelOrder failed for %s: %s", order.client_order_id, e)
            return False
        logger.info("Canceled %s (%s open orders canceled)", order.client_order_id, result.get("count"))
        return True

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def get_pair_info(self, symbol: str) -> Optional[dict]:
        """Public AssetPairs entry for `symbol` (lot / price precision), or None."""
        pair = kraken_pair(symbol)
        resp = self._session.get(self._base_url + ASSET_PAIRS_PATH, params={"pair": pair}, timeout=self._timeout)
        resp.raise_for_status()
        result = resp.json().get("result") or {}
        for info in result.values():
            return info
        return None
