"""Abstract order submission interface."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from trading_engine.core.types import OrderRecord, OrderSide


@dataclass(frozen=True)
class OrderRequest:
    """Validated market order the engine wants on the venue."""
    client_order_id: str
    symbol: str
    side: OrderSide
    volume: float
    reference_price: Optional[float] = None


class OrderSubmitter(ABC):
    """Delivers an order to an exchange and hands back the raw response untouched."""

    @abstractmethod
    def credentials_ready(self) -> bool:
        """True when the keys needed to trade are resolvable."""

    @abstractmethod
    def submit(self, request: OrderRequest) -> Dict[str, Any]:
        """
        Submit a market order. Returns the raw exchange payload.
        Raises OrderSubmissionError on timeout or transport failure.
        """

    @abstractmethod
    def cancel(self, order: OrderRecord) -> bool:
        """
        Cancel one order on the venue by its exchange id, or by client id when
        the venue never returned one. True when the venue confirmed the cancel.
        Never raises.
        """
