"""Paper execution: immediate fill at the reference price, no venue involved."""

from __future__ import annotations
from dataclasses import dataclass

from trading_engine.execution.base import OrderRequest

PAPER_FEE_RATE = 0.001


@dataclass(frozen=True)
class PaperFill:
    price: float
    volume: float
    fee: float


class PaperFiller:
    """Fills market orders at the last close with a flat fee."""

    def __init__(self, fee_rate: float = PAPER_FEE_RATE):
        self.fee_rate = fee_rate

    def fill(self, request: OrderRequest) -> PaperFill:
        if request.reference_price is None or request.reference_price <= 0:
            raise ValueError("paper fills need a positive reference price")
        fee = request.volume * request.reference_price * self.fee_rate
        return PaperFill(price=request.reference_price, volume=request.volume, fee=fee)
