"""Execution: order submission interface, Kraken submitter, paper fills, response normalizer."""

from trading_engine.execution.base import OrderRequest, OrderSubmitter
from trading_engine.execution.kraken import KrakenOrderSubmitter
from trading_engine.execution.normalizer import NormalizedOrder, normalize, unwrap
from trading_engine.execution.paper import PaperFill, PaperFiller

__all__ = [
    "OrderRequest",
    "OrderSubmitter",
    "KrakenOrderSubmitter",
    "NormalizedOrder",
    "normalize",
    "unwrap",
    "PaperFill",
    "PaperFiller",
]
