"""
Exception hierarchy for the engine.

Gate decisions are values (GateDecision), not exceptions.
"""

from __future__ import annotations
from typing import Optional, Tuple


class TradingEngineError(Exception):
    """Base class for engine errors."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class InputDataError(TradingEngineError):
    """No candles for the requested range, too few for warm-up, or a malformed series."""

    code = "INPUT_DATA"

    def __init__(
        self,
        message: str,
        available_range: Optional[Tuple[int, int]] = None,
        required: Optional[int] = None,
        available: Optional[int] = None,
    ):
        if available_range is not None:
            message = f"{message} (available range: {available_range[0]} - {available_range[1]})"
        super().__init__(message)
        self.available_range = available_range
        self.required = required
        self.available = available

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.available_range is not None:
            data["available_range"] = list(self.available_range)
        return data


class ConfigurationError(TradingEngineError):
    """Malformed strategy config or backtest request. Raised before any simulation work."""

    code = "CONFIGURATION"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidTransitionError(TradingEngineError):
    """Requested run action is not allowed from the current status."""

    code = "INVALID_TRANSITION"

    def __init__(self, action: str, current: str):
        super().__init__(f"Invalid transition {action} from {current}")
        self.action = action
        self.current = current


class CircuitTripped(TradingEngineError):
    """Consecutive live failures reached the breaker threshold."""

    code = "CIRCUIT_TRIPPED"

    def __init__(self, run_id: str, failure_count: int, reason: str):
        super().__init__(f"Live circuit breaker triggered for run {run_id} after {failure_count} failures: {reason}")
        self.run_id = run_id
        self.failure_count = failure_count
        self.reason = reason


class ExchangeResponseError(TradingEngineError):
    """Exchange returned an explicit error for an order request."""

    code = "EXCHANGE_RESPONSE"

    def __init__(self, message: str, errors: Tuple[str, ...] = ()):
        super().__init__(message)
        self.errors = errors


class OrderSubmissionError(TradingEngineError):
    """Order could not be delivered (timeout, connection error, HTTP failure)."""

    code = "ORDER_SUBMISSION"
