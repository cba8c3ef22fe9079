"""Gating: live trading gate and circuit breaker."""

from trading_engine.gating.live_gate import (
    GateDecision,
    GateReason,
    FailureState,
    evaluate,
    next_failure_state,
)

__all__ = ["GateDecision", "GateReason", "FailureState", "evaluate", "next_failure_state"]
