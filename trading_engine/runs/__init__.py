"""Runs: lifecycle state machine, run store, run controller."""

from trading_engine.runs.state_machine import RunAction, transition, can_transition
from trading_engine.runs.store import RunStore, InMemoryRunStore, RunNotFoundError
from trading_engine.runs.controller import (
    RunController,
    TickAction,
    TickResult,
    TransitionResult,
    RunStatusReport,
    OrderIntent,
    derive_intent,
)

__all__ = [
    "RunAction",
    "transition",
    "can_transition",
    "RunStore",
    "InMemoryRunStore",
    "RunNotFoundError",
    "RunController",
    "TickAction",
    "TickResult",
    "TransitionResult",
    "RunStatusReport",
    "OrderIntent",
    "derive_intent",
]
