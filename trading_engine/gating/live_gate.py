"""
Live trading gate and circuit breaker.

evaluate() collects every blocking reason that applies; callers show all of them.
next_failure_state() only ever increments; resets belong to the run controller.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from trading_engine.core.types import RunMode, RunRecord, RunStatus


class GateReason(str, Enum):
    LIVE_DISABLED = "LIVE_DISABLED"
    KILL_SWITCH_ACTIVE = "KILL_SWITCH_ACTIVE"
    NOT_LIVE_MODE = "NOT_LIVE_MODE"
    LIVE_NOT_ARMED = "LIVE_NOT_ARMED"
    SECRETS_NOT_READY = "SECRETS_NOT_READY"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    RUN_NOT_RUNNING = "RUN_NOT_RUNNING"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reasons: FrozenSet[GateReason] = frozenset()

    def reason_codes(self) -> list:
        """Reason values in a stable order, for events and operator display."""
        return sorted(r.value for r in self.reasons)


@dataclass(frozen=True)
class FailureState:
    next_count: int
    triggered: bool


def last_live_action(run: RunRecord) -> Optional[float]:
    """Most recent of arming and the last live order attempt."""
    times = [t for t in (run.armed_at, run.last_live_action_at) if t is not None]
    return max(times) if times else None


def evaluate(
    run: RunRecord,
    live_trading_enabled: bool,
    kill_switch_active: bool,
    secrets_ready: bool,
    cooldown_seconds: float,
    now: float,
) -> GateDecision:
    """Decide whether `run` may submit a live order at `now` (epoch seconds)."""
    reasons = set()
    if not live_trading_enabled:
        reasons.add(GateReason.LIVE_DISABLED)
    if kill_switch_active or run.kill_switch_active:
        reasons.add(GateReason.KILL_SWITCH_ACTIVE)
    if run.mode != RunMode.LIVE:
        reasons.add(GateReason.NOT_LIVE_MODE)
    if not run.live_armed:
        reasons.add(GateReason.LIVE_NOT_ARMED)
    if not secrets_ready:
        reasons.add(GateReason.SECRETS_NOT_READY)
    last_action = last_live_action(run)
    if last_action is not None and now - last_action < cooldown_seconds:
        reasons.add(GateReason.COOLDOWN_ACTIVE)
    if run.status != RunStatus.RUNNING:
        reasons.add(GateReason.RUN_NOT_RUNNING)
    return GateDecision(allowed=not reasons, reasons=frozenset(reasons))


def next_failure_state(run: RunRecord, threshold: int) -> FailureState:
    """Count one more consecutive live failure; trips at exactly `threshold`."""
    next_count = max(0, int(run.live_failure_count or 0)) + 1
    return FailureState(next_count=next_count, triggered=next_count >= threshold)
