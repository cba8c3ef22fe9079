"""Run lifecycle: stopped | running | paused | error."""

from __future__ import annotations
from enum import Enum

from trading_engine.core.errors import InvalidTransitionError
from trading_engine.core.types import RunStatus


class RunAction(str, Enum):
    START = "start"
    PAUSE = "pause"
    STOP = "stop"
    KILL = "kill"


INITIAL_STATUS = RunStatus.STOPPED

# action -> statuses it may be applied from, and the resulting status
_TRANSITIONS = {
    RunAction.START: ({RunStatus.STOPPED, RunStatus.PAUSED, RunStatus.ERROR}, RunStatus.RUNNING),
    RunAction.PAUSE: ({RunStatus.RUNNING}, RunStatus.PAUSED),
    RunAction.STOP: ({RunStatus.RUNNING, RunStatus.PAUSED, RunStatus.ERROR}, RunStatus.STOPPED),
    RunAction.KILL: (set(RunStatus), RunStatus.STOPPED),
}


def can_transition(current: RunStatus, action: RunAction) -> bool:
    allowed, _ = _TRANSITIONS[RunAction(action)]
    return RunStatus(current) in allowed


def transition(current: RunStatus, action: RunAction) -> RunStatus:
    """Next status, or InvalidTransitionError. Side effects of kill live in the controller."""
    action = RunAction(action)
    current = RunStatus(current)
    allowed, target = _TRANSITIONS[action]
    if current not in allowed:
        raise InvalidTransitionError(action.value, current.value)
    return target
