"""Unit tests for runs.state_machine."""

import pytest

from trading_engine.core.errors import InvalidTransitionError
from trading_engine.core.types import RunStatus
from trading_engine.runs.state_machine import INITIAL_STATUS, RunAction, can_transition, transition


def test_initial_status():
    assert INITIAL_STATUS == RunStatus.STOPPED


@pytest.mark.parametrize("current, action, expected", [
    (RunStatus.STOPPED, RunAction.START, RunStatus.RUNNING),
    (RunStatus.PAUSED, RunAction.START, RunStatus.RUNNING),
    (RunStatus.ERROR, RunAction.START, RunStatus.RUNNING),
    (RunStatus.RUNNING, RunAction.PAUSE, RunStatus.PAUSED),
    (RunStatus.RUNNING, RunAction.STOP, RunStatus.STOPPED),
    (RunStatus.PAUSED, RunAction.STOP, RunStatus.STOPPED),
    (RunStatus.ERROR, RunAction.STOP, RunStatus.STOPPED),
])
def test_valid_transitions(current, action, expected):
    assert transition(current, action) == expected
    assert can_transition(current, action)


@pytest.mark.parametrize("current", list(RunStatus))
def test_kill_from_any_status(current):
    assert transition(current, RunAction.KILL) == RunStatus.STOPPED


@pytest.mark.parametrize("current, action", [
    (RunStatus.RUNNING, RunAction.START),
    (RunStatus.STOPPED, RunAction.PAUSE),
    (RunStatus.PAUSED, RunAction.PAUSE),
    (RunStatus.ERROR, RunAction.PAUSE),
    (RunStatus.STOPPED, RunAction.STOP),
])
def test_invalid_transitions(current, action):
    assert not can_transition(current, action)
    with pytest.raises(InvalidTransitionError):
        transition(current, action)


def test_accepts_plain_strings():
    assert transition("stopped", "start") == RunStatus.RUNNING
