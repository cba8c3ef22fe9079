"""Unit tests for gating.live_gate."""

import pytest

from trading_engine.core.types import RunMode, RunRecord, RunStatus
from trading_engine.gating.live_gate import GateReason, evaluate, next_failure_state

NOW = 10_000.0


def _run(**overrides):
    fields = dict(
        id="run-1",
        symbol="BTC/USD",
        mode=RunMode.LIVE,
        status=RunStatus.RUNNING,
        live_armed=True,
        armed_at=NOW - 3600,
    )
    fields.update(overrides)
    return RunRecord(**fields)


def _evaluate(run, **overrides):
    kwargs = dict(
        live_trading_enabled=True,
        kill_switch_active=False,
        secrets_ready=True,
        cooldown_seconds=60.0,
        now=NOW,
    )
    kwargs.update(overrides)
    return evaluate(run, **kwargs)


def test_allowed_when_all_conditions_hold():
    decision = _evaluate(_run())
    assert decision.allowed
    assert decision.reasons == frozenset()


def test_kill_switch_always_reported():
    decision = _evaluate(_run(), kill_switch_active=True)
    assert not decision.allowed
    assert GateReason.KILL_SWITCH_ACTIVE in decision.reasons
    everything_wrong = _evaluate(
        _run(live_armed=False, status=RunStatus.PAUSED),
        kill_switch_active=True, live_trading_enabled=False, secrets_ready=False,
    )
    assert GateReason.KILL_SWITCH_ACTIVE in everything_wrong.reasons


def test_run_kill_switch_flag():
    decision = _evaluate(_run(kill_switch_active=True))
    assert decision.reasons == frozenset({GateReason.KILL_SWITCH_ACTIVE})


def test_not_armed_always_reported():
    decision = _evaluate(_run(live_armed=False, armed_at=None), kill_switch_active=True)
    assert GateReason.LIVE_NOT_ARMED in decision.reasons


def test_all_reasons_accumulated():
    run = _run(mode=RunMode.PAPER, status=RunStatus.STOPPED, live_armed=False, last_live_action_at=NOW - 1)
    decision = _evaluate(run, live_trading_enabled=False, kill_switch_active=True, secrets_ready=False)
    assert decision.reasons == frozenset(GateReason)
    assert decision.reason_codes() == sorted(r.value for r in GateReason)


@pytest.mark.parametrize("armed_ago, last_action_ago, blocked", [
    (30, None, True),
    (120, None, False),
    (120, 10, True),
    (120, 60, False),
])
def test_cooldown(armed_ago, last_action_ago, blocked):
    run = _run(
        armed_at=NOW - armed_ago,
        last_live_action_at=None if last_action_ago is None else NOW - last_action_ago,
    )
    decision = _evaluate(run)
    assert (GateReason.COOLDOWN_ACTIVE in decision.reasons) is blocked


def test_secrets_and_disabled():
    decision = _evaluate(_run(), secrets_ready=False, live_trading_enabled=False)
    assert decision.reasons == frozenset({GateReason.SECRETS_NOT_READY, GateReason.LIVE_DISABLED})


def test_next_failure_state_trips_at_threshold():
    state = next_failure_state(_run(live_failure_count=2), 3)
    assert state.next_count == 3
    assert state.triggered


def test_next_failure_state_below_threshold():
    state = next_failure_state(_run(live_failure_count=0), 3)
    assert state.next_count == 1
    assert not state.triggered


def test_next_failure_state_threshold_one():
    assert next_failure_state(_run(live_failure_count=0), 1).triggered
