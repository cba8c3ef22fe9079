"""
Run controller: lifecycle transitions, live arming, kill, and the per-run tick.

Every mutation of a run happens under that run's lock, so ticks for one run are
serialized while different runs proceed independently. kill() raises an
interruption marker before it waits for the lock; an in-flight tick checks the
marker right before it submits anything.

A live run submits nothing while one of its orders is pending or unconfirmed;
resolve_order() settles such an order once its venue state is known.
"""

from __future__ import annotations
import logging
import threading
import time
import uuid
import weakref
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from trading_engine.backtesting.engine import MAX_CAPITAL_FRACTION
from trading_engine.core.config import Config
from trading_engine.core.errors import (
    CircuitTripped,
    ConfigurationError,
    ExchangeResponseError,
    OrderSubmissionError,
)
from trading_engine.core.types import (
    OUTSTANDING_ORDER_STATUSES,
    LivePosition,
    OrderRecord,
    OrderSide,
    OrderStatus,
    PositionSide,
    RunEvent,
    RunMode,
    RunRecord,
    RunStatus,
    StrategyConfig,
)
from trading_engine.data.feeds import CandleFeed
from trading_engine.execution.base import OrderRequest, OrderSubmitter
from trading_engine.execution.normalizer import normalize, unwrap
from trading_engine.execution.paper import PaperFiller
from trading_engine.gating.live_gate import GateDecision, evaluate, next_failure_state
from trading_engine.runs import state_machine
from trading_engine.runs.state_machine import RunAction
from trading_engine.runs.store import RunStore
from trading_engine.strategies.base import BaseStrategy
from trading_engine.strategies.composite import CompositeSignalStrategy
from trading_engine.utils.exchange_filters import parse_pair_filters, round_quantity
from trading_engine.utils.timeframes import timeframe_seconds

logger = logging.getLogger("trading_engine.runs")

HEARTBEAT_STALE_SECONDS = 120.0
CANDLE_LOOKBACK = 200
# Live orders need the latest candle to be at most this many intervals old.
STALE_CANDLE_INTERVALS = 2
AWAITING_RECONCILIATION = frozenset({OrderStatus.PENDING, OrderStatus.UNCONFIRMED})
RESOLVED_ORDER_STATUSES = frozenset({
    OrderStatus.SUBMITTED, OrderStatus.FILLED, OrderStatus.REJECTED, OrderStatus.CANCELED,
})


class TickAction(str, Enum):
    SKIPPED = "skipped"
    HOLD = "hold"
    PAPER_FILL = "paper_fill"
    SUBMITTED = "submitted"
    BLOCKED = "blocked"
    INTERRUPTED = "interrupted"
    FAILED = "failed"
    CIRCUIT_TRIPPED = "circuit_tripped"


@dataclass
class TickResult:
    run_id: str
    action: TickAction
    signal: Optional[float] = None
    gate: Optional[GateDecision] = None
    orders: List[OrderRecord] = field(default_factory=list)
    message: str = ""


@dataclass
class TransitionResult:
    run: RunRecord
    gate: Optional[GateDecision] = None


@dataclass
class RunStatusReport:
    run: RunRecord
    healthy: bool
    heartbeat_age: Optional[float]
    gate: GateDecision
    outstanding_orders: int = 0


@dataclass(frozen=True)
class OrderIntent:
    """What the signal asks for this tick: close the open position and/or open one."""
    close: bool
    open_side: Optional[PositionSide]
    reason: str


def derive_intent(
    position: Optional[LivePosition],
    sig: float,
    price: float,
    config: StrategyConfig,
) -> Optional[OrderIntent]:
    """Same exit and entry rules as the simulator, applied to the latest bar."""
    threshold = config.signal_threshold
    if position is not None:
        if position.side == PositionSide.LONG:
            change = (price - position.entry_price) / position.entry_price
        else:
            change = (position.entry_price - price) / position.entry_price
        if change <= -config.stop_loss:
            return OrderIntent(close=True, open_side=None, reason="stop_loss")
        if change >= config.take_profit:
            return OrderIntent(close=True, open_side=None, reason="take_profit")
        if position.side == PositionSide.LONG and sig < -threshold:
            return OrderIntent(close=True, open_side=PositionSide.SHORT, reason="signal_reverse")
        if position.side == PositionSide.SHORT and sig > threshold:
            return OrderIntent(close=True, open_side=PositionSide.LONG, reason="signal_reverse")
        return None
    if sig > threshold:
        return OrderIntent(close=False, open_side=PositionSide.LONG, reason="signal_entry")
    if sig < -threshold:
        return OrderIntent(close=False, open_side=PositionSide.SHORT, reason="signal_entry")
    return None


def _entry_side(side: PositionSide) -> OrderSide:
    return OrderSide.BUY if side == PositionSide.LONG else OrderSide.SELL


def _exit_side(side: PositionSide) -> OrderSide:
    return OrderSide.SELL if side == PositionSide.LONG else OrderSide.BUY


def _ctx(run_id: str) -> dict:
    return {"run_id": run_id}


class RunController:
    """
    Owns run state changes. Collaborators are injected: store, candle feed,
    live order submitter (optional for paper-only use), strategy and clock.
    """

    def __init__(
        self,
        store: RunStore,
        feed: CandleFeed,
        config: Optional[Config] = None,
        submitter: Optional[OrderSubmitter] = None,
        strategy: Optional[BaseStrategy] = None,
        paper_filler: Optional[PaperFiller] = None,
        pair_info: Optional[dict] = None,
        clock: Callable[[], float] = time.time,
        max_workers: int = 4,
    ):
        self.store = store
        self.feed = feed
        self.config = config or Config()
        self.submitter = submitter
        self.strategy = strategy or CompositeSignalStrategy()
        self.paper_filler = paper_filler or PaperFiller()
        self.min_qty, self.lot_step = parse_pair_filters(pair_info)
        self._clock = clock
        self._max_workers = max_workers
        self._registry_lock = threading.Lock()
        # Entries drop out once no thread holds or waits on the run's lock.
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._interrupts: set = set()

    # ----- locking ---------------------------------------------------------

    def _lock_for(self, run_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(run_id)
            if lock is None:
                lock = self._locks[run_id] = threading.Lock()
            return lock

    def _interrupted(self, run_id: str) -> bool:
        with self._registry_lock:
            return run_id in self._interrupts

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def _event(self, run_id: str, event_type: str, message: str, now: float, severity: str = "info", **payload) -> None:
        self.store.add_event(RunEvent(
            run_id=run_id,
            event_type=event_type,
            message=message,
            severity=severity,
            payload=payload,
            created_at=now,
        ))

    # ----- lifecycle -------------------------------------------------------

    def create_run(
        self,
        symbol: str,
        interval: str = "1h",
        mode: RunMode = RunMode.PAPER,
        strategy_config: Optional[StrategyConfig] = None,
        capital: float = 10000.0,
        bot_id: Optional[str] = None,
        now: Optional[float] = None,
    ) -> RunRecord:
        now = self._now(now)
        if not capital > 0:
            raise ConfigurationError("capital must be positive", field="capital")
        run = RunRecord(
            id=str(uuid.uuid4()),
            symbol=symbol.upper(),
            interval=interval,
            mode=RunMode(mode),
            status=state_machine.INITIAL_STATUS,
            bot_id=bot_id,
            strategy_config=strategy_config or self.config.strategy,
            capital=float(capital),
            created_at=now,
        )
        self.store.save_run(run)
        logger.info("Created %s run for %s %s", run.mode.value, run.symbol, run.interval, extra=_ctx(run.id))
        return run

    def gate_decision(self, run: RunRecord, now: Optional[float] = None) -> GateDecision:
        secrets_ready = self.submitter.credentials_ready() if self.submitter is not None else False
        return evaluate(
            run,
            live_trading_enabled=self.config.live_trading_enabled,
            kill_switch_active=self.config.kill_switch_enabled,
            secrets_ready=secrets_ready,
            cooldown_seconds=self.config.live_cooldown_seconds,
            now=self._now(now),
        )

    def transition(self, run_id: str, action: RunAction, now: Optional[float] = None) -> TransitionResult:
        """Apply start / pause / stop / kill. Raises InvalidTransitionError."""
        action = RunAction(action)
        if action == RunAction.KILL:
            return TransitionResult(run=self.kill(run_id, now=now))
        now = self._now(now)
        with self._lock_for(run_id):
            run = self.store.get_run(run_id)
            previous = run.status
            run.status = state_machine.transition(run.status, action)
            if action == RunAction.START:
                run.last_heartbeat_at = now
                run.last_error = None
            gate = None
            if action == RunAction.START and run.mode == RunMode.LIVE:
                gate = self.gate_decision(run, now)
                if not gate.allowed:
                    logger.warning("Started live but gated: %s", ", ".join(gate.reason_codes()), extra=_ctx(run.id))
            self.store.save_run(run)
            self._event(
                run.id, action.value, f"Run transitioned to {run.status.value}", now,
                previous_status=previous.value, final_status=run.status.value,
            )
        logger.info("Run %s -> %s", previous.value, run.status.value, extra=_ctx(run_id))
        return TransitionResult(run=run, gate=gate)

    def arm(self, run_id: str, now: Optional[float] = None) -> RunRecord:
        """Arm live trading. Arming is a manual re-arm: the failure counter starts over."""
        now = self._now(now)
        with self._lock_for(run_id):
            run = self.store.get_run(run_id)
            if run.mode != RunMode.LIVE:
                raise ConfigurationError("Only live runs can be armed", field="mode")
            run.live_armed = True
            run.armed_at = now
            run.live_failure_count = 0
            self.store.save_run(run)
            self._event(run.id, "config_change", "Live trading armed", now)
        logger.info("Armed for live trading", extra=_ctx(run_id))
        return run

    def disarm(self, run_id: str, now: Optional[float] = None) -> RunRecord:
        now = self._now(now)
        with self._lock_for(run_id):
            run = self.store.get_run(run_id)
            if run.mode != RunMode.LIVE:
                raise ConfigurationError("Only live runs can be disarmed", field="mode")
            run.live_armed = False
            self.store.save_run(run)
            self._event(run.id, "config_change", "Live trading disarmed", now)
        logger.info("Disarmed", extra=_ctx(run_id))
        return run

    def set_kill_switch(self, run_id: str, enabled: bool, now: Optional[float] = None) -> RunRecord:
        """Per-run kill switch; blocks live orders while set."""
        now = self._now(now)
        with self._lock_for(run_id):
            run = self.store.get_run(run_id)
            run.kill_switch_active = bool(enabled)
            self.store.save_run(run)
            self._event(
                run.id, "risk_alert", f"Kill switch {'enabled' if enabled else 'disabled'}", now,
                severity="warning" if enabled else "info",
            )
        return run

    def kill(self, run_id: str, now: Optional[float] = None) -> RunRecord:
        """Emergency stop from any status: cancel outstanding orders, stop, disarm."""
        now = self._now(now)
        with self._registry_lock:
            self._interrupts.add(run_id)
        try:
            with self._lock_for(run_id):
                run = self.store.get_run(run_id)
                previous = run.status
                run.status = state_machine.transition(run.status, RunAction.KILL)
                canceled, failed = self._cancel_outstanding(run, now)
                run.live_armed = False
                run.last_error = "Kill switch engaged"
                self.store.save_run(run)
                self._event(
                    run.id, "kill", "Run killed", now, severity="critical",
                    previous_status=previous.value, canceled_orders=canceled,
                    cancel_failed=[o.id for o in failed],
                )
        finally:
            with self._registry_lock:
                self._interrupts.discard(run_id)
        logger.warning("Killed, %d outstanding orders canceled", canceled, extra=_ctx(run_id))
        if failed:
            logger.error(
                "Kill could not cancel %d orders: %s", len(failed),
                ", ".join(o.client_order_id for o in failed), extra=_ctx(run_id),
            )
        return run

    def _cancel_outstanding(self, run: RunRecord, now: float):
        """Cancel this run's own outstanding orders one by one. Returns (canceled count, failed orders)."""
        orders = self.store.list_orders(run.id, statuses=OUTSTANDING_ORDER_STATUSES)
        live = self.submitter is not None and run.mode == RunMode.LIVE
        canceled, failed = 0, []
        for order in orders:
            if live and not self.submitter.cancel(order):
                # Left outstanding so it can still be reconciled.
                order.reason = "cancel failed on kill"
                order.updated_at = now
                self.store.update_order(order)
                failed.append(order)
                continue
            order.status = OrderStatus.CANCELED
            order.reason = "killed"
            order.updated_at = now
            self.store.update_order(order)
            canceled += 1
        return canceled, failed

    def resolve_order(
        self,
        run_id: str,
        order_id: str,
        status: OrderStatus,
        exchange_order_id: Optional[str] = None,
        now: Optional[float] = None,
    ) -> OrderRecord:
        """
        Settle a pending or unconfirmed order once its venue state is known.
        An accepted order (submitted or filled) moves the run's position the
        same way a confirmed submission would; rejected or canceled ones do not.
        Raises KeyError for an unknown order and ConfigurationError when the
        order is not awaiting reconciliation or the status is not final.
        """
        status = OrderStatus(status)
        if status not in RESOLVED_ORDER_STATUSES:
            raise ConfigurationError(f"Cannot resolve an order to {status.value}", field="status")
        now = self._now(now)
        with self._lock_for(run_id):
            run = self.store.get_run(run_id)
            matches = [o for o in self.store.list_orders(run_id) if o.id == order_id]
            if not matches:
                raise KeyError(order_id)
            order = matches[0]
            if order.status not in AWAITING_RECONCILIATION:
                raise ConfigurationError(
                    f"Order {order.id} is {order.status.value}, not awaiting reconciliation", field="status",
                )
            if exchange_order_id:
                order.exchange_order_id = exchange_order_id
            self._finish_order(order, status, now, reason=f"reconciled as {status.value}")
            if status in (OrderStatus.SUBMITTED, OrderStatus.FILLED):
                self._apply_live_order(run, order, now)
            self.store.save_run(run)
            self._event(
                run.id, "order", f"Order {order.client_order_id} reconciled as {status.value}", now,
                exchange_order_id=order.exchange_order_id,
            )
        logger.info("Order %s reconciled as %s", order.client_order_id, status.value, extra=_ctx(run_id))
        return order

    def status(self, run_id: str, now: Optional[float] = None) -> RunStatusReport:
        now = self._now(now)
        run = self.store.get_run(run_id)
        age = now - run.last_heartbeat_at if run.last_heartbeat_at is not None else None
        if run.status != RunStatus.RUNNING:
            healthy = True
        else:
            healthy = age is not None and age < HEARTBEAT_STALE_SECONDS
        outstanding = len(self.store.list_orders(run.id, statuses=OUTSTANDING_ORDER_STATUSES))
        return RunStatusReport(
            run=run,
            healthy=healthy,
            heartbeat_age=age,
            gate=self.gate_decision(run, now),
            outstanding_orders=outstanding,
        )

    # ----- ticks -----------------------------------------------------------

    def tick_many(self, run_ids: Sequence[str], now: Optional[float] = None) -> List[TickResult]:
        """Tick several runs in parallel; results in input order."""
        now = self._now(now)
        if not run_ids:
            return []
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(run_ids))) as pool:
            return list(pool.map(lambda rid: self.tick(rid, now), run_ids))

    def tick(self, run_id: str, now: Optional[float] = None) -> TickResult:
        """One scheduler step for a run. Never raises."""
        now = self._now(now)
        with self._lock_for(run_id):
            if self._interrupted(run_id):
                return TickResult(run_id, TickAction.INTERRUPTED, message="run is being killed")
            try:
                run = self.store.get_run(run_id)
            except KeyError:
                logger.warning("Tick for unknown run", extra=_ctx(run_id))
                return TickResult(run_id, TickAction.SKIPPED, message="unknown run")
            if run.status != RunStatus.RUNNING:
                return TickResult(run_id, TickAction.SKIPPED, message=f"run is {run.status.value}")

            run.last_heartbeat_at = now
            try:
                result = self._tick_running(run, now)
            except CircuitTripped as e:
                self._trip(run, e, now)
                result = TickResult(run_id, TickAction.CIRCUIT_TRIPPED, message=str(e))
            except Exception as e:
                logger.exception("Tick failed", extra=_ctx(run_id))
                run.last_error = str(e)
                self._event(run.id, "error", f"Tick failed: {e}", now, severity="error")
                result = TickResult(run_id, TickAction.FAILED, message=str(e))
            self.store.save_run(run)
            return result

    def _tick_running(self, run: RunRecord, now: float) -> TickResult:
        try:
            candles = self.feed.get_candles(run.symbol, run.interval, limit=CANDLE_LOOKBACK)
        except Exception as e:
            logger.warning("Candle fetch failed: %s", e, extra=_ctx(run.id))
            if run.mode == RunMode.LIVE:
                self._record_live_failure(run, f"Candle fetch failed: {e}", now)
            self._event(run.id, "error", f"Candle fetch failed: {e}", now, severity="warning")
            return TickResult(run.id, TickAction.FAILED, message=str(e))

        if len(candles) <= self.strategy.warmup_bars:
            return TickResult(run.id, TickAction.HOLD, message=f"waiting for data ({len(candles)} candles)")

        if run.mode == RunMode.LIVE:
            age = now - candles[-1].timestamp
            max_age = STALE_CANDLE_INTERVALS * timeframe_seconds(run.interval)
            if age > max_age:
                logger.warning("Latest candle is %.0fs old (max %ds), not trading", age, max_age, extra=_ctx(run.id))
                self._event(
                    run.id, "risk_alert", "Live trade blocked due to stale market data", now, severity="warning",
                    candle_timestamp=candles[-1].timestamp, age_seconds=age, max_age_seconds=max_age,
                )
                return TickResult(run.id, TickAction.BLOCKED, message="stale market data")

        sig = self.strategy.signal(candles, len(candles) - 1, run.strategy_config)
        price = candles[-1].close
        intent = derive_intent(run.position, sig, price, run.strategy_config)
        if intent is None:
            return TickResult(run.id, TickAction.HOLD, signal=sig)

        if run.mode == RunMode.PAPER:
            return self._paper_tick(run, intent, sig, price, now)
        return self._live_tick(run, intent, sig, price, now)

    def _position_size(self, run: RunRecord, price: float) -> float:
        cfg = run.strategy_config
        budget = min(run.capital * cfg.max_position_size, run.capital * MAX_CAPITAL_FRACTION)
        if budget <= 0 or price <= 0:
            return 0.0
        return round_quantity(budget / price, self.min_qty, self.lot_step)

    def _new_order(self, run: RunRecord, side: OrderSide, volume: float, price: float, reason: str, now: float) -> OrderRecord:
        return OrderRecord(
            id=str(uuid.uuid4()),
            run_id=run.id,
            client_order_id=uuid.uuid4().hex,
            symbol=run.symbol,
            side=side,
            volume=volume,
            status=OrderStatus.PENDING,
            price=price,
            reason=reason,
            created_at=now,
            updated_at=now,
        )

    def _paper_tick(self, run: RunRecord, intent: OrderIntent, sig: float, price: float, now: float) -> TickResult:
        orders = []
        if intent.close and run.position is not None:
            pos = run.position
            order = self._new_order(run, _exit_side(pos.side), pos.size, price, intent.reason, now)
            fill = self.paper_filler.fill(OrderRequest(
                order.client_order_id, run.symbol, order.side, order.volume, reference_price=price,
            ))
            if pos.side == PositionSide.LONG:
                pnl = pos.size * (fill.price - pos.entry_price)
            else:
                pnl = pos.size * (pos.entry_price - fill.price)
            run.capital += pnl - fill.fee
            run.position = None
            order.status = OrderStatus.FILLED
            order.price = fill.price
            self.store.add_order(order)
            orders.append(order)
            self._event(run.id, "fill", f"Paper close {pos.side.value} at {fill.price:.2f}", now, pnl=pnl, reason=intent.reason)

        if intent.open_side is not None and run.position is None:
            size = self._position_size(run, price)
            if size > 0:
                order = self._new_order(run, _entry_side(intent.open_side), size, price, intent.reason, now)
                fill = self.paper_filler.fill(OrderRequest(
                    order.client_order_id, run.symbol, order.side, size, reference_price=price,
                ))
                run.capital -= fill.fee
                run.position = LivePosition(side=intent.open_side, size=size, entry_price=fill.price, opened_at=now)
                order.status = OrderStatus.FILLED
                order.price = fill.price
                self.store.add_order(order)
                orders.append(order)
                self._event(run.id, "fill", f"Paper open {intent.open_side.value} {size} at {fill.price:.2f}", now, signal=sig)

        action = TickAction.PAPER_FILL if orders else TickAction.HOLD
        return TickResult(run.id, action, signal=sig, orders=orders)

    def _live_tick(self, run: RunRecord, intent: OrderIntent, sig: float, price: float, now: float) -> TickResult:
        decision = self.gate_decision(run, now)
        if not decision.allowed:
            logger.info("Live order blocked: %s", ", ".join(decision.reason_codes()), extra=_ctx(run.id))
            self._event(
                run.id, "risk_alert", "Live order blocked", now, severity="warning",
                reasons=decision.reason_codes(),
            )
            return TickResult(run.id, TickAction.BLOCKED, signal=sig, gate=decision)

        awaiting = self.store.list_orders(run.id, statuses=AWAITING_RECONCILIATION)
        if awaiting:
            logger.warning("Live order blocked: %d orders awaiting reconciliation", len(awaiting), extra=_ctx(run.id))
            self._event(
                run.id, "risk_alert", "Live order blocked: awaiting reconciliation", now, severity="warning",
                order_ids=[o.id for o in awaiting],
            )
            return TickResult(run.id, TickAction.BLOCKED, signal=sig, gate=decision, message="awaiting reconciliation")

        # One live order per tick: a flip closes now and reopens on a later tick.
        if intent.close and run.position is not None:
            side, volume = _exit_side(run.position.side), run.position.size
        elif intent.open_side is not None:
            side, volume = _entry_side(intent.open_side), self._position_size(run, price)
        else:
            return TickResult(run.id, TickAction.HOLD, signal=sig, gate=decision)
        if volume <= 0:
            return TickResult(run.id, TickAction.HOLD, signal=sig, gate=decision, message="size below exchange minimum")

        if self._interrupted(run.id):
            return TickResult(run.id, TickAction.INTERRUPTED, signal=sig, gate=decision, message="run is being killed")

        order = self._new_order(run, side, volume, price, intent.reason, now)
        self.store.add_order(order)
        run.last_live_action_at = now
        request = OrderRequest(order.client_order_id, run.symbol, side, volume, reference_price=price)

        try:
            result = unwrap(self.submitter.submit(request))
        except ExchangeResponseError as e:
            self._finish_order(order, OrderStatus.REJECTED, now, reason=str(e))
            logger.warning("Order rejected: %s", e, extra=_ctx(run.id))
            self._event(run.id, "order", f"Order rejected: {e}", now, severity="error", errors=list(e.errors))
            self._record_live_failure(run, str(e), now)
            return TickResult(run.id, TickAction.FAILED, signal=sig, gate=decision, orders=[order], message=str(e))
        except OrderSubmissionError as e:
            # The request may have reached the venue; keep it outstanding until reconciled.
            self._finish_order(order, OrderStatus.UNCONFIRMED, now, reason=str(e))
            logger.warning("Order submission failed: %s", e, extra=_ctx(run.id))
            self._event(run.id, "order", f"Order submission failed: {e}", now, severity="error")
            self._record_live_failure(run, str(e), now)
            return TickResult(run.id, TickAction.FAILED, signal=sig, gate=decision, orders=[order], message=str(e))

        normalized = normalize(result)
        order.exchange_order_id = normalized.exchange_order_id
        if normalized.needs_reconciliation:
            self._finish_order(order, normalized.status, now, reason="no transaction id in response")
            logger.warning("Order %s unconfirmed", order.client_order_id, extra=_ctx(run.id))
            self._event(run.id, "order", "Order accepted without transaction id", now, severity="warning")
            self._record_live_failure(run, "Order response had no transaction id", now)
            return TickResult(run.id, TickAction.FAILED, signal=sig, gate=decision, orders=[order], message="unconfirmed")

        self._finish_order(order, normalized.status, now)
        run.live_failure_count = 0
        run.last_error = None
        pnl = self._apply_live_order(run, order, now)
        logger.info(
            "Submitted %s %s %s (%s)", side.value, volume, run.symbol, normalized.exchange_order_id,
            extra=_ctx(run.id),
        )
        self._event(
            run.id, "order", f"Submitted {side.value} {volume} {run.symbol}", now,
            exchange_order_id=normalized.exchange_order_id, reason=intent.reason, pnl=pnl,
        )
        return TickResult(run.id, TickAction.SUBMITTED, signal=sig, gate=decision, orders=[order])

    def _apply_live_order(self, run: RunRecord, order: OrderRecord, now: float) -> Optional[float]:
        """
        Move position and capital for an accepted live order, valued at the
        order's reference price. Returns the realized P&L of a close, else None.
        """
        pos = run.position
        if pos is not None and order.side == _exit_side(pos.side):
            if pos.side == PositionSide.LONG:
                pnl = pos.size * (order.price - pos.entry_price)
            else:
                pnl = pos.size * (pos.entry_price - order.price)
            run.capital += pnl
            run.position = None
            return pnl
        if pos is None:
            side = PositionSide.LONG if order.side == OrderSide.BUY else PositionSide.SHORT
            run.position = LivePosition(side=side, size=order.volume, entry_price=order.price, opened_at=now)
        return None

    def _finish_order(self, order: OrderRecord, status: OrderStatus, now: float, reason: Optional[str] = None) -> None:
        order.status = status
        order.updated_at = now
        if reason:
            order.reason = reason
        self.store.update_order(order)

    def _record_live_failure(self, run: RunRecord, reason: str, now: float) -> None:
        state = next_failure_state(run, self.config.circuit_breaker_threshold)
        run.live_failure_count = state.next_count
        run.last_live_failure_at = now
        run.last_error = reason
        if state.triggered:
            raise CircuitTripped(run.id, state.next_count, reason)

    def _trip(self, run: RunRecord, exc: CircuitTripped, now: float) -> None:
        run.status = RunStatus.ERROR
        run.live_armed = False
        run.last_error = str(exc)
        logger.critical("%s", exc, extra=_ctx(run.id))
        self._event(
            run.id, "risk_alert", str(exc), now, severity="critical",
            failure_count=exc.failure_count, reason=exc.reason,
        )
