"""
Run, order and event storage.

Reads return copies; a caller mutating a record has no effect until it is saved.
"""

from __future__ import annotations
import copy
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from trading_engine.core.types import OrderRecord, OrderStatus, RunEvent, RunRecord


class RunNotFoundError(KeyError):
    pass


class RunStore(ABC):
    @abstractmethod
    def get_run(self, run_id: str) -> RunRecord:
        """Snapshot of the run. Raises RunNotFoundError."""

    @abstractmethod
    def save_run(self, run: RunRecord) -> None:
        ...

    @abstractmethod
    def list_runs(self) -> List[RunRecord]:
        ...

    @abstractmethod
    def add_order(self, order: OrderRecord) -> None:
        ...

    @abstractmethod
    def update_order(self, order: OrderRecord) -> None:
        ...

    @abstractmethod
    def list_orders(self, run_id: str, statuses: Optional[Iterable[OrderStatus]] = None) -> List[OrderRecord]:
        ...

    @abstractmethod
    def add_event(self, event: RunEvent) -> None:
        ...

    @abstractmethod
    def list_events(self, run_id: str) -> List[RunEvent]:
        ...


class InMemoryRunStore(RunStore):
    """Process-local store; safe to share between threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, RunRecord] = {}
        self._orders: Dict[str, OrderRecord] = {}
        self._events: List[RunEvent] = []

    def get_run(self, run_id: str) -> RunRecord:
        with self._lock:
            if run_id not in self._runs:
                raise RunNotFoundError(run_id)
            return copy.deepcopy(self._runs[run_id])

    def save_run(self, run: RunRecord) -> None:
        with self._lock:
            self._runs[run.id] = copy.deepcopy(run)

    def list_runs(self) -> List[RunRecord]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._runs.values()]

    def add_order(self, order: OrderRecord) -> None:
        with self._lock:
            self._orders[order.id] = copy.deepcopy(order)

    def update_order(self, order: OrderRecord) -> None:
        with self._lock:
            if order.id not in self._orders:
                raise KeyError(order.id)
            self._orders[order.id] = copy.deepcopy(order)

    def list_orders(self, run_id: str, statuses: Optional[Iterable[OrderStatus]] = None) -> List[OrderRecord]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            return [
                copy.deepcopy(o) for o in self._orders.values()
                if o.run_id == run_id and (wanted is None or o.status in wanted)
            ]

    def add_event(self, event: RunEvent) -> None:
        with self._lock:
            self._events.append(copy.deepcopy(event))

    def list_events(self, run_id: str) -> List[RunEvent]:
        with self._lock:
            return [copy.deepcopy(e) for e in self._events if e.run_id == run_id]
