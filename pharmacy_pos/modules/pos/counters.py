"""
modules/pos/counters.py

Counter (register/till) selection for the checkout session.

State machine: UNINITIALIZED -> LOADING -> {NO_COUNTERS | HAS_COUNTERS}.
Refresh goes back through LOADING but keeps the last list (and the binding)
visible until the new one arrives.

Binding rule on load: active default counter, else first active counter,
else nothing. It is only applied while nothing is bound; an operator's
explicit choice survives every refresh.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...api.errors import DomainError, user_message
from ...api.repositories.counters_repo import Counter, CountersRepo
from ...api.tasks import CancelToken

_log = logging.getLogger(__name__)


class CounterState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    NO_COUNTERS = "no_counters"
    HAS_COUNTERS = "has_counters"


def pick_default(counters: list[Counter]) -> Optional[Counter]:
    active = [c for c in counters if c.is_active]
    for c in active:
        if c.is_default:
            return c
    return active[0] if active else None


class CounterSelector(QObject):
    state_changed = Signal(object)          # CounterState
    counters_changed = Signal(object)       # list[Counter]
    bound_changed = Signal(object)          # Counter | None
    availability_changed = Signal(bool, str)
    load_failed = Signal(object)            # exception

    def __init__(self, repo: CountersRepo, runner, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._repo = repo
        self._runner = runner
        self._state = CounterState.UNINITIALIZED
        self._counters: list[Counter] = []
        self._bound: Optional[Counter] = None
        self._token: Optional[CancelToken] = None
        self._load_error: Optional[str] = None
        self._last_availability: Optional[tuple[bool, str]] = None

    # ---- reads ------------------------------------------------------------

    @property
    def state(self) -> CounterState:
        return self._state

    @property
    def counters(self) -> list[Counter]:
        return list(self._counters)

    @property
    def active_counters(self) -> list[Counter]:
        return [c for c in self._counters if c.is_active]

    @property
    def bound(self) -> Optional[Counter]:
        return self._bound

    @property
    def is_ready(self) -> bool:
        """A counter is bound and (as of the last fetch) active."""
        return self._bound is not None and self._bound.is_active

    def find(self, counter_id: Optional[str]) -> Optional[Counter]:
        for c in self._counters:
            if c.counter_id == counter_id:
                return c
        return None

    @property
    def disabled_reason(self) -> Optional[str]:
        """Operator-facing reason selling is blocked, or None when ready."""
        if self.is_ready:
            return None
        if self._bound is not None:
            return f"Counter '{self._bound.name}' is inactive. Choose an active counter."
        if self._state in (CounterState.UNINITIALIZED, CounterState.LOADING):
            return "Loading counters…"
        if self._load_error and not self._counters:
            return f"Could not load counters: {self._load_error}"
        if not self._counters:
            return "No counters are set up. Ask an administrator to create one."
        if not self.active_counters:
            return "All counters are inactive. Ask an administrator to activate one."
        return "Select a counter to start selling."

    # ---- API --------------------------------------------------------------

    def refresh(self) -> None:
        if self._token is not None:
            self._token.cancel()
        token = CancelToken()
        self._token = token
        self._set_state(CounterState.LOADING)
        self._runner.submit(
            lambda: self._repo.list_counters(token),
            lambda rows: self._on_loaded(token, rows),
            lambda exc: self._on_failed(token, exc),
            token=token,
        )

    def select(self, counter_id: str) -> Counter:
        """Explicit operator choice. Only active counters can be bound."""
        counter = self.find(counter_id)
        if counter is None:
            raise DomainError("That counter no longer exists. Refresh the counter list.")
        if not counter.is_active:
            raise DomainError(f"Counter '{counter.name}' is inactive and cannot be selected.")
        if self._bound != counter:
            self._bound = counter
            _log.info("counter bound: %s", counter.name)
            self.bound_changed.emit(counter)
        self._emit_availability()
        return counter

    # ---- internals --------------------------------------------------------

    def _set_state(self, state: CounterState) -> None:
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)
        self._emit_availability()

    def _emit_availability(self) -> None:
        reason = self.disabled_reason
        current = (reason is None, reason or "")
        if current != self._last_availability:
            self._last_availability = current
            self.availability_changed.emit(*current)

    def _on_loaded(self, token: CancelToken, rows: list[Counter]) -> None:
        if token is not self._token:
            return
        self._token = None
        self._load_error = None
        self._counters = list(rows)
        self.counters_changed.emit(self.counters)

        if self._bound is not None:
            # keep the operator's choice, but pick up its fresh status/name
            fresh = self.find(self._bound.counter_id)
            if fresh is None:
                _log.info("bound counter %s was removed", self._bound.name)
                self._bound = None
                self.bound_changed.emit(None)
            elif fresh != self._bound:
                self._bound = fresh
                self.bound_changed.emit(fresh)

        if self._bound is None:
            auto = pick_default(self._counters)
            if auto is not None:
                self._bound = auto
                _log.info("counter auto-bound: %s", auto.name)
                self.bound_changed.emit(auto)

        self._set_state(CounterState.HAS_COUNTERS if self._counters else CounterState.NO_COUNTERS)

    def _on_failed(self, token: CancelToken, exc: BaseException) -> None:
        if token is not self._token:
            return
        self._token = None
        self._load_error = user_message(exc)
        _log.warning("loading counters failed: %s", exc)
        self.load_failed.emit(exc)
        self._set_state(CounterState.HAS_COUNTERS if self._counters else CounterState.NO_COUNTERS)
