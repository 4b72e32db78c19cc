"""
modules/pos/search.py

Debounced, cancellable remote lookups.

DebouncedSearch guarantees that only the response to the most recently
issued request is applied:
  - every keystroke restarts a single-shot QTimer;
  - firing a request cancels the previous request's CancelToken;
  - a late response is also checked against a generation counter, so it is
    dropped even when the runner delivers it anyway.
Cancellations are silent (DEBUG log only, no `failed` signal).
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ...api.errors import RequestCancelled
from ...api.repositories.catalog_repo import CatalogRepo
from ...api.tasks import CancelToken
from ...config import CATALOG_LIMIT, DEBOUNCE_MS, MIN_QUERY_LENGTH

_log = logging.getLogger(__name__)


class SearchState(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    RESULTS_READY = "results_ready"
    ERROR = "error"


class DebouncedSearch(QObject):
    state_changed = Signal(object)      # SearchState
    results_changed = Signal(object)    # list | None
    failed = Signal(object)             # exception

    def __init__(
        self,
        fetch: Callable[[str, CancelToken], Any],
        runner,
        delay_ms: int = DEBOUNCE_MS,
        min_length: int = MIN_QUERY_LENGTH,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._fetch = fetch
        self._runner = runner
        self.min_length = min_length

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self._fire)

        self._query = ""
        self._results = None
        self._state = SearchState.IDLE
        self._generation = 0
        self._token: Optional[CancelToken] = None

    # ---- reads ------------------------------------------------------------

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self):
        return self._results

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def is_searching(self) -> bool:
        return self._state is SearchState.SEARCHING

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    # ---- API --------------------------------------------------------------

    def set_query(self, text: str) -> None:
        self.cancel()
        self._query = text or ""
        if len(self._query.strip()) < self.min_length:
            self._apply_results(None, SearchState.IDLE)
            return
        self._timer.start()

    def flush(self) -> None:
        """Fire the pending query now instead of waiting out the window."""
        if self._timer.isActive():
            self._timer.stop()
            self._fire()

    def cancel(self) -> None:
        """Stop the timer and cancel any in-flight request."""
        self._timer.stop()
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self._state is SearchState.SEARCHING:
            self._set_state(SearchState.IDLE if self._results is None else SearchState.RESULTS_READY)

    def clear(self) -> None:
        self.cancel()
        self._query = ""
        self._apply_results(None, SearchState.IDLE)

    # ---- internals --------------------------------------------------------

    def _set_state(self, state: SearchState) -> None:
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)

    def _apply_results(self, results, state: SearchState) -> None:
        changed = results is not self._results
        self._results = results
        self._set_state(state)
        if changed:
            self.results_changed.emit(results)

    def _fire(self) -> None:
        term = self._query.strip()
        if len(term) < self.min_length:
            return
        if self._token is not None:
            self._token.cancel()
        self._generation += 1
        token = CancelToken()
        self._token = token
        self._set_state(SearchState.SEARCHING)
        self._runner.submit(
            partial(self._fetch, term, token),
            partial(self._on_results, self._generation, token),
            partial(self._on_error, self._generation, token),
            token=token,
        )

    def _is_stale(self, generation: int, token: CancelToken) -> bool:
        return token.cancelled or generation != self._generation

    def _on_results(self, generation: int, token: CancelToken, results) -> None:
        if self._is_stale(generation, token):
            _log.debug("discarding stale results for generation %s", generation)
            return
        self._token = None
        self._apply_results(results, SearchState.RESULTS_READY)

    def _on_error(self, generation: int, token: CancelToken, exc: BaseException) -> None:
        if isinstance(exc, RequestCancelled) or self._is_stale(generation, token):
            _log.debug("search cancelled (generation %s)", generation)
            return
        self._token = None
        _log.warning("search for %r failed: %s", self._query, exc)
        self._set_state(SearchState.ERROR)
        self.failed.emit(exc)


class CatalogSearch(DebouncedSearch):
    """
    Medicine + batch lookup. Disabled (no calls, empty query) while no
    active counter is bound, since nothing could be sold anyway.
    """
    availability_changed = Signal(bool, str)

    def __init__(self, catalog: CatalogRepo, runner, limit: int = CATALOG_LIMIT, **kwargs):
        super().__init__(lambda term, token: self._search(term, token), runner, **kwargs)
        self._catalog = catalog
        self.limit = limit
        self._enabled = True
        self._disabled_reason = ""

    def _search(self, term: str, token: CancelToken):
        return self._catalog.search(term, self.limit, token)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def disabled_reason(self) -> str:
        return self._disabled_reason

    def set_enabled(self, enabled: bool, reason: str = "") -> None:
        reason = "" if enabled else (reason or "Search is unavailable.")
        if enabled == self._enabled and reason == self._disabled_reason:
            return
        self._enabled = enabled
        self._disabled_reason = reason
        if not enabled:
            self.clear()
        self.availability_changed.emit(enabled, reason)

    def set_query(self, text: str) -> None:
        if not self._enabled:
            self.clear()
            return
        super().set_query(text)
