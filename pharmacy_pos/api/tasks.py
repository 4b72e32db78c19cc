"""
api/tasks.py

Run blocking API calls off the UI thread and hand results back on it.

Public interface
----------------
- CancelToken: cooperative cancellation flag passed into the work callable.
- TaskRunner.submit(work, on_success, on_error=None, token=None) -> CancelToken

`work` runs on a QThreadPool worker. `on_success(result)` / `on_error(exc)`
always run on the thread that owns the runner (the UI thread), and are
skipped entirely if the token was cancelled in the meantime.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

from .errors import RequestCancelled

_log = logging.getLogger(__name__)


class CancelToken:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled()


class _TaskRelay(QObject):
    """
    Lives on the UI thread. Signals emitted from the worker are queued
    across to the slots below.
    """
    succeeded = Signal(object)
    failed = Signal(object)

    def __init__(self, runner: "TaskRunner", token: CancelToken,
                 on_success: Callable[[Any], None],
                 on_error: Optional[Callable[[BaseException], None]]) -> None:
        super().__init__()
        self._runner = runner
        self._token = token
        self._on_success = on_success
        self._on_error = on_error
        self.succeeded.connect(self._deliver_success)
        self.failed.connect(self._deliver_failure)

    @Slot(object)
    def _deliver_success(self, result) -> None:
        self._runner._release(self)
        if self._token.cancelled:
            _log.debug("dropping result of cancelled task")
            return
        self._on_success(result)

    @Slot(object)
    def _deliver_failure(self, exc) -> None:
        self._runner._release(self)
        if self._token.cancelled or isinstance(exc, RequestCancelled):
            _log.debug("task cancelled")
            return
        if self._on_error is None:
            _log.error("unhandled task failure: %s", exc)
            return
        self._on_error(exc)


class _JobRunnable(QRunnable):
    def __init__(self, work: Callable[[], Any], relay: _TaskRelay, token: CancelToken) -> None:
        super().__init__()
        self.setAutoDelete(True)
        self._work = work
        self._relay = relay
        self._token = token

    @Slot()
    def run(self) -> None:  # type: ignore[override]
        if self._token.cancelled:
            self._relay.failed.emit(RequestCancelled())
            return
        try:
            result = self._work()
        except Exception as exc:
            self._relay.failed.emit(exc)
            return
        self._relay.succeeded.emit(result)


class TaskRunner(QObject):
    def __init__(self, pool: Optional[QThreadPool] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._pool = pool or QThreadPool.globalInstance()
        self._relays: set[_TaskRelay] = set()

    def submit(self, work: Callable[[], Any], on_success: Callable[[Any], None],
               on_error: Optional[Callable[[BaseException], None]] = None,
               token: Optional[CancelToken] = None) -> CancelToken:
        token = token or CancelToken()
        relay = _TaskRelay(self, token, on_success, on_error)
        self._relays.add(relay)
        self._pool.start(_JobRunnable(work, relay, token))
        return token

    def _release(self, relay: _TaskRelay) -> None:
        self._relays.discard(relay)

    def wait_for_done(self, msecs: int = -1) -> bool:
        return self._pool.waitForDone(msecs)
