"""
events.py

In-process event bus for push notifications ("sale-created",
"inventory-updated"). The transport that feeds it lives elsewhere.

subscribe() hands back a Subscription; the owner calls close() on teardown
instead of remembering which handler to disconnect.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from PySide6.QtCore import QObject, Signal

_log = logging.getLogger(__name__)


class Subscription:
    def __init__(self, bus: "EventBus", event: str, handler: Callable[[Any], None]):
        self._bus = bus
        self.event = event
        self._handler = handler
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, payload) -> None:
        if not self._closed:
            self._handler(payload)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._bus._detach(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class EventBus(QObject):
    # publish() may be called from a transport thread; delivery is queued
    # onto the thread owning the bus.
    _posted = Signal(str, object)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._subs: dict[str, list[Subscription]] = {}
        self._posted.connect(self._dispatch)

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> Subscription:
        sub = Subscription(self, event, handler)
        self._subs.setdefault(event, []).append(sub)
        return sub

    def publish(self, event: str, payload=None) -> None:
        self._posted.emit(event, payload)

    def subscriber_count(self, event: str) -> int:
        return len(self._subs.get(event, []))

    def _dispatch(self, event: str, payload) -> None:
        subs = list(self._subs.get(event, []))
        _log.debug("event %s -> %d subscriber(s)", event, len(subs))
        for sub in subs:
            sub.deliver(payload)

    def _detach(self, sub: Subscription) -> None:
        subs = self._subs.get(sub.event)
        if subs and sub in subs:
            subs.remove(sub)
