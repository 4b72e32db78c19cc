"""
modules/pos/summary.py

Today's sales count + revenue. Re-fetches on every "sale-created" or
"inventory-updated" event, pushed or published after a local sale; the
checkout itself never listens.
"""

from __future__ import annotations

import logging

from PySide6.QtCore import Signal
from PySide6.QtWidgets import QFrame, QHBoxLayout, QLabel

from ...api.repositories.sales_repo import SalesRepo, SalesSummary
from ...constants import EVENT_INVENTORY_UPDATED, EVENT_SALE_CREATED
from ...events import EventBus
from ...utils.helpers import format_currency

_log = logging.getLogger(__name__)


class TodaySummaryPanel(QFrame):
    loaded = Signal(object)     # SalesSummary
    failed = Signal(object)     # exception

    def __init__(self, sales: SalesRepo, runner, bus: EventBus | None = None, parent=None):
        super().__init__(parent)
        self._sales = sales
        self._runner = runner
        self._summary = SalesSummary()
        self._token = None
        self._subscriptions = []

        self.setFrameShape(QFrame.StyledPanel)
        lay = QHBoxLayout(self)
        lay.setContentsMargins(8, 4, 8, 4)
        self.lbl_count = QLabel()
        self.lbl_revenue = QLabel()
        lay.addWidget(QLabel("<b>Today</b>"))
        lay.addWidget(self.lbl_count)
        lay.addStretch(1)
        lay.addWidget(self.lbl_revenue)
        self._render()

        if bus is not None:
            for event in (EVENT_SALE_CREATED, EVENT_INVENTORY_UPDATED):
                self._subscriptions.append(bus.subscribe(event, self._on_event))

    @property
    def summary(self) -> SalesSummary:
        return self._summary

    def refresh(self):
        if self._token is not None:
            self._token.cancel()
        self._token = self._runner.submit(self._sales.todays_summary, self._on_loaded, self._on_failed)

    def teardown(self):
        for sub in self._subscriptions:
            sub.close()
        self._subscriptions = []
        if self._token is not None:
            self._token.cancel()
            self._token = None

    # ---------------- internals ----------------

    def _on_event(self, _payload):
        self.refresh()

    def _on_loaded(self, summary: SalesSummary):
        self._token = None
        self._summary = summary
        self._render()
        self.loaded.emit(summary)

    def _on_failed(self, exc):
        self._token = None
        _log.warning("today's summary failed: %s", exc)
        self.failed.emit(exc)

    def _render(self):
        n = self._summary.count
        self.lbl_count.setText(f"{n} sale{'s' if n != 1 else ''}")
        self.lbl_revenue.setText(format_currency(self._summary.revenue))
