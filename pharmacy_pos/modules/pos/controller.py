from __future__ import annotations

import logging
from typing import Optional

from jinja2 import TemplateError
from PySide6.QtCore import Signal
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ...api import PosApi
from ...api.errors import DomainError, SessionExpired, ValidationFailed, user_message
from ...config import PHARMACY_NAME
from ...constants import EVENT_SALE_CREATED
from ...events import EventBus
from ...utils.ui_helpers import confirm, error, info
from .checkout import PaymentMethod
from .counter_dialog import CounterChooserDialog
from .counters import CounterSelector, CounterState
from .customers import CustomerResolver
from .invoice import build_invoice_context, export_invoice_pdf, render_invoice_html
from .search import CatalogSearch, SearchState
from .submitter import CheckoutSession, CheckoutState, Invoice
from .summary import TodaySummaryPanel
from .view import PosView

_log = logging.getLogger(__name__)


class PosController(BaseModule):
    """
    Point-of-sale controller.

    Key behavior:
      - Counters load on start; an active default counter is bound automatically.
        With no active counter, search, add-to-cart and Complete Sale are disabled
        and the banner says why.
      - Catalog and customer lookups are debounced; only the latest response lands.
      - Complete Sale validates locally first (empty cart, short payment, counter)
        and only then makes a single create-sale call.
      - After a committed sale the invoice page is shown; "New Sale" returns to an
        empty cart without touching the server.
      - A 401 anywhere raises `session_expired`; the shell decides what to do.
    """
    session_expired = Signal()

    def __init__(self, api: PosApi, runner, bus: Optional[EventBus] = None,
                 pharmacy_name: str = PHARMACY_NAME, search_kwargs: Optional[dict] = None):
        super().__init__()
        self.api = api
        self.runner = runner
        self.bus = bus
        self.pharmacy_name = pharmacy_name
        search_kwargs = search_kwargs or {}

        self.counters = CounterSelector(api.counters, runner, parent=self)
        self.catalog_search = CatalogSearch(api.catalog, runner, parent=self, **search_kwargs)
        self.resolver = CustomerResolver(api.customers, runner, parent=self, **search_kwargs)
        self.checkout = CheckoutSession(api.sales, self.counters, runner, parent=self)
        self.summary = TodaySummaryPanel(api.sales, runner, bus)

        self.view = PosView(summary=self.summary)
        self.view.invoice.set_exporter(export_invoice_pdf)
        self._expired = False

        self._wire()
        self._render_all()
        self._reload()

    # ------------------------------------------------------------------ #
    # BaseModule API
    # ------------------------------------------------------------------ #

    def get_widget(self) -> QWidget:
        return self.view

    def teardown(self) -> None:
        self.summary.teardown()
        self.catalog_search.cancel()
        self.resolver.search.cancel()

    # ------------------------------------------------------------------ #
    # Wiring
    # ------------------------------------------------------------------ #

    def _wire(self):
        v = self.view

        # Catalog
        v.search.textChanged.connect(self.catalog_search.set_query)
        v.search.returnPressed.connect(self.catalog_search.flush)
        self.catalog_search.results_changed.connect(v.show_results)
        self.catalog_search.state_changed.connect(self._on_search_state)
        self.catalog_search.failed.connect(self._on_search_failed)
        v.lot_activated.connect(self._add_lot)

        # Counter
        self.counters.availability_changed.connect(self._on_counter_availability)
        self.counters.bound_changed.connect(lambda _c: self._render_counter())
        self.counters.counters_changed.connect(lambda _rows: self._render_counter())
        self.counters.load_failed.connect(self._check_session)
        self.counters.state_changed.connect(
            lambda s: v.btn_refresh_counters.setDisabled(s is CounterState.LOADING))
        v.btn_change_counter.clicked.connect(self.choose_counter)
        v.btn_refresh_counters.clicked.connect(self.refresh_counters)

        # Cart
        v.quantity_step.connect(self._step_quantity)
        v.remove_requested.connect(self._remove_line)
        v.btn_clear.clicked.connect(self._clear_cart)
        self.checkout.cart_changed.connect(self._render_cart)

        # Customer
        v.customer_phone.textEdited.connect(self.resolver.set_term)
        v.customer_phone.returnPressed.connect(self.resolver.resolve_now)
        v.btn_customer_search.clicked.connect(self.resolver.resolve_now)
        v.btn_unbind_customer.clicked.connect(self._unbind_customer)
        v.candidate_chosen.connect(self.resolver.select)
        self.resolver.candidates_changed.connect(v.show_candidates)
        self.resolver.customer_bound.connect(self._on_customer_bound)
        self.resolver.creation_requested.connect(v.show_customer_form)
        self.resolver.creation_finished.connect(lambda _c: v.show_customer_form(None))
        self.resolver.failed.connect(self._on_customer_failed)
        self.resolver.busy_changed.connect(v.btn_customer_search.setDisabled)
        v.customer_form.submitted.connect(self._create_customer)
        v.customer_form.cancelled.connect(self._cancel_customer_form)

        # Payment
        v.payment_chosen.connect(self._choose_payment)
        v.amount.textEdited.connect(self._set_tender)
        self.checkout.payment_changed.connect(self._on_payment_changed)
        self.checkout.totals_changed.connect(self._render_totals)

        # Submission
        v.btn_complete.clicked.connect(self.complete_sale)
        self.checkout.state_changed.connect(self._on_checkout_state)
        self.checkout.submission_blocked.connect(lambda b: v.show_error(b.message))
        self.checkout.counter_prompt_requested.connect(self.choose_counter)
        self.checkout.submission_failed.connect(self._on_submission_failed)
        self.checkout.raw_failure.connect(self._check_session)
        self.checkout.sale_completed.connect(self._on_sale_completed)
        v.invoice.new_sale_requested.connect(self.new_sale)

        self.summary.failed.connect(self._check_session)

    def _reload(self):
        self.counters.refresh()
        self.summary.refresh()

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def complete_sale(self) -> bool:
        self.view.show_error("")
        return self.checkout.submit()

    def new_sale(self):
        self.checkout.new_sale()
        self.view.invoice.clear()
        self.view.show_checkout_page()
        self.view.search.setFocus()

    def refresh_counters(self):
        self.view.show_error("")
        self.counters.refresh()

    def choose_counter(self):
        if not self.counters.counters:
            # nothing to pick from; a failed or empty load is retried instead
            self.refresh_counters()
            return
        dlg = CounterChooserDialog(
            self.counters.counters,
            current_id=self.counters.bound.counter_id if self.counters.bound else None,
            reason=self.counters.disabled_reason or "",
            parent=self.view,
        )
        if not dlg.exec():
            return
        cid = dlg.chosen_id()
        if cid is None:
            return
        try:
            self.counters.select(cid)
        except DomainError as e:
            info(self.view, "Counter", str(e))

    def _add_lot(self, medicine, lot):
        try:
            self.checkout.add_lot(medicine, lot)
        except DomainError as e:
            info(self.view, "Cannot add item", str(e))
            return
        self.catalog_search.clear()
        self.view.clear_search()
        self.view.show_error("")

    def _step_quantity(self, lot_id: str, delta: int):
        try:
            self.checkout.step_quantity(lot_id, delta)
        except DomainError as e:
            info(self.view, "Cart", str(e))

    def _remove_line(self, lot_id: str):
        try:
            self.checkout.remove(lot_id)
        except DomainError as e:
            info(self.view, "Cart", str(e))

    def _clear_cart(self):
        if self.checkout.cart.is_empty:
            return
        if not confirm(self.view, "Clear Cart", "Remove all items from the cart?"):
            return
        try:
            self.checkout.clear_cart()
        except DomainError as e:
            info(self.view, "Cart", str(e))

    def _choose_payment(self, method: str):
        try:
            self.checkout.set_payment_method(method)
        except DomainError as e:
            self.view.show_payment_method(self.checkout.payment_method)
            self.view.show_error(str(e))

    def _set_tender(self, text: str):
        try:
            self.checkout.set_amount_tendered(text)
        except DomainError as e:
            tendered = self.checkout.amount_tendered
            self.view.set_amount_text("" if tendered is None else str(tendered))
            self.view.show_error(str(e))

    def _unbind_customer(self):
        self.resolver.unbind()
        self.view.set_customer_term("")
        self.view.show_customer_form(None)

    def _create_customer(self, payload: dict):
        try:
            self.resolver.create(**payload)
        except DomainError as e:
            self.view.customer_form.show_error(str(e))

    def _cancel_customer_form(self):
        self.resolver.cancel_creation()
        self.view.show_customer_form(None)

    # ------------------------------------------------------------------ #
    # Reactions
    # ------------------------------------------------------------------ #

    def _on_search_state(self, state: SearchState):
        if not self.catalog_search.enabled:
            return
        if state is SearchState.SEARCHING:
            self.view.show_search_status("Searching…")
        elif state is not SearchState.ERROR:
            self.view.show_search_status("")

    def _on_search_failed(self, exc):
        if self._check_session(exc):
            return
        self.view.show_search_status(user_message(exc))

    def _on_counter_availability(self, enabled: bool, reason: str):
        self.catalog_search.set_enabled(enabled, reason)
        self.view.set_search_enabled(enabled, reason)
        self._render_counter()
        self._render_actions()

    def _on_customer_bound(self, customer):
        self.checkout.bind_customer(customer)
        self.view.show_customer(customer)
        if customer is not None:
            self.view.set_customer_term(self.resolver.term)
            self.view.show_customer_form(None)

    def _on_customer_failed(self, exc):
        if self._check_session(exc):
            return
        msg = user_message(exc)
        if isinstance(exc, ValidationFailed) and exc.field_errors:
            msg += "\n" + "\n".join(f"• {k}: {v}" for k, v in exc.field_errors.items())
        if self.resolver.is_creating:
            self.view.customer_form.show_error(msg)
        else:
            self.view.show_error(msg)

    def _on_payment_changed(self, method: PaymentMethod):
        self.view.show_payment_method(method)
        if self.checkout.amount_tendered is None:
            self.view.set_amount_text("")

    def _on_checkout_state(self, state: CheckoutState):
        self._render_actions()
        self._render_cart()

    def _on_submission_failed(self, err):
        msg = err.message
        if err.field_errors:
            msg += "\n" + "\n".join(f"• {k}: {v}" for k, v in err.field_errors.items())
        self.view.show_error(msg)

    def _on_sale_completed(self, invoice: Invoice):
        self._announce_sale(invoice)
        self.resolver.reset()
        self.view.set_customer_term("")
        self.view.show_customer_form(None)
        self.view.set_amount_text("")
        self.view.show_error("")
        try:
            html = render_invoice_html(build_invoice_context(invoice, self.counters, self.pharmacy_name))
        except (TemplateError, OSError) as e:
            _log.error("could not render invoice %s: %s", invoice.sale.invoice_number, e)
            error(self.view, "Invoice", f"The sale was saved but the invoice could not be shown: {e}")
            self.new_sale()
            return
        self.view.show_invoice_page(html, f"Invoice_{invoice.sale.invoice_number or 'sale'}")

    def _announce_sale(self, invoice: Invoice):
        # subscribers (the Today panel) re-fetch; without a bus refresh directly
        if self.bus is not None:
            self.bus.publish(EVENT_SALE_CREATED, {"saleId": invoice.sale.sale_id})
        else:
            self.summary.refresh()

    def _check_session(self, exc) -> bool:
        if not isinstance(exc, SessionExpired):
            return False
        if not self._expired:
            self._expired = True
            _log.warning("session expired")
            self.session_expired.emit()
        return True

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #

    def _render_all(self):
        self._render_counter()
        self._render_cart()
        self._on_payment_changed(self.checkout.payment_method)
        self._render_totals(self.checkout.totals)
        self._render_actions()

    def _render_counter(self):
        self.view.show_counter(self.counters.bound, self.counters.disabled_reason)

    def _render_cart(self):
        self.view.show_cart(self.checkout.cart.lines, editable=self.checkout.is_editable)

    def _render_totals(self, totals):
        self.view.show_totals(totals)
        self.view.set_complete_label(totals.grand_total, self.checkout.state is CheckoutState.SUBMITTING)

    def _render_actions(self):
        state = self.checkout.state
        submitting = state is CheckoutState.SUBMITTING
        has_active = bool(self.counters.active_counters) or self.counters.is_ready
        self.view.btn_complete.setEnabled(self.checkout.is_editable and has_active)
        self.view.btn_clear.setEnabled(self.checkout.is_editable)
        self.view.set_payment_enabled(self.checkout.is_editable)
        self.view.set_complete_label(self.checkout.totals.grand_total, submitting)
