"""
modules/pos/submitter.py

The checkout session: cart + customer slot + payment + counter gate, and
the one-shot sale submission.

CheckoutState
  IDLE           editing the cart
  SUBMITTING     exactly one create_sale call in flight
  INVOICE_READY  holding the committed Sale until "new sale"
  ERROR          last attempt failed; cart untouched, operator may retry

SUBMITTING is only entered after every precondition passed, so an empty
cart can never be "submitting".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ...api.errors import DomainError, ValidationFailed, user_message
from ...api.repositories.catalog_repo import Medicine, StockLot
from ...api.repositories.counters_repo import Counter
from ...api.repositories.customers_repo import Customer
from ...api.repositories.sales_repo import Sale, SalesRepo
from ...constants import SALE_TYPE_RETAIL
from ...utils.helpers import format_currency, parse_number_input
from .cart import Cart
from .checkout import CheckoutTotals, PaymentMethod, compute_totals
from .counters import CounterSelector

_log = logging.getLogger(__name__)


class CheckoutState(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    INVOICE_READY = "invoice_ready"
    ERROR = "error"


class BlockReason(Enum):
    EMPTY_CART = "empty_cart"
    INSUFFICIENT_PAYMENT = "insufficient_payment"
    NO_ACTIVE_COUNTER = "no_active_counter"


@dataclass(frozen=True)
class Blocker:
    reason: BlockReason
    message: str


@dataclass(frozen=True)
class SubmissionError:
    message: str
    field_errors: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Invoice:
    """A committed sale plus the session context it was rung up under."""
    sale: Sale
    customer: Optional[Customer] = None
    counter: Optional[Counter] = None


class CheckoutSession(QObject):
    cart_changed = Signal()
    totals_changed = Signal(object)             # CheckoutTotals
    customer_changed = Signal(object)           # Customer | None
    payment_changed = Signal(object)            # PaymentMethod
    state_changed = Signal(object)              # CheckoutState
    submission_blocked = Signal(object)         # Blocker
    counter_prompt_requested = Signal()
    sale_completed = Signal(object)             # Invoice
    submission_failed = Signal(object)          # SubmissionError
    raw_failure = Signal(object)                # exception (session expiry etc.)

    def __init__(self, sales: SalesRepo, counters: CounterSelector, runner,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._sales = sales
        self.counters = counters
        self._runner = runner

        self.cart = Cart()
        self._customer: Optional[Customer] = None
        self._payment_method = PaymentMethod.CASH
        self._amount_tendered: Optional[Decimal] = None
        self._state = CheckoutState.IDLE
        self._invoice: Optional[Invoice] = None
        self._last_error: Optional[SubmissionError] = None

    # ---- reads ------------------------------------------------------------

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def customer(self) -> Optional[Customer]:
        return self._customer

    @property
    def payment_method(self) -> PaymentMethod:
        return self._payment_method

    @property
    def amount_tendered(self) -> Optional[Decimal]:
        return self._amount_tendered

    @property
    def invoice(self) -> Optional[Invoice]:
        return self._invoice

    @property
    def last_error(self) -> Optional[SubmissionError]:
        return self._last_error

    @property
    def totals(self) -> CheckoutTotals:
        return compute_totals(self.cart.subtotal, self._payment_method, self._amount_tendered)

    @property
    def is_editable(self) -> bool:
        return self._state in (CheckoutState.IDLE, CheckoutState.ERROR)

    # ---- cart -------------------------------------------------------------

    def add_lot(self, medicine: Medicine, lot: StockLot) -> None:
        self._ensure_editable()
        reason = self.counters.disabled_reason
        if reason:
            raise DomainError(reason)
        self.cart.add_lot(medicine, lot)
        self._cart_mutated()

    def set_quantity(self, lot_id: str, n: int) -> None:
        self._ensure_editable()
        self.cart.set_quantity(lot_id, n)
        self._cart_mutated()

    def step_quantity(self, lot_id: str, delta: int) -> None:
        line = self.cart.line_for(lot_id)
        if line is not None:
            self.set_quantity(lot_id, line.quantity + delta)

    def remove(self, lot_id: str) -> None:
        self._ensure_editable()
        self.cart.remove(lot_id)
        self._cart_mutated()

    def clear_cart(self) -> None:
        self._ensure_editable()
        self.cart.clear()
        self._cart_mutated()

    # ---- customer / payment ----------------------------------------------

    def bind_customer(self, customer: Optional[Customer]) -> None:
        if customer == self._customer:
            return
        self._customer = customer
        self.customer_changed.emit(customer)

    def set_payment_method(self, method: PaymentMethod | str) -> None:
        self._ensure_editable()
        method = PaymentMethod(method)
        if method is self._payment_method:
            return
        self._payment_method = method
        self.payment_changed.emit(method)
        self.totals_changed.emit(self.totals)

    def set_amount_tendered(self, value) -> None:
        """Accepts Decimal/number, typed text, or None/'' (unset)."""
        self._ensure_editable()
        if value is None or (isinstance(value, str) and not value.strip()):
            amount = None
        else:
            amount = parse_number_input(value)
        if amount == self._amount_tendered:
            return
        self._amount_tendered = amount
        self.totals_changed.emit(self.totals)

    # ---- submission -------------------------------------------------------

    def check_preconditions(self) -> Optional[Blocker]:
        """First failing precondition, in fixed order, or None."""
        if self.cart.is_empty:
            return Blocker(BlockReason.EMPTY_CART, "Add at least one item to the cart.")
        totals = self.totals
        if totals.insufficient_payment:
            return Blocker(
                BlockReason.INSUFFICIENT_PAYMENT,
                f"Insufficient payment: {format_currency(totals.shortfall)} short of "
                f"{format_currency(totals.grand_total)}.",
            )
        if not self.counters.is_ready:
            return Blocker(
                BlockReason.NO_ACTIVE_COUNTER,
                self.counters.disabled_reason or "Select an active counter.",
            )
        return None

    def build_payload(self) -> dict:
        totals = self.totals
        counter = self.counters.bound
        amount_paid = self._amount_tendered if self._amount_tendered is not None else totals.grand_total
        payload = {
            "items": [
                {
                    "medicineId": line.medicine_id,
                    "batchId": line.lot_id,
                    "quantity": line.quantity,
                    # client-side price, so a concurrent catalog edit cannot reprice the sale
                    "sellingPrice": float(line.unit_price),
                }
                for line in self.cart
            ],
            "paymentMethod": self._payment_method.value,
            "amountPaid": float(amount_paid),
            "counterId": counter.counter_id if counter else None,
            "saleType": SALE_TYPE_RETAIL,
        }
        if self._customer is not None:
            payload["customerId"] = self._customer.customer_id
        return payload

    def submit(self) -> bool:
        """
        Validate and fire one create_sale call. Returns False when blocked
        (no request made) or when a submission is already in flight.
        """
        if self._state is CheckoutState.SUBMITTING:
            _log.debug("submit ignored: already submitting")
            return False
        if self._state is CheckoutState.INVOICE_READY:
            return False

        blocker = self.check_preconditions()
        if blocker is not None:
            _log.info("sale blocked: %s", blocker.reason.value)
            self.submission_blocked.emit(blocker)
            if blocker.reason is BlockReason.NO_ACTIVE_COUNTER:
                self.counter_prompt_requested.emit()
            return False

        payload = self.build_payload()
        customer = self._customer
        counter = self.counters.bound
        self._last_error = None
        self._set_state(CheckoutState.SUBMITTING)
        self._runner.submit(
            lambda: self._sales.create_sale(payload),
            lambda sale: self._on_committed(sale, customer, counter),
            self._on_failed,
        )
        return True

    def new_sale(self) -> None:
        """Leave the invoice view. No remote call."""
        if self._state is not CheckoutState.INVOICE_READY:
            return
        self._invoice = None
        self._set_state(CheckoutState.IDLE)

    # ---- internals --------------------------------------------------------

    def _ensure_editable(self) -> None:
        if not self.is_editable:
            raise DomainError("The sale is being processed. Please wait.")

    def _cart_mutated(self) -> None:
        self.cart_changed.emit()
        self.totals_changed.emit(self.totals)

    def _set_state(self, state: CheckoutState) -> None:
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)

    def _on_committed(self, sale: Sale, customer: Optional[Customer], counter: Optional[Counter]) -> None:
        _log.info("sale committed: invoice %s, total %s", sale.invoice_number, sale.grand_total)
        self._invoice = Invoice(sale=sale, customer=customer, counter=counter)

        self.cart.clear()
        self._amount_tendered = None
        self._payment_method = PaymentMethod.CASH
        self.bind_customer(None)
        self.cart_changed.emit()
        self.payment_changed.emit(self._payment_method)
        self.totals_changed.emit(self.totals)

        self._set_state(CheckoutState.INVOICE_READY)
        self.sale_completed.emit(self._invoice)
        # stock and "last used" may have moved
        self.counters.refresh()

    def _on_failed(self, exc: BaseException) -> None:
        field_errors = exc.field_errors if isinstance(exc, ValidationFailed) else {}
        self._last_error = SubmissionError(user_message(exc), field_errors)
        _log.warning("sale rejected: %s", exc)
        self._set_state(CheckoutState.ERROR)
        self.submission_failed.emit(self._last_error)
        self.raw_failure.emit(exc)
