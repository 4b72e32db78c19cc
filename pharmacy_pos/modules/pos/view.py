from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QButtonGroup,
    QFrame,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QSplitter,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QToolButton,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from ...utils.helpers import fmt_money, format_currency, format_month
from ...widgets.invoice_preview import InvoicePreview
from .checkout import CheckoutTotals, PaymentMethod
from .customer_form import CustomerCreateForm

PAGE_CHECKOUT = 0
PAGE_INVOICE = 1

_ERROR_CSS = "color: #b00020;"
_BANNER_CSS = "background: #fff4e5; color: #8a4b00; padding: 4px; border-radius: 3px;"


class PosView(QWidget):
    """
    Point-of-sale screen:
      - Left: catalog search + results tree (medicine -> batches), cart table
      - Right: counter, customer, payment/totals, Complete Sale / Clear Cart
      - A second stacked page shows the invoice after a committed sale

    Pure presentation: every user intent goes out as a signal or through the
    public widgets; the controller owns all state.
    """
    lot_activated = Signal(object, object)      # Medicine, StockLot
    quantity_step = Signal(str, int)            # lot_id, +1 / -1
    remove_requested = Signal(str)              # lot_id
    candidate_chosen = Signal(object)           # Customer
    payment_chosen = Signal(str)                # PaymentMethod value

    def __init__(self, summary: QWidget | None = None, parent=None):
        super().__init__(parent)
        root = QVBoxLayout(self)

        if summary is not None:
            root.addWidget(summary)

        self.stack = QStackedWidget()
        root.addWidget(self.stack, 1)

        page = QWidget()
        page_lay = QVBoxLayout(page)
        page_lay.setContentsMargins(0, 0, 0, 0)
        split = QSplitter(Qt.Horizontal)
        split.addWidget(self._build_left())
        split.addWidget(self._build_right())
        split.setStretchFactor(0, 3)
        split.setStretchFactor(1, 2)
        page_lay.addWidget(split)
        self.stack.addWidget(page)

        self.invoice = InvoicePreview()
        self.stack.addWidget(self.invoice)

    # ------------------------------------------------------------------ #
    # Layout
    # ------------------------------------------------------------------ #

    def _build_left(self) -> QWidget:
        host = QWidget()
        lay = QVBoxLayout(host)
        lay.setContentsMargins(0, 0, 0, 0)

        # ---- Catalog search --------------------------------------------------
        bar = QHBoxLayout()
        bar.addWidget(QLabel("Search:"))
        self.search = QLineEdit()
        self.search.setPlaceholderText("Medicine name, generic name or barcode…")
        self.search.setClearButtonEnabled(True)
        bar.addWidget(self.search, 1)
        lay.addLayout(bar)

        self.search_status = QLabel("")
        self.search_status.setVisible(False)
        lay.addWidget(self.search_status)

        self.results = QTreeWidget()
        self.results.setHeaderLabels(["Medicine / Batch", "Expiry", "Stock", "Price"])
        self.results.setRootIsDecorated(True)
        self.results.header().setSectionResizeMode(0, QHeaderView.Stretch)
        self.results.setVisible(False)
        self.results.itemActivated.connect(self._on_result_activated)
        self.results.itemClicked.connect(self._on_result_activated)
        lay.addWidget(self.results, 1)

        # ---- Cart ---------------------------------------------------------------
        cart_box = QGroupBox("Cart")
        cart_lay = QVBoxLayout(cart_box)
        self.cart = QTableWidget(0, 6)
        self.cart.setHorizontalHeaderLabels(["Item", "Batch", "Qty", "Price", "Total", ""])
        self.cart.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)
        self.cart.verticalHeader().setVisible(False)
        self.cart.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.cart.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.cart.setAlternatingRowColors(True)
        cart_lay.addWidget(self.cart)
        self.cart_empty = QLabel("Cart is empty. Search for a medicine to add it.")
        self.cart_empty.setAlignment(Qt.AlignCenter)
        cart_lay.addWidget(self.cart_empty)
        lay.addWidget(cart_box, 2)
        return host

    def _build_right(self) -> QWidget:
        host = QWidget()
        lay = QVBoxLayout(host)
        lay.setContentsMargins(0, 0, 0, 0)

        # ---- Counter ------------------------------------------------------------
        counter_box = QGroupBox("Counter")
        c_lay = QVBoxLayout(counter_box)
        row = QHBoxLayout()
        self.lbl_counter = QLabel("—")
        self.btn_change_counter = QPushButton("Change")
        self.btn_refresh_counters = QPushButton("Refresh")
        self.btn_refresh_counters.setToolTip("Reload the counter list")
        row.addWidget(self.lbl_counter, 1)
        row.addWidget(self.btn_change_counter)
        row.addWidget(self.btn_refresh_counters)
        c_lay.addLayout(row)
        self.counter_banner = QLabel("")
        self.counter_banner.setWordWrap(True)
        self.counter_banner.setStyleSheet(_BANNER_CSS)
        self.counter_banner.setVisible(False)
        c_lay.addWidget(self.counter_banner)
        lay.addWidget(counter_box)

        # ---- Customer -----------------------------------------------------------
        cust_box = QGroupBox("Customer (optional)")
        cu_lay = QVBoxLayout(cust_box)
        row = QHBoxLayout()
        self.customer_phone = QLineEdit()
        self.customer_phone.setPlaceholderText("Phone or name, Enter to look up")
        self.btn_customer_search = QPushButton("Find")
        row.addWidget(self.customer_phone, 1)
        row.addWidget(self.btn_customer_search)
        cu_lay.addLayout(row)

        self.candidates = QListWidget()
        self.candidates.setMaximumHeight(110)
        self.candidates.setVisible(False)
        self.candidates.itemClicked.connect(self._on_candidate_clicked)
        self.candidates.itemActivated.connect(self._on_candidate_clicked)
        cu_lay.addWidget(self.candidates)

        self.customer_card = QFrame()
        self.customer_card.setFrameShape(QFrame.StyledPanel)
        card_lay = QHBoxLayout(self.customer_card)
        card_lay.setContentsMargins(6, 4, 6, 4)
        self.lbl_customer = QLabel("")
        self.btn_unbind_customer = QToolButton()
        self.btn_unbind_customer.setText("×")
        self.btn_unbind_customer.setToolTip("Remove customer")
        card_lay.addWidget(self.lbl_customer, 1)
        card_lay.addWidget(self.btn_unbind_customer)
        self.customer_card.setVisible(False)
        cu_lay.addWidget(self.customer_card)

        self.customer_form = CustomerCreateForm()
        self.customer_form.setVisible(False)
        cu_lay.addWidget(self.customer_form)
        lay.addWidget(cust_box)

        # ---- Payment & totals -------------------------------------------------
        pay_box = QGroupBox("Payment")
        p_lay = QVBoxLayout(pay_box)
        methods = QHBoxLayout()
        self.payment_group = QButtonGroup(self)
        self.payment_group.setExclusive(True)
        self.payment_buttons: dict[str, QPushButton] = {}
        for method in PaymentMethod:
            b = QPushButton(method.label)
            b.setCheckable(True)
            self.payment_group.addButton(b)
            self.payment_buttons[method.value] = b
            b.clicked.connect(lambda _checked=False, m=method.value: self.payment_chosen.emit(m))
            methods.addWidget(b)
        self.payment_buttons[PaymentMethod.CASH.value].setChecked(True)
        p_lay.addLayout(methods)

        grid = QGridLayout()
        self.lbl_amount = QLabel("Amount received")
        self.amount = QLineEdit()
        self.amount.setPlaceholderText("0.00")
        self.amount.setAlignment(Qt.AlignRight)
        grid.addWidget(self.lbl_amount, 0, 0)
        grid.addWidget(self.amount, 0, 1)

        self.lbl_subtotal = QLabel()
        self.lbl_grand_total = QLabel()
        self.lbl_change_caption = QLabel("Change")
        self.lbl_change = QLabel()
        self.lbl_due_caption = QLabel("Due")
        self.lbl_due = QLabel()
        self.lbl_due.setStyleSheet(_ERROR_CSS)
        for w in (self.lbl_subtotal, self.lbl_grand_total, self.lbl_change, self.lbl_due):
            w.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
        grid.addWidget(QLabel("Subtotal"), 1, 0)
        grid.addWidget(self.lbl_subtotal, 1, 1)
        grid.addWidget(QLabel("<b>Grand Total</b>"), 2, 0)
        grid.addWidget(self.lbl_grand_total, 2, 1)
        grid.addWidget(self.lbl_change_caption, 3, 0)
        grid.addWidget(self.lbl_change, 3, 1)
        grid.addWidget(self.lbl_due_caption, 4, 0)
        grid.addWidget(self.lbl_due, 4, 1)
        p_lay.addLayout(grid)
        lay.addWidget(pay_box)

        # ---- Actions --------------------------------------------------------------
        self.error_label = QLabel("")
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet(_ERROR_CSS)
        self.error_label.setVisible(False)
        lay.addWidget(self.error_label)

        self.btn_complete = QPushButton("Complete Sale")
        self.btn_complete.setMinimumHeight(40)
        self.btn_clear = QPushButton("Clear Cart")
        lay.addWidget(self.btn_complete)
        lay.addWidget(self.btn_clear)
        lay.addStretch(1)
        return host

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    def set_search_enabled(self, enabled: bool, reason: str = ""):
        self.search.setEnabled(enabled)
        if not enabled:
            self.search.blockSignals(True)
            self.search.clear()
            self.search.blockSignals(False)
            self.show_search_status(reason)
        else:
            self.show_search_status("")

    def show_search_status(self, text: str):
        self.search_status.setText(text or "")
        self.search_status.setVisible(bool(text))

    def clear_search(self):
        self.search.blockSignals(True)
        self.search.clear()
        self.search.blockSignals(False)
        self.show_results(None)

    def show_results(self, medicines):
        self.results.clear()
        if medicines is None:
            self.results.setVisible(False)
            return
        self.results.setVisible(True)
        if not medicines:
            QTreeWidgetItem(self.results, ["No medicines found."]).setDisabled(True)
            return
        for med in medicines:
            details = " · ".join(p for p in (med.generic_name, med.strength, med.manufacturer) if p)
            title = med.name + (f"  ({details})" if details else "")
            top = QTreeWidgetItem(self.results, [title, "", str(med.total_stock), ""])
            top.setFlags(top.flags() & ~Qt.ItemIsSelectable)
            for lot in med.lots:
                label = f"Batch {lot.lot_number}" if lot.in_stock else f"Batch {lot.lot_number} (out of stock)"
                child = QTreeWidgetItem(top, [
                    label,
                    format_month(lot.expiry_date),
                    str(lot.quantity),
                    fmt_money(lot.selling_price),
                ])
                if not lot.in_stock:
                    child.setDisabled(True)
                child.setData(0, Qt.UserRole, (med, lot))
            top.setExpanded(True)

    def lot_item(self, item: QTreeWidgetItem):
        return item.data(0, Qt.UserRole)

    def _on_result_activated(self, item: QTreeWidgetItem, _column: int = 0):
        pair = self.lot_item(item)
        if pair is None or item.isDisabled():
            return
        self.lot_activated.emit(*pair)

    # ------------------------------------------------------------------ #
    # Cart
    # ------------------------------------------------------------------ #

    def show_cart(self, lines, editable: bool = True):
        self.cart.setRowCount(0)
        for row, line in enumerate(lines):
            self.cart.insertRow(row)
            self.cart.setItem(row, 0, QTableWidgetItem(line.medicine_name))
            self.cart.setItem(row, 1, QTableWidgetItem(line.lot_number))
            self.cart.setCellWidget(row, 2, self._stepper(line, editable))
            price = QTableWidgetItem(fmt_money(line.unit_price))
            price.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            self.cart.setItem(row, 3, price)
            total = QTableWidgetItem(fmt_money(line.line_total))
            total.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            self.cart.setItem(row, 4, total)
            rm = QToolButton()
            rm.setText("Remove")
            rm.setEnabled(editable)
            rm.clicked.connect(lambda _checked=False, lid=line.lot_id: self.remove_requested.emit(lid))
            self.cart.setCellWidget(row, 5, rm)
        has_lines = self.cart.rowCount() > 0
        self.cart.setVisible(has_lines)
        self.cart_empty.setVisible(not has_lines)

    def _stepper(self, line, editable: bool) -> QWidget:
        host = QWidget()
        lay = QHBoxLayout(host)
        lay.setContentsMargins(0, 0, 0, 0)
        minus = QToolButton()
        minus.setText("−")
        minus.setObjectName("qty_minus")
        minus.setEnabled(editable and line.can_decrement)
        minus.clicked.connect(lambda _checked=False, lid=line.lot_id: self.quantity_step.emit(lid, -1))
        qty = QLabel(str(line.quantity))
        qty.setObjectName("qty_value")
        qty.setAlignment(Qt.AlignCenter)
        qty.setToolTip(f"{line.available_stock} in stock")
        plus = QToolButton()
        plus.setText("+")
        plus.setObjectName("qty_plus")
        plus.setEnabled(editable and line.can_increment)
        plus.clicked.connect(lambda _checked=False, lid=line.lot_id: self.quantity_step.emit(lid, 1))
        lay.addWidget(minus)
        lay.addWidget(qty, 1)
        lay.addWidget(plus)
        return host

    def stepper_buttons(self, row: int) -> tuple[QToolButton, QToolButton]:
        host = self.cart.cellWidget(row, 2)
        return host.findChild(QToolButton, "qty_minus"), host.findChild(QToolButton, "qty_plus")

    # ------------------------------------------------------------------ #
    # Counter
    # ------------------------------------------------------------------ #

    def show_counter(self, counter, reason: str | None):
        if counter is None:
            self.lbl_counter.setText("No counter selected")
        elif counter.is_active:
            self.lbl_counter.setText(f"<b>{counter.name}</b>")
        else:
            self.lbl_counter.setText(f"<b>{counter.name}</b> (inactive)")
        self.counter_banner.setText(reason or "")
        self.counter_banner.setVisible(bool(reason))

    # ------------------------------------------------------------------ #
    # Customer
    # ------------------------------------------------------------------ #

    def show_candidates(self, customers):
        self.candidates.clear()
        if not customers:
            self.candidates.setVisible(False)
            return
        for c in customers:
            item = QListWidgetItem(f"{c.name} · {c.phone}")
            item.setData(Qt.UserRole, c)
            self.candidates.addItem(item)
        self.candidates.setVisible(True)

    def _on_candidate_clicked(self, item: QListWidgetItem):
        customer = item.data(Qt.UserRole)
        if customer is not None:
            self.candidate_chosen.emit(customer)

    def show_customer(self, customer):
        if customer is None:
            self.customer_card.setVisible(False)
            self.lbl_customer.setText("")
            return
        pts = f" · {customer.loyalty_points} pts" if customer.loyalty_points else ""
        self.lbl_customer.setText(f"<b>{customer.name}</b><br>{customer.phone}{pts}")
        self.customer_card.setVisible(True)
        self.candidates.setVisible(False)

    def set_customer_term(self, text: str):
        self.customer_phone.blockSignals(True)
        self.customer_phone.setText(text or "")
        self.customer_phone.blockSignals(False)

    def show_customer_form(self, phone: str | None):
        if phone is None:
            self.customer_form.reset()
            self.customer_form.setVisible(False)
            return
        self.customer_form.prefill(phone)
        self.customer_form.setVisible(True)

    # ------------------------------------------------------------------ #
    # Payment / totals
    # ------------------------------------------------------------------ #

    def show_payment_method(self, method: PaymentMethod):
        btn = self.payment_buttons.get(PaymentMethod(method).value)
        if btn is not None and not btn.isChecked():
            btn.setChecked(True)
        takes_tender = PaymentMethod(method).takes_tender
        self.lbl_amount.setVisible(takes_tender)
        self.amount.setVisible(takes_tender)

    def set_payment_enabled(self, enabled: bool):
        for b in self.payment_buttons.values():
            b.setEnabled(enabled)
        self.amount.setEnabled(enabled)

    def set_amount_text(self, text: str):
        self.amount.blockSignals(True)
        self.amount.setText(text or "")
        self.amount.blockSignals(False)

    def show_totals(self, totals: CheckoutTotals):
        self.lbl_subtotal.setText(format_currency(totals.subtotal))
        self.lbl_grand_total.setText(f"<b>{format_currency(totals.grand_total)}</b>")

        tendered = totals.amount_tendered
        show_change = totals.payment_method.takes_tender and tendered is not None and tendered > 0
        self.lbl_change_caption.setVisible(show_change)
        self.lbl_change.setVisible(show_change)
        if show_change:
            if totals.insufficient_payment:
                self.lbl_change_caption.setText("Short by")
                self.lbl_change.setText(format_currency(totals.shortfall))
                self.lbl_change.setStyleSheet(_ERROR_CSS)
            else:
                self.lbl_change_caption.setText("Change")
                self.lbl_change.setText(format_currency(totals.change))
                self.lbl_change.setStyleSheet("")

        is_credit = not totals.payment_method.takes_tender
        self.lbl_due_caption.setVisible(is_credit)
        self.lbl_due.setVisible(is_credit)
        if is_credit:
            self.lbl_due.setText(format_currency(totals.due))

    def set_complete_label(self, grand_total, submitting: bool = False):
        if submitting:
            self.btn_complete.setText("Processing…")
        else:
            self.btn_complete.setText(f"Complete Sale · {format_currency(grand_total)}")

    def show_error(self, text: str):
        self.error_label.setText(text or "")
        self.error_label.setVisible(bool(text))

    # ------------------------------------------------------------------ #
    # Pages
    # ------------------------------------------------------------------ #

    def show_checkout_page(self):
        self.stack.setCurrentIndex(PAGE_CHECKOUT)

    def show_invoice_page(self, html: str, doc_name: str):
        self.invoice.set_invoice(html, doc_name)
        self.stack.setCurrentIndex(PAGE_INVOICE)
