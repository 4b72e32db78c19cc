# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - No network: repositories are replaced by in-memory fakes that record
#   every call
# - Background work goes through ManualRunner (test decides when and in
#   which order tasks finish) or ImmediateRunner (finishes inline)
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re
from datetime import datetime
from decimal import Decimal
from typing import Optional

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6 import QtCore

from pharmacy_pos.api.errors import RequestCancelled
from pharmacy_pos.api.repositories.catalog_repo import Medicine, StockLot
from pharmacy_pos.api.repositories.counters_repo import STATUS_ACTIVE, STATUS_INACTIVE, Counter
from pharmacy_pos.api.repositories.customers_repo import Customer
from pharmacy_pos.api.repositories.sales_repo import Sale, SaleLine, SalesSummary
from pharmacy_pos.api.tasks import CancelToken


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
    r"^This plugin does not support propagateSizeHints",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Runners ----------

class _Job:
    def __init__(self, work, on_success, on_error, token):
        self.work = work
        self.on_success = on_success
        self.on_error = on_error
        self.token = token
        self.done = False


class ManualRunner:
    """
    Same contract as api.tasks.TaskRunner, but nothing runs until the test
    says so. Jobs can be completed in any order, which is how the
    out-of-order response races are reproduced.
    """

    def __init__(self):
        self.jobs: list[_Job] = []

    def submit(self, work, on_success, on_error=None, token=None) -> CancelToken:
        token = token or CancelToken()
        self.jobs.append(_Job(work, on_success, on_error, token))
        return token

    @property
    def pending(self) -> list[_Job]:
        return [j for j in self.jobs if not j.done]

    def _deliver_ok(self, job: _Job, result):
        job.done = True
        if job.token.cancelled:
            return
        job.on_success(result)

    def _deliver_err(self, job: _Job, exc: BaseException):
        job.done = True
        if job.token.cancelled or isinstance(exc, RequestCancelled):
            return
        if job.on_error is not None:
            job.on_error(exc)

    def run(self, index: int = 0):
        """Execute pending job #index for real (its work callable) and deliver."""
        job = self.pending[index]
        try:
            result = job.work()
        except Exception as exc:
            self._deliver_err(job, exc)
            return
        self._deliver_ok(job, result)

    def run_all(self):
        while self.pending:
            self.run(0)

    def resolve(self, index: int, result):
        """Deliver a canned result without running the work callable."""
        self._deliver_ok(self.pending[index], result)

    def fail(self, index: int, exc: BaseException):
        self._deliver_err(self.pending[index], exc)

    def wait_for_done(self, msecs: int = -1) -> bool:
        return True


class ImmediateRunner(ManualRunner):
    def submit(self, work, on_success, on_error=None, token=None) -> CancelToken:
        token = super().submit(work, on_success, on_error, token)
        self.run(len(self.pending) - 1)
        return token


@pytest.fixture
def runner() -> ManualRunner:
    return ManualRunner()


@pytest.fixture
def immediate_runner() -> ImmediateRunner:
    return ImmediateRunner()


# ---------- Builders ----------

def make_lot(lot_id="lot-1", medicine_id="med-1", name="Napa 500mg", number="B001",
             qty=10, price="5.00", mrp=None, expiry=datetime(2026, 12, 1)) -> StockLot:
    return StockLot(
        lot_id=lot_id,
        medicine_id=medicine_id,
        medicine_name=name,
        lot_number=number,
        quantity=qty,
        selling_price=Decimal(price),
        mrp=Decimal(mrp if mrp is not None else price),
        expiry_date=expiry,
    )


def make_medicine(medicine_id="med-1", name="Napa 500mg", lots=None, **extra) -> Medicine:
    lots = tuple(lots) if lots is not None else (make_lot(medicine_id=medicine_id, name=name),)
    return Medicine(
        medicine_id=medicine_id,
        name=name,
        generic_name=extra.get("generic_name", "Paracetamol"),
        manufacturer=extra.get("manufacturer", "Beximco"),
        strength=extra.get("strength", "500mg"),
        total_stock=sum(lot.quantity for lot in lots),
        lots=lots,
    )


def make_counter(counter_id="c-1", name="Counter 1", active=True, default=False) -> Counter:
    return Counter(
        counter_id=counter_id,
        name=name,
        status=STATUS_ACTIVE if active else STATUS_INACTIVE,
        is_default=default,
    )


def make_customer(customer_id="cust-1", name="Rahim Uddin", phone="01711000000", points=0) -> Customer:
    return Customer(customer_id=customer_id, name=name, phone=phone, loyalty_points=points)


def sale_from_payload(payload: dict, invoice_number="INV-0001", lookup: Optional[dict] = None) -> Sale:
    """Echo a create_sale payload back the way the server would record it."""
    lookup = lookup or {}
    lines = []
    subtotal = Decimal("0")
    for it in payload["items"]:
        price = Decimal(str(it["sellingPrice"]))
        total = price * it["quantity"]
        subtotal += total
        lines.append(SaleLine(
            medicine_name=lookup.get(it["medicineId"], it["medicineId"]),
            quantity=it["quantity"],
            unit_price=price,
            total=total,
            medicine_id=it["medicineId"],
            batch_id=it["batchId"],
        ))
    paid = Decimal(str(payload["amountPaid"]))
    credit = payload["paymentMethod"] == "credit"
    return Sale(
        sale_id="sale-1",
        invoice_number=invoice_number,
        sale_date=datetime(2025, 3, 5, 15, 7),
        items=tuple(lines),
        subtotal=subtotal,
        grand_total=subtotal,
        payment_method=payload["paymentMethod"],
        amount_paid=paid,
        change_returned=Decimal("0") if credit else max(Decimal("0"), paid - subtotal),
        due_amount=subtotal if credit else Decimal("0"),
        customer_id=payload.get("customerId"),
        counter_id=payload.get("counterId"),
    )


# ---------- Fake repositories ----------

class FakeCatalog:
    def __init__(self, medicines=None):
        self.medicines = list(medicines or [])
        self.calls: list[tuple[str, int]] = []

    def search(self, query, limit, token=None):
        self.calls.append((query, limit))
        q = query.lower()
        return [m for m in self.medicines if q in m.name.lower()][:limit]


class FakeCustomers:
    def __init__(self, customers=None):
        self.customers = list(customers or [])
        self.calls: list[tuple] = []

    def search(self, term, limit, token=None):
        self.calls.append(("search", term, limit))
        t = term.lower()
        return [c for c in self.customers if t in c.name.lower() or t in c.phone][:limit]

    def get_by_phone(self, phone, token=None):
        self.calls.append(("get_by_phone", phone))
        for c in self.customers:
            if c.phone == phone.strip():
                return c
        return None

    def create(self, name, phone, email=None, address=None):
        self.calls.append(("create", name, phone))
        c = Customer(customer_id=f"cust-{len(self.customers) + 1}", name=name, phone=phone,
                     email=email, address=address)
        self.customers.append(c)
        return c


class FakeCounters:
    def __init__(self, counters=None):
        self.counters = list(counters or [])
        self.calls = 0

    def list_counters(self, token=None):
        self.calls += 1
        return list(self.counters)


class FakeSales:
    def __init__(self, fail_with: Optional[BaseException] = None,
                 summary: SalesSummary = SalesSummary()):
        self.payloads: list[dict] = []
        self.fail_with = fail_with
        self.summary = summary
        self.summary_calls = 0

    def create_sale(self, payload):
        self.payloads.append(payload)
        if self.fail_with is not None:
            raise self.fail_with
        return sale_from_payload(payload, invoice_number=f"INV-{len(self.payloads):04d}")

    def todays_summary(self):
        self.summary_calls += 1
        return self.summary


class FakePosApi:
    def __init__(self, medicines=None, customers=None, counters=None, sales=None):
        self.catalog = FakeCatalog(medicines)
        self.customers = FakeCustomers(customers)
        self.counters = FakeCounters(counters)
        self.sales = sales or FakeSales()


@pytest.fixture
def fake_api() -> FakePosApi:
    return FakePosApi(
        medicines=[
            make_medicine("med-1", "Napa 500mg", lots=[
                make_lot("lot-1", "med-1", "Napa 500mg", "B001", qty=10, price="10.00"),
            ]),
            make_medicine("med-2", "Seclo 20mg", lots=[
                make_lot("lot-2", "med-2", "Seclo 20mg", "S100", qty=2, price="20.00"),
                make_lot("lot-3", "med-2", "Seclo 20mg", "S099", qty=0, price="20.00"),
            ]),
        ],
        customers=[make_customer()],
        counters=[make_counter("c-1", "Counter 1", default=True), make_counter("c-2", "Counter 2")],
    )

