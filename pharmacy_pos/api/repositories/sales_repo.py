from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ...utils.helpers import parse_datetime, to_decimal
from ..client import ApiClient
from ._records import as_list, record_id, ref_id, to_int
from .customers_repo import Customer, parse_customer

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLine:
    medicine_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    batch_number: str = ""
    medicine_id: Optional[str] = None
    batch_id: Optional[str] = None


@dataclass(frozen=True)
class Sale:
    """A committed sale exactly as the server recorded it. Never built locally."""
    sale_id: Optional[str]
    invoice_number: str
    sale_date: Optional[datetime]
    items: tuple[SaleLine, ...]
    subtotal: Decimal
    grand_total: Decimal
    payment_method: str
    amount_paid: Decimal
    change_returned: Decimal
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    due_amount: Decimal = Decimal("0")
    customer: Optional[Customer] = None
    customer_id: Optional[str] = None
    counter_id: Optional[str] = None
    counter_name: Optional[str] = None


@dataclass(frozen=True)
class SalesSummary:
    count: int = 0
    revenue: Decimal = Decimal("0")


def _optional_amount(v) -> Optional[Decimal]:
    if v is None:
        return None
    d = to_decimal(v)
    return d if d != 0 else None


def parse_sale(row: dict) -> Sale:
    """
    Lenient: the sale is already committed when this runs, so odd fields
    degrade to empty values instead of raising.
    """
    items = []
    raw_items = row.get("items")
    for it in raw_items if isinstance(raw_items, list) else []:
        if not isinstance(it, dict):
            _log.warning("sale %s: skipping malformed line %r", record_id(row), it)
            continue
        qty = to_int(it.get("quantity"))
        price = to_decimal(it.get("sellingPrice", it.get("unitPrice")))
        total = it.get("total")
        items.append(
            SaleLine(
                medicine_name=it.get("medicineName") or "",
                quantity=qty,
                unit_price=price,
                total=to_decimal(total) if total is not None else price * qty,
                batch_number=str(it.get("batchNumber") or ""),
                medicine_id=ref_id(it.get("medicineId") or it.get("medicine")),
                batch_id=ref_id(it.get("batchId") or it.get("batch")),
            )
        )

    customer_raw = row.get("customer") if isinstance(row.get("customer"), dict) else row.get("customerId")
    customer = parse_customer(customer_raw) if isinstance(customer_raw, dict) else None
    counter_raw = row.get("counter") if row.get("counter") is not None else row.get("counterId")

    grand_total = to_decimal(row.get("grandTotal"))
    payment_method = row.get("paymentMethod") or ""
    due = row.get("dueAmount")
    if due is None:
        due = grand_total if payment_method == "credit" else Decimal("0")

    return Sale(
        sale_id=record_id(row),
        invoice_number=str(row.get("invoiceNumber") or ""),
        sale_date=parse_datetime(row.get("saleDate") or row.get("createdAt")),
        items=tuple(items),
        subtotal=to_decimal(row.get("subtotal")),
        grand_total=grand_total,
        payment_method=payment_method,
        amount_paid=to_decimal(row.get("amountPaid")),
        change_returned=to_decimal(row.get("changeReturned")),
        discount=_optional_amount(row.get("discount")),
        tax=_optional_amount(row.get("tax")),
        due_amount=to_decimal(due),
        customer=customer,
        customer_id=customer.customer_id if customer else ref_id(customer_raw),
        counter_id=ref_id(counter_raw),
        counter_name=counter_raw.get("name") if isinstance(counter_raw, dict) else row.get("counterName"),
    )


def parse_summary(data) -> SalesSummary:
    if isinstance(data, dict) and not any(isinstance(data.get(k), list) for k in ("items", "sales", "results")):
        count = data.get("count", data.get("totalSales", 0))
        revenue = data.get("totalRevenue", data.get("revenue", 0))
        return SalesSummary(count=to_int(count), revenue=to_decimal(revenue))
    rows = [r for r in as_list(data) if isinstance(r, dict)]
    return SalesSummary(count=len(rows), revenue=sum((to_decimal(r.get("grandTotal")) for r in rows), Decimal("0")))


class SalesRepo:
    def __init__(self, api: ApiClient):
        self.api = api

    def create_sale(self, payload: dict) -> Sale:
        """Commit a sale. Stock and pricing are re-checked server-side."""
        data = self.api.post("/sales/sales", payload)
        if not isinstance(data, dict):
            # the sale is committed at this point; never surface it as a failure
            _log.warning("create_sale: unexpected response shape %s", type(data).__name__)
            data = {}
        return parse_sale(data)

    def todays_summary(self) -> SalesSummary:
        return parse_summary(self.api.get("/sales/sales/today"))
