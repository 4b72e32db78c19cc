"""
modules/pos/invoice.py

Turn a committed sale into a printable receipt.

build_invoice_context() is pure (no Qt, no I/O) so it can be checked
directly; render_invoice_html() feeds it to the packaged Jinja2 template;
export_invoice_pdf() hands the HTML to WeasyPrint.
"""

from __future__ import annotations

import logging
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ...config import CURRENCY_SYMBOL, PHARMACY_NAME, TEMPLATES_PATH
from ...constants import INVOICE_TEMPLATE, WALK_IN_LABEL
from ...utils.helpers import fmt_money, format_timestamp
from .checkout import PaymentMethod
from .counters import CounterSelector
from .submitter import Invoice

_log = logging.getLogger(__name__)

INVOICE_PDF_CSS = """
    @page { margin: 10mm; size: A5; }
    body { margin: 0 !important; padding: 0 !important; }
"""


def _payment_label(method) -> str:
    try:
        return PaymentMethod(method).label
    except ValueError:
        return str(method or "").replace("_", " ").title()


def build_invoice_context(invoice: Invoice, counters: Optional[CounterSelector] = None,
                          pharmacy_name: str = PHARMACY_NAME) -> dict:
    sale = invoice.sale

    customer = invoice.customer or sale.customer
    if customer is not None:
        customer_block = {
            "name": customer.name,
            "phone": customer.phone,
            "email": customer.email,
            "address": customer.address,
            "walk_in": False,
        }
    else:
        customer_block = {"name": WALK_IN_LABEL, "phone": "", "email": "", "address": "", "walk_in": True}

    # counter name: sale payload first, then the snapshot, then the live list
    counter_name = sale.counter_name
    if not counter_name and invoice.counter is not None:
        counter_name = invoice.counter.name
    if not counter_name and counters is not None:
        found = counters.find(sale.counter_id)
        counter_name = found.name if found else ""

    is_credit = sale.payment_method == PaymentMethod.CREDIT.value
    return {
        "pharmacy_name": pharmacy_name,
        "currency": CURRENCY_SYMBOL,
        "invoice_number": sale.invoice_number,
        "timestamp": format_timestamp(sale.sale_date),
        "customer": customer_block,
        "counter_name": counter_name or "",
        "items": [
            {
                "name": line.medicine_name,
                "batch": line.batch_number,
                "quantity": line.quantity,
                "unit_price": line.unit_price,
                "total": line.total,
            }
            for line in sale.items
        ],
        "subtotal": sale.subtotal,
        "discount": sale.discount if sale.discount else None,
        "tax": sale.tax if sale.tax else None,
        "grand_total": sale.grand_total,
        "payment_method": _payment_label(sale.payment_method),
        "is_credit": is_credit,
        "amount_paid": sale.amount_paid,
        "change": sale.change_returned,
        "due": sale.due_amount if is_credit else None,
    }


_env: Optional[Environment] = None


def _environment() -> Environment:
    global _env
    if _env is None:
        _env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_PATH)),
            autoescape=select_autoescape(["html"]),
        )
        _env.filters["money"] = fmt_money
    return _env


def render_invoice_html(context: dict) -> str:
    return _environment().get_template(INVOICE_TEMPLATE).render(**context)


def export_invoice_pdf(html: str, path: str) -> str:
    """Write `html` as a PDF at `path` and return the path."""
    from weasyprint import CSS, HTML

    HTML(string=html).write_pdf(path, stylesheets=[CSS(string=INVOICE_PDF_CSS)])
    _log.info("invoice exported to %s", path)
    return path
