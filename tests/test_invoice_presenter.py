# tests/test_invoice_presenter.py
"""
Receipt context + Jinja2 rendering. The PDF step only checks that the
HTML is handed to WeasyPrint; no PDF is produced here.
"""

import sys
import types
from decimal import Decimal

from pharmacy_pos.modules.pos import invoice as invoice_mod
from pharmacy_pos.modules.pos.counters import CounterSelector
from pharmacy_pos.modules.pos.invoice import build_invoice_context, export_invoice_pdf, render_invoice_html
from pharmacy_pos.modules.pos.submitter import Invoice

from conftest import FakeCounters, ManualRunner, make_counter, make_customer, sale_from_payload


def _payload(method="cash", paid=100.0, qty=3, price=20.0, customer_id=None):
    payload = {
        "items": [{"medicineId": "med-x", "batchId": "lot-x", "quantity": qty, "sellingPrice": price}],
        "paymentMethod": method,
        "amountPaid": paid,
        "counterId": "c-1",
        "saleType": "retail",
    }
    if customer_id:
        payload["customerId"] = customer_id
    return payload


def test_walk_in_cash_context():
    sale = sale_from_payload(_payload(), lookup={"med-x": "Amodis 400"})
    ctx = build_invoice_context(Invoice(sale=sale, counter=make_counter("c-1", "Front Desk")),
                                pharmacy_name="Shifa Pharmacy")

    assert ctx["pharmacy_name"] == "Shifa Pharmacy"
    assert ctx["invoice_number"] == "INV-0001"
    assert ctx["timestamp"] == "Mar 5, 2025 3:07 PM"
    assert ctx["customer"]["walk_in"] is True
    assert ctx["customer"]["name"] == "Walk-in Customer"
    assert ctx["counter_name"] == "Front Desk"
    assert ctx["items"][0]["name"] == "Amodis 400"
    assert ctx["grand_total"] == Decimal("60")
    assert ctx["change"] == Decimal("40")
    assert ctx["payment_method"] == "Cash"
    assert ctx["is_credit"] is False
    assert ctx["due"] is None
    assert ctx["discount"] is None and ctx["tax"] is None


def test_credit_context_shows_due_and_customer():
    sale = sale_from_payload(_payload(method="credit", paid=60.0, customer_id="cust-1"))
    ctx = build_invoice_context(Invoice(sale=sale, customer=make_customer()))

    assert ctx["customer"]["name"] == "Rahim Uddin"
    assert ctx["customer"]["phone"] == "01711000000"
    assert ctx["is_credit"] is True
    assert ctx["due"] == Decimal("60")
    assert ctx["change"] == Decimal("0")


def test_counter_name_falls_back_to_live_list(qapp):
    runner = ManualRunner()
    counters = CounterSelector(FakeCounters([make_counter("c-1", "Pharmacy Counter A")]), runner)
    counters.refresh()
    runner.run_all()

    sale = sale_from_payload(_payload())
    ctx = build_invoice_context(Invoice(sale=sale), counters=counters)
    assert ctx["counter_name"] == "Pharmacy Counter A"


def test_rendered_html_contains_totals():
    sale = sale_from_payload(_payload(), lookup={"med-x": "Amodis 400"})
    html = render_invoice_html(build_invoice_context(Invoice(sale=sale), pharmacy_name="Shifa Pharmacy"))

    assert "Shifa Pharmacy" in html
    assert "INV-0001" in html
    assert "Amodis 400" in html
    assert "60.00" in html
    assert "40.00" in html
    assert "Walk-in Customer" in html


def test_rendered_html_escapes_names():
    sale = sale_from_payload(_payload(), lookup={"med-x": "<b>Amodis</b>"})
    html = render_invoice_html(build_invoice_context(Invoice(sale=sale)))
    assert "&lt;b&gt;Amodis&lt;/b&gt;" in html


def test_credit_html_shows_due():
    sale = sale_from_payload(_payload(method="credit", paid=60.0, customer_id="cust-1"))
    html = render_invoice_html(build_invoice_context(Invoice(sale=sale, customer=make_customer())))
    assert "Due" in html
    assert "Rahim Uddin" in html


def test_export_pdf_hands_html_to_weasyprint(monkeypatch, tmp_path):
    written = {}

    class _HTML:
        def __init__(self, string):
            written["html"] = string

        def write_pdf(self, path, stylesheets=None):
            written["path"] = path
            written["css"] = stylesheets

    class _CSS:
        def __init__(self, string):
            self.string = string

    monkeypatch.setitem(sys.modules, "weasyprint", types.SimpleNamespace(HTML=_HTML, CSS=_CSS))

    target = str(tmp_path / "Invoice_INV-0001.pdf")
    assert export_invoice_pdf("<p>hi</p>", target) == target
    assert written["html"] == "<p>hi</p>"
    assert written["path"] == target
    assert written["css"][0].string == invoice_mod.INVOICE_PDF_CSS
