# tests/test_customer_create_form.py
import pytest

from pharmacy_pos.modules.pos.customer_form import CustomerCreateForm


@pytest.fixture
def form(qtbot):
    f = CustomerCreateForm()
    qtbot.addWidget(f)
    return f


def test_prefill_sets_phone_and_clears_rest(form):
    form.name.setText("old")
    form.prefill(" 01999999999 ")
    assert form.phone.text() == "01999999999"
    assert form.name.text() == ""


def test_missing_name_blocks_emit(form, qtbot):
    got = []
    form.submitted.connect(got.append)
    form.phone.setText("01999999999")

    form.submit()
    assert got == []
    assert form.error_label.text() == "Name is required."
    assert not form.error_label.isHidden()


def test_missing_phone_blocks_emit(form):
    got = []
    form.submitted.connect(got.append)
    form.name.setText("New Person")
    form.submit()
    assert got == []
    assert form.error_label.text() == "Phone is required."


def test_payload_is_normalized(form):
    got = []
    form.submitted.connect(got.append)
    form.name.setText("  New   Person ")
    form.phone.setText("0199 999 9999")
    form.addr.setPlainText("\n  House 12,   Road 4 \n\n Dhanmondi \n")

    form.submit()
    assert got == [{
        "name": "New Person",
        "phone": "01999999999",
        "email": None,
        "address": "House 12, Road 4\n\nDhanmondi",
    }]
    assert form.error_label.isHidden()


def test_cancel_resets_and_emits(form):
    fired = []
    form.cancelled.connect(lambda: fired.append(True))
    form.name.setText("x")
    form.buttons.rejected.emit()
    assert fired == [True]
    assert form.name.text() == ""
