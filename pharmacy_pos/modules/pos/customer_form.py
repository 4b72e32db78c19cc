from __future__ import annotations

import re

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QDialogButtonBox,
    QFormLayout,
    QGroupBox,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QVBoxLayout,
)

from ...utils.validators import non_empty


class CustomerCreateForm(QGroupBox):
    """
    Inline "new customer" panel shown under the phone field.

    Required fields: name, phone. Missing fields are flagged in place and
    nothing is emitted, so no request goes out for an incomplete form.

    Signals:
        submitted(dict): {"name", "phone", "email", "address"} (optional
                         fields are None when blank)
        cancelled()
    """
    submitted = Signal(dict)
    cancelled = Signal()

    def __init__(self, parent=None):
        super().__init__("New Customer", parent)

        # --- Fields ---
        self.name = QLineEdit()
        self.phone = QLineEdit()
        self.email = QLineEdit()
        self.email.setPlaceholderText("Optional")
        self.addr = QPlainTextEdit()
        self.addr.setPlaceholderText("Address (optional)")
        self.addr.setFixedHeight(54)

        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: #b00020;")
        self.error_label.setVisible(False)

        # --- Layout ---
        form = QFormLayout()
        form.addRow("Name*", self.name)
        form.addRow("Phone*", self.phone)
        form.addRow("Email", self.email)
        form.addRow("Address", self.addr)

        root = QVBoxLayout(self)
        root.addLayout(form)
        root.addWidget(self.error_label)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.submit)
        self.buttons.rejected.connect(self._cancel)
        root.addWidget(self.buttons)

    # ---------------- helpers ----------------

    @staticmethod
    def _collapse_spaces(line: str) -> str:
        return re.sub(r"\s+", " ", line or "").strip()

    def _norm_multiline(self, text: str) -> str:
        if text is None:
            return ""
        lines = [self._collapse_spaces(line) for line in text.splitlines()]
        while lines and lines[0] == "":
            lines.pop(0)
        while lines and lines[-1] == "":
            lines.pop()
        return "\n".join(lines).strip()

    # ---------------- API ----------------

    def prefill(self, phone: str = ""):
        self.reset()
        self.phone.setText((phone or "").strip())
        self.name.setFocus()

    def reset(self):
        for w in (self.name, self.phone, self.email):
            w.clear()
        self.addr.clear()
        self.show_error("")

    def show_error(self, text: str):
        self.error_label.setText(text or "")
        self.error_label.setVisible(bool(text))

    def get_payload(self) -> dict | None:
        if not non_empty(self.name.text()):
            self.show_error("Name is required.")
            self.name.setFocus()
            return None
        if not non_empty(self.phone.text()):
            self.show_error("Phone is required.")
            self.phone.setFocus()
            return None

        email = self.email.text().strip()
        address = self._norm_multiline(self.addr.toPlainText())
        return {
            "name": self._collapse_spaces(self.name.text()),
            "phone": re.sub(r"\s+", "", self.phone.text()),
            "email": email or None,
            "address": address or None,
        }

    def submit(self):
        p = self.get_payload()
        if p is None:
            return
        self.show_error("")
        self.submitted.emit(p)

    def _cancel(self):
        self.reset()
        self.cancelled.emit()
