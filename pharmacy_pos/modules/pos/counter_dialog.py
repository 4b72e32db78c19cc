from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
)

from ...api.repositories.counters_repo import Counter
from ...utils.helpers import format_date


class CounterChooserDialog(QDialog):
    """
    Lists every counter; inactive ones are shown but cannot be picked.
    chosen_id() is the selected counter id after accept().
    """

    def __init__(self, counters: list[Counter], current_id: str | None = None,
                 reason: str = "", parent=None):
        super().__init__(parent)
        self.setWindowTitle("Select Counter")
        self.setModal(True)
        self._chosen: str | None = None

        root = QVBoxLayout(self)
        if reason:
            hint = QLabel(reason)
            hint.setWordWrap(True)
            root.addWidget(hint)

        self.list = QListWidget()
        for c in counters:
            text = c.name
            if c.is_default:
                text += "  (default)"
            if not c.is_active:
                text += "  [inactive]"
            elif c.last_session_at:
                text += f"  · last used {format_date(c.last_session_at)}"
            item = QListWidgetItem(text)
            item.setData(Qt.UserRole, c.counter_id)
            if not c.is_active:
                item.setFlags(item.flags() & ~Qt.ItemIsSelectable & ~Qt.ItemIsEnabled)
            self.list.addItem(item)
            if c.counter_id == current_id and c.is_active:
                self.list.setCurrentItem(item)
        root.addWidget(self.list)

        if not counters:
            root.addWidget(QLabel("No counters are set up."))

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        self.list.itemDoubleClicked.connect(lambda _item: self.accept())
        root.addWidget(self.buttons)

    def selected_id(self) -> str | None:
        item = self.list.currentItem()
        if item is None or not (item.flags() & Qt.ItemIsEnabled):
            return None
        return item.data(Qt.UserRole)

    def accept(self):
        cid = self.selected_id()
        if cid is None:
            return
        self._chosen = cid
        super().accept()

    def chosen_id(self) -> str | None:
        return self._chosen
