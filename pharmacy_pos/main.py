from PySide6.QtWidgets import (
    QApplication,
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QListWidget,
    QListWidgetItem,
    QStackedWidget,
    QMessageBox,
    QHBoxLayout,
    QLabel,
    QSizePolicy,
)
from PySide6.QtCore import Qt
import logging
import sys

from .api import PosApi, TaskRunner, build_api
from .config import API_TOKEN, PHARMACY_NAME
from .constants import APP_NAME
from .events import EventBus
from .modules.base_module import BaseModule
from .modules.pos.controller import PosController
from .session import SessionContext
from .utils.loggers import get_logger

_log = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, session: SessionContext, api: PosApi, runner: TaskRunner,
                 bus: EventBus | None = None):
        super().__init__()
        self.setWindowTitle(APP_NAME)

        self.setWindowFlag(Qt.WindowMinimizeButtonHint, True)
        self.setWindowFlag(Qt.WindowMaximizeButtonHint, True)
        self.setMinimumSize(1024, 640)

        self.session = session
        self.api = api
        self.runner = runner
        self.bus = bus or EventBus(self)

        # ---- Central layout: left nav + stacked pages ----
        central = QWidget(self)
        layout = QVBoxLayout(central)
        self.setCentralWidget(central)

        self.nav = QListWidget()
        self.nav.setFixedWidth(110)
        self.nav.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Expanding)
        self.stack = QStackedWidget()

        row = QWidget()
        row_lay = QHBoxLayout(row)
        row_lay.addWidget(self.nav)
        row_lay.addWidget(self.stack, 1)
        layout.addWidget(row, 1)

        self.modules: list[tuple[str, BaseModule]] = []
        self.nav.currentRowChanged.connect(self.stack.setCurrentIndex)

        user = session.user
        pharmacy = (user.pharmacy_name if user and user.pharmacy_name else None) or PHARMACY_NAME
        self.pos = PosController(api, runner, bus=self.bus, pharmacy_name=pharmacy)
        self.pos.session_expired.connect(self._on_session_expired)
        self.add_module("Point of Sale", self.pos)

        if user is not None:
            self.statusBar().addPermanentWidget(QLabel(f"{user.name} · {user.role}"))

        if self.nav.count():
            self.nav.setCurrentRow(0)

    # ---------- modules ----------

    def add_module(self, title: str, module: BaseModule):
        self.modules.append((title, module))
        self.stack.addWidget(module.get_widget())
        QListWidgetItem(title, self.nav)

    # ---------- session ----------

    def _on_session_expired(self):
        self.session.close()
        for _, mod in self.modules:
            mod.get_widget().setEnabled(False)
        QMessageBox.warning(
            self,
            "Session expired",
            "Your session has expired. Please sign in again to continue selling.",
        )

    def closeEvent(self, event):
        for _, mod in self.modules:
            mod.teardown()
        self.runner.wait_for_done(2000)
        super().closeEvent(event)


def main():
    get_logger("pharmacy_pos")

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)

    session = SessionContext()
    if not API_TOKEN:
        QMessageBox.critical(
            None,
            APP_NAME,
            "No API token configured.\n\nSet PHARMACY_API_TOKEN to a valid session token and restart.",
        )
        return 1
    session.open(API_TOKEN)

    api = build_api(session)
    runner = TaskRunner()

    win = MainWindow(session, api, runner)
    win.resize(1280, 760)
    win.show()
    _log.info("%s started against %s", APP_NAME, api.client.base_url)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
