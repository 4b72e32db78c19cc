from PySide6.QtCore import Signal
from PySide6.QtGui import QAction, QKeySequence, QShortcut, QTextDocument
from PySide6.QtPrintSupport import QPrintDialog, QPrinter
from PySide6.QtWidgets import QFileDialog, QMessageBox, QTextBrowser, QToolBar, QVBoxLayout, QWidget


class InvoicePreview(QWidget):
    """
    Read-only receipt view with Print / Export PDF / New Sale.

    The widget only shows HTML; whoever owns it supplies the markup and
    the PDF exporter (so tests can stub WeasyPrint out).
    """
    new_sale_requested = Signal()
    exported = Signal(str)

    def __init__(self, exporter=None, parent=None):
        super().__init__(parent)
        self._exporter = exporter
        self._html = ""
        self._doc_name = "Invoice"
        self.setup_ui()

    def setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        toolbar = QToolBar()
        layout.addWidget(toolbar)

        self.print_action = QAction("Print", self)
        self.print_action.triggered.connect(self.print_invoice)
        toolbar.addAction(self.print_action)

        self.export_action = QAction("Export PDF", self)
        self.export_action.triggered.connect(self.export_pdf)
        toolbar.addAction(self.export_action)

        toolbar.addSeparator()

        self.new_sale_action = QAction("New Sale", self)
        self.new_sale_action.triggered.connect(self.new_sale_requested)
        toolbar.addAction(self.new_sale_action)

        print_shortcut = QShortcut(QKeySequence("Ctrl+P"), self)
        print_shortcut.activated.connect(self.print_invoice)

        self.web_view = QTextBrowser()
        self.web_view.setOpenExternalLinks(False)
        layout.addWidget(self.web_view)

    # ---------------- API ----------------

    def set_invoice(self, html: str, doc_name: str = "Invoice"):
        self._html = html or ""
        self._doc_name = doc_name or "Invoice"
        self.web_view.setHtml(self._html)

    def clear(self):
        self._html = ""
        self.web_view.clear()

    def html(self) -> str:
        return self._html

    def set_exporter(self, exporter):
        self._exporter = exporter

    def print_invoice(self):
        """Print the receipt through the system print dialog."""
        if not self._html:
            return
        printer = QPrinter(QPrinter.HighResolution)
        printer.setDocName(self._doc_name)
        print_dialog = QPrintDialog(printer, self)
        if print_dialog.exec() == QPrintDialog.Accepted:
            doc = QTextDocument()
            doc.setHtml(self._html)
            doc.print_(printer)

    def export_pdf(self):
        if not self._html or self._exporter is None:
            return
        path, _ = QFileDialog.getSaveFileName(
            self, "Export Invoice", f"{self._doc_name}.pdf", "PDF Files (*.pdf)"
        )
        if not path:
            return
        if not path.lower().endswith(".pdf"):
            path += ".pdf"
        try:
            self._exporter(self._html, path)
        except Exception as e:
            QMessageBox.critical(self, "Export Error", f"Could not export invoice: {e}")
            return
        self.exported.emit(path)
