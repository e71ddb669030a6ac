from PyQt5.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit,
    QListWidget, QListWidgetItem, QHeaderView, QTableWidget, QTableWidgetItem,
    QButtonGroup, QSizePolicy
)
from PyQt5.QtCore import Qt, pyqtSignal, QTimer, QUrl, QDate
from PyQt5.QtGui import QFont, QDesktopServices

from models import PAYMENT_METHODS

PAYMENT_LABELS = {'CASH': "Cash", 'CARD': "Card", 'TRANSFER': "Transfer"}

NOTICE_STYLES = {
    'error': "background-color: #E74C3C; color: white; padding: 8px; border-radius: 6px;",
    'warning': "background-color: #F39C12; color: white; padding: 8px; border-radius: 6px;",
    'info': "background-color: #27AE60; color: white; padding: 8px; border-radius: 6px;",
}


def format_money(value):
    return f"$ {float(value or 0):,.2f}"


class CheckoutPanel(QWidget):
    # Signals to Controller
    begin_requested = pyqtSignal()
    reset_requested = pyqtSignal()
    search_query = pyqtSignal(str)
    list_all_requested = pyqtSignal()
    product_chosen = pyqtSignal(int)  # product id
    quantity_edited = pyqtSignal(int, str)  # product id, raw text
    remove_item = pyqtSignal(int)
    payment_chosen = pyqtSignal(str)
    finalize_requested = pyqtSignal()

    def __init__(self, notice_timeout_ms=2000):
        super().__init__()
        self.setObjectName("CheckoutPanel")
        self.notice_timeout_ms = notice_timeout_ms
        self.receipt_path = None
        self._notice_serial = 0

        main_layout = QVBoxLayout()

        # 1. Top Bar
        top_layout = QHBoxLayout()
        self.btn_begin = QPushButton("New sale")
        self.btn_begin.clicked.connect(self.begin_requested.emit)
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search product by name or id...")
        self.search_input.setMinimumHeight(40)
        self.search_input.textChanged.connect(self.search_query.emit)
        self.btn_list_all = QPushButton("List all")
        self.btn_list_all.clicked.connect(self.list_all_requested.emit)
        top_layout.addWidget(self.btn_begin)
        top_layout.addWidget(self.search_input, 1)
        top_layout.addWidget(self.btn_list_all)

        # 2. Content: results | ticket
        content_layout = QHBoxLayout()

        self.results_list = QListWidget()
        self.results_list.setMinimumWidth(320)
        self.results_list.itemClicked.connect(self._on_result_clicked)

        ticket_panel = QWidget()
        ticket_panel.setObjectName("TicketPanel")
        ticket_panel.setSizePolicy(QSizePolicy.Preferred, QSizePolicy.Expanding)
        ticket_layout = QVBoxLayout()

        header = QHBoxLayout()
        lbl_ticket = QLabel("Ticket")
        lbl_ticket.setFont(QFont("Segoe UI", 16, QFont.Bold))
        self.lbl_sale_number = QLabel("Sale No: ----")
        self.lbl_date = QLabel("")
        header.addWidget(lbl_ticket)
        header.addStretch(1)
        header.addWidget(self.lbl_sale_number)
        header.addWidget(self.lbl_date)

        self.ticket_table = QTableWidget()
        self.ticket_table.setColumnCount(5)
        self.ticket_table.setHorizontalHeaderLabels(["Item", "Price", "Qty", "Total", ""])
        self.ticket_table.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)
        self.ticket_table.horizontalHeader().setSectionResizeMode(4, QHeaderView.Fixed)
        self.ticket_table.setColumnWidth(4, 60)
        self.ticket_table.verticalHeader().setVisible(False)
        self.ticket_table.setMinimumWidth(420)

        self.lbl_subtotal = QLabel("Subtotal: $ 0.00")
        self.lbl_vat = QLabel("VAT: $ 0.00")
        self.lbl_total = QLabel("Total: $ 0.00")
        self.lbl_total.setStyleSheet("font-size: 18pt; font-weight: bold; color: #27AE60;")

        pay_layout = QHBoxLayout()
        self.payment_group = QButtonGroup(self)
        self.payment_group.setExclusive(True)
        self.payment_buttons = {}
        for method in PAYMENT_METHODS:
            btn = QPushButton(PAYMENT_LABELS.get(method, method.title()))
            btn.setCheckable(True)
            btn.clicked.connect(lambda ch, m=method: self.payment_chosen.emit(m))
            self.payment_group.addButton(btn)
            self.payment_buttons[method] = btn
            pay_layout.addWidget(btn)

        self.btn_finalize = QPushButton("FINALIZE SALE")
        self.btn_finalize.setObjectName("FinalizeBtn")
        self.btn_finalize.clicked.connect(self.finalize_requested.emit)
        self.btn_reset = QPushButton("Cancel sale")
        self.btn_reset.clicked.connect(self.reset_requested.emit)

        self.lbl_notice = QLabel("")
        self.lbl_notice.setWordWrap(True)
        self.lbl_notice.hide()

        confirm_layout = QHBoxLayout()
        self.lbl_confirmation = QLabel("")
        self.lbl_confirmation.setStyleSheet("color: #27AE60; font-weight: bold;")
        self.btn_receipt = QPushButton("Open receipt")
        self.btn_receipt.clicked.connect(self.open_receipt)
        self.btn_receipt.hide()
        confirm_layout.addWidget(self.lbl_confirmation, 1)
        confirm_layout.addWidget(self.btn_receipt)

        ticket_layout.addLayout(header)
        ticket_layout.addWidget(self.ticket_table)
        ticket_layout.addWidget(self.lbl_subtotal)
        ticket_layout.addWidget(self.lbl_vat)
        ticket_layout.addWidget(self.lbl_total)
        ticket_layout.addLayout(pay_layout)
        ticket_layout.addWidget(self.btn_finalize)
        ticket_layout.addWidget(self.btn_reset)
        ticket_layout.addWidget(self.lbl_notice)
        ticket_layout.addLayout(confirm_layout)
        ticket_panel.setLayout(ticket_layout)

        content_layout.addWidget(self.results_list, 1)
        content_layout.addWidget(ticket_panel, 0)

        main_layout.addLayout(top_layout)
        main_layout.addLayout(content_layout)
        self.setLayout(main_layout)

        self.set_entry_enabled(False)
        self.set_finalize_enabled(False)

    def _on_result_clicked(self, item):
        pid = item.data(Qt.UserRole)
        if pid is None:
            return
        self.search_input.blockSignals(True)
        self.search_input.clear()
        self.search_input.blockSignals(False)
        self.product_chosen.emit(int(pid))

    def update_results(self, products):
        self.results_list.clear()
        for prod in products:
            label = f"{prod.name}  (Stock: {prod.available_quantity})  {format_money(prod.price)}  {prod.vat_rate or 0}%"
            it = QListWidgetItem(label)
            it.setData(Qt.UserRole, prod.id)
            self.results_list.addItem(it)
        if not products and self.search_input.text().strip():
            self.results_list.addItem(QListWidgetItem("No products found"))

    def update_ticket(self, items, totals):
        self.ticket_table.setRowCount(0)
        self.ticket_table.setRowCount(len(items))

        for row, item in enumerate(items):
            self.ticket_table.setItem(row, 0, QTableWidgetItem(item.name))
            self.ticket_table.setItem(row, 1, QTableWidgetItem(format_money(item.unit_price)))

            qty_input = QLineEdit(str(item.quantity))
            qty_input.setFixedWidth(60)
            qty_input.setAlignment(Qt.AlignCenter)
            qty_input.editingFinished.connect(
                lambda i=item.product_id, w=qty_input: self.quantity_edited.emit(i, w.text()))
            self.ticket_table.setCellWidget(row, 2, qty_input)

            self.ticket_table.setItem(row, 3, QTableWidgetItem(format_money(item.total)))

            btn_rem = QPushButton("x")
            btn_rem.setStyleSheet("background-color: #E74C3C;")
            btn_rem.clicked.connect(lambda ch, i=item.product_id: self.remove_item.emit(i))
            self.ticket_table.setCellWidget(row, 4, btn_rem)

        self.lbl_subtotal.setText(f"Subtotal: {format_money(totals.subtotal)}")
        self.lbl_vat.setText(f"VAT: {format_money(totals.vat)}")
        self.lbl_total.setText(f"Total: {format_money(totals.total)}")

    def set_entry_enabled(self, enabled):
        self.search_input.setEnabled(enabled)
        self.btn_list_all.setEnabled(enabled)
        self.results_list.setEnabled(enabled)
        self.ticket_table.setEnabled(enabled)
        self.btn_reset.setEnabled(enabled)
        for btn in self.payment_buttons.values():
            btn.setEnabled(enabled)
        if enabled:
            self.lbl_date.setText("Date: " + QDate.currentDate().toString(Qt.ISODate))
        else:
            self.search_input.blockSignals(True)
            self.search_input.clear()
            self.search_input.blockSignals(False)

    def set_finalize_enabled(self, enabled):
        self.btn_finalize.setEnabled(enabled)

    def show_payment_method(self, method):
        # None unchecks everything, which an exclusive group refuses
        self.payment_group.setExclusive(False)
        for key, btn in self.payment_buttons.items():
            btn.setChecked(key == method)
        self.payment_group.setExclusive(True)

    def show_notice(self, message, level="error"):
        """Show a transient message that hides itself after the notice timeout."""
        self._notice_serial += 1
        serial = self._notice_serial
        self.lbl_notice.setText(message)
        self.lbl_notice.setStyleSheet(NOTICE_STYLES.get(level, NOTICE_STYLES['error']))
        self.lbl_notice.show()

        def _hide():
            # a newer notice owns the label now
            if serial == self._notice_serial:
                self.lbl_notice.hide()

        QTimer.singleShot(self.notice_timeout_ms, _hide)

    def show_confirmation(self, sale_number, receipt_path):
        self.lbl_sale_number.setText(f"Sale No: {sale_number}")
        self.lbl_confirmation.setText("Sale completed successfully!")
        self.receipt_path = receipt_path
        self.btn_receipt.setVisible(bool(receipt_path))
        if receipt_path:
            self.open_receipt()

    def clear_confirmation(self):
        self.lbl_sale_number.setText("Sale No: ----")
        self.lbl_confirmation.setText("")
        self.receipt_path = None
        self.btn_receipt.hide()

    def open_receipt(self):
        if self.receipt_path:
            QDesktopServices.openUrl(QUrl.fromLocalFile(self.receipt_path))
