import os
import time
import unittest
import sys
from decimal import Decimal
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

try:
    from PyQt5.QtCore import QEventLoop
    from PyQt5.QtWidgets import QApplication
    from view import CheckoutPanel, format_money
    PYQT_AVAILABLE = True
except Exception:
    PYQT_AVAILABLE = False

from models import Cart
from schemas import ProductSnapshot


@unittest.skipUnless(PYQT_AVAILABLE, 'PyQt5 not available in test environment')
class ViewTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QApplication.instance() or QApplication([])

    def test_starts_locked(self):
        panel = CheckoutPanel()
        self.assertFalse(panel.search_input.isEnabled())
        self.assertFalse(panel.btn_finalize.isEnabled())
        self.assertTrue(panel.btn_begin.isEnabled())

    def test_update_ticket(self):
        panel = CheckoutPanel()
        cart = Cart()
        cart.add_item(ProductSnapshot(id=1, name="Cola", price=Decimal("10"), available_quantity=5, vat_rate=19))
        panel.update_ticket(cart.items, cart.compute_totals())
        self.assertEqual(panel.ticket_table.rowCount(), 1)
        self.assertEqual(panel.ticket_table.item(0, 0).text(), "Cola")
        self.assertEqual(panel.lbl_total.text(), "Total: $ 11.90")

    def test_result_click_emits_product(self):
        panel = CheckoutPanel()
        panel.update_results([ProductSnapshot(id=4, name="Tea", price=Decimal("2"), available_quantity=1)])
        chosen = []
        panel.product_chosen.connect(chosen.append)
        panel._on_result_clicked(panel.results_list.item(0))
        self.assertEqual(chosen, [4])

    def test_confirmation_and_clear(self):
        panel = CheckoutPanel()
        panel.show_confirmation("0007", None)
        self.assertEqual(panel.lbl_sale_number.text(), "Sale No: 0007")
        self.assertTrue(panel.btn_receipt.isHidden())
        panel.clear_confirmation()
        self.assertEqual(panel.lbl_sale_number.text(), "Sale No: ----")

    def _spin(self, ms):
        deadline = time.monotonic() + ms / 1000.0
        while time.monotonic() < deadline:
            self.app.processEvents(QEventLoop.AllEvents, 10)

    def test_notice_is_shown(self):
        panel = CheckoutPanel(notice_timeout_ms=10)
        panel.show_notice("X")
        self.assertEqual(panel.lbl_notice.text(), "X")
        self.assertFalse(panel.lbl_notice.isHidden())

    def test_notice_hides_after_timeout(self):
        panel = CheckoutPanel(notice_timeout_ms=20)
        panel.show_notice("X")
        self._spin(150)
        self.assertTrue(panel.lbl_notice.isHidden())

    def test_older_notice_timer_leaves_newer_notice(self):
        panel = CheckoutPanel(notice_timeout_ms=100)
        panel.show_notice("first")
        self._spin(60)
        panel.notice_timeout_ms = 1000
        panel.show_notice("second", "warning")
        # the first timer fires around here
        self._spin(120)
        self.assertFalse(panel.lbl_notice.isHidden())
        self.assertEqual(panel.lbl_notice.text(), "second")

    def test_payment_choice_survives_entry_lock(self):
        panel = CheckoutPanel()
        panel.set_entry_enabled(True)
        panel.payment_buttons['CARD'].click()
        # submitting locks entry, a refused sale unlocks it again
        panel.set_entry_enabled(False)
        panel.set_entry_enabled(True)
        self.assertTrue(panel.payment_buttons['CARD'].isChecked())

    def test_show_payment_method(self):
        panel = CheckoutPanel()
        panel.show_payment_method("CASH")
        self.assertTrue(panel.payment_buttons['CASH'].isChecked())
        self.assertFalse(panel.payment_buttons['CARD'].isChecked())
        panel.show_payment_method(None)
        self.assertFalse(any(b.isChecked() for b in panel.payment_buttons.values()))

    def test_format_money(self):
        self.assertEqual(format_money(Decimal("1234.5")), "$ 1,234.50")
        self.assertEqual(format_money(None), "$ 0.00")


if __name__ == '__main__':
    unittest.main()
