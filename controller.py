import asyncio
import threading

import structlog
from PyQt5.QtWidgets import QMainWindow
from PyQt5.QtCore import QObject, pyqtSignal

from products import make_client
from services import CheckoutService
from view import CheckoutPanel

logger = structlog.get_logger()


class DisplayBridge(QObject):
    """Display for CheckoutService that hands every update to the GUI thread.

    The session runs on the asyncio thread; emitting from there reaches the
    panel through queued connections.
    """

    cart_changed = pyqtSignal(object, object)  # items, totals
    results_changed = pyqtSignal(object)
    notice = pyqtSignal(str, str)  # message, level
    entry_enabled = pyqtSignal(bool)
    finalize_enabled = pyqtSignal(bool)
    payment_method = pyqtSignal(object)  # method or None
    confirmed = pyqtSignal(str, object)  # sale number, receipt path or None
    confirmation_cleared = pyqtSignal()

    def show_cart(self, items, totals):
        self.cart_changed.emit(list(items), totals)

    def show_search_results(self, products):
        self.results_changed.emit(list(products))

    def show_notice(self, message, level="error"):
        self.notice.emit(message, level)

    def set_entry_enabled(self, enabled):
        self.entry_enabled.emit(bool(enabled))

    def set_finalize_enabled(self, enabled):
        self.finalize_enabled.emit(bool(enabled))

    def show_payment_method(self, method):
        self.payment_method.emit(method)

    def show_confirmation(self, sale_number, receipt_path):
        self.confirmed.emit(sale_number, receipt_path)

    def clear_confirmation(self):
        self.confirmation_cleared.emit()


class AsyncRunner:
    """An asyncio loop on its own thread; all session work is queued onto it."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, name="checkout-loop", daemon=True)

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self):
        if not self.thread.is_alive():
            self.thread.start()

    def submit(self, coro):
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        fut.add_done_callback(_log_failure)
        return fut

    def call(self, fn, *args):
        self.loop.call_soon_threadsafe(fn, *args)

    def stop(self, timeout=2.0):
        if self.thread.is_alive():
            self.loop.call_soon_threadsafe(self.loop.stop)
            self.thread.join(timeout)


def _log_failure(fut):
    if fut.cancelled():
        return
    exc = fut.exception()
    if exc is not None:
        logger.error("session_task_failed", error=repr(exc))


class MainController(QMainWindow):
    def __init__(self, settings, client=None, runner=None):
        super().__init__()
        self.setWindowTitle("Checkout")
        self.resize(1100, 720)

        self.settings = settings
        self.panel = CheckoutPanel(notice_timeout_ms=settings.notice_timeout_ms)
        self.setCentralWidget(self.panel)

        self.bridge = DisplayBridge()
        self.client = client or make_client(settings)
        self.session = CheckoutService(self.client, display=self.bridge, settings=settings)
        self.runner = runner or AsyncRunner()

        # Session -> panel
        self.bridge.cart_changed.connect(self.panel.update_ticket)
        self.bridge.results_changed.connect(self.panel.update_results)
        self.bridge.notice.connect(self.panel.show_notice)
        self.bridge.entry_enabled.connect(self.panel.set_entry_enabled)
        self.bridge.finalize_enabled.connect(self.panel.set_finalize_enabled)
        self.bridge.payment_method.connect(self.panel.show_payment_method)
        self.bridge.confirmed.connect(self.panel.show_confirmation)
        self.bridge.confirmation_cleared.connect(self.panel.clear_confirmation)

        # Panel -> session
        self.panel.begin_requested.connect(self.begin_sale)
        self.panel.reset_requested.connect(self.reset_sale)
        self.panel.search_query.connect(self.filter_search)
        self.panel.list_all_requested.connect(self.list_all)
        self.panel.product_chosen.connect(self.add_product)
        self.panel.quantity_edited.connect(self.edit_quantity)
        self.panel.remove_item.connect(self.remove_item)
        self.panel.payment_chosen.connect(self.choose_payment)
        self.panel.finalize_requested.connect(self.finalize)

        self.runner.start()

    # --- NAV ---
    def begin_sale(self):
        self.runner.call(self.session.begin_sale)

    def reset_sale(self):
        self.runner.call(self.session.reset)

    # --- SEARCH ---
    def filter_search(self, text):
        if not text.strip():
            # typing back to nothing just clears the list
            self.panel.update_results([])
            return
        self.runner.submit(self.session.search(text))

    def list_all(self):
        self.runner.submit(self.session.search(""))

    # --- CART ---
    def add_product(self, product_id):
        self.runner.call(self.session.add_product, product_id)

    def edit_quantity(self, product_id, raw_qty):
        self.runner.submit(self.session.edit_quantity(product_id, raw_qty))

    def remove_item(self, product_id):
        self.runner.call(self.session.remove_item, product_id)

    def choose_payment(self, method):
        self.runner.call(self.session.choose_payment_method, method)

    # --- CHECKOUT ---
    def finalize(self):
        # lock right away; the session unlocks it again if the sale fails
        self.panel.set_finalize_enabled(False)
        self.runner.submit(self.session.finalize())

    def closeEvent(self, event):
        try:
            self.runner.submit(self.client.aclose()).result(timeout=2)
        except Exception as e:
            logger.warning("client_close_failed", error=repr(e))
        self.runner.stop()
        super().closeEvent(event)
