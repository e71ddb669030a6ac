import asyncio
from enum import Enum

import structlog

from config import Settings
from errors import LookupFailure, PosError, SaleNotOpen, SubmissionFailure, errmsg
from models import Cart, format_sale_id, parse_quantity
from products import search_products
from receipts import decode_receipt, save_receipt
from transactions import create_sale

logger = structlog.get_logger()


class SaleState(Enum):
    IDLE = "idle"
    OPEN = "open"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class Display:
    """What the checkout service drives. The default does nothing."""

    def show_cart(self, items, totals):
        pass

    def show_search_results(self, products):
        pass

    def show_notice(self, message, level="error"):
        pass

    def set_entry_enabled(self, enabled):
        pass

    def set_finalize_enabled(self, enabled):
        pass

    def show_payment_method(self, method):
        pass

    def show_confirmation(self, sale_number, receipt_path):
        pass

    def clear_confirmation(self):
        pass


def _call_later(delay, callback):
    return asyncio.get_running_loop().call_later(delay, callback)


#Product Service
class ProductService:
    def __init__(self, client):
        self.client = client
        self.results = []
        self._search_seq = 0

    async def search(self, term=""):
        """Fetch products for ``term`` and keep them as the current results.

        Returns None when a newer search started while this one was in
        flight; its answer is dropped.
        """
        self._search_seq += 1
        seq = self._search_seq
        try:
            products = await search_products(self.client, term)
        except LookupFailure:
            if seq != self._search_seq:
                return None
            self.results = []
            raise
        if seq != self._search_seq:
            logger.debug("search_superseded", term=term)
            return None
        self.results = products
        return products

    def find(self, product_id):
        for product in self.results:
            if product.id == product_id:
                return product
        return None

    def forget(self):
        self._search_seq += 1
        self.results = []

    async def current_stock(self, product_id, name):
        # the backend searches by name or id; pick our product out of the matches
        products = await search_products(self.client, name)
        for product in products:
            if product.id == product_id:
                return product.available_quantity
        return None


#Cart service
class CartService:
    def __init__(self, cart, products, default_vat_rate=0):
        self.cart = cart
        self.products = products
        self.default_vat_rate = default_vat_rate
        self._edits = {}  # product_id -> generation of the newest edit
        self._generation = 0

    def add_from_results(self, product_id):
        snapshot = self.products.find(product_id)
        if snapshot is None:
            raise LookupFailure(errmsg.NOT_IN_RESULTS)
        item = self.cart.add_item(snapshot, self.default_vat_rate)
        logger.info("product_added", product_id=item.product_id, name=item.name,
                    available=snapshot.available_quantity)
        return item

    async def edit_quantity(self, product_id, raw_qty):
        """Validate a new quantity against live stock, then commit it.

        A failed lookup commits the request as typed. The answer is dropped
        if the item was edited again or removed meanwhile.
        """
        item = self.cart.get(product_id)
        if item is None:
            return None
        qty = max(1, parse_quantity(raw_qty))
        self._generation += 1
        generation = self._generation
        self._edits[product_id] = generation

        try:
            available = await self.products.current_stock(product_id, item.name)
        except LookupFailure:
            logger.warning("stock_lookup_failed", product_id=product_id, quantity=qty)
            available = None
        else:
            if available is None:
                logger.warning("stock_lookup_no_match", product_id=product_id, quantity=qty)

        if self._edits.get(product_id) != generation or product_id not in self.cart:
            logger.debug("stale_quantity_edit_dropped", product_id=product_id, quantity=qty)
            return None
        del self._edits[product_id]

        warning = self.cart.set_quantity(product_id, qty, available)
        if warning is not None:
            logger.info("stock_clamped", product_id=product_id, requested=qty,
                        quantity=warning.quantity, available=warning.available)
        return warning

    def remove_item(self, product_id):
        self._edits.pop(product_id, None)
        self.cart.remove_item(product_id)

    def forget_edits(self):
        self._edits.clear()


#Check-out service
class CheckoutService:
    """One till session: owns the active cart and walks it through a sale."""

    def __init__(self, client, display=None, settings=None, schedule=None):
        self.settings = settings or Settings()
        self.client = client
        self.display = display or Display()
        self.cart = Cart()
        self.products = ProductService(client)
        self.cart_service = CartService(self.cart, self.products, self.settings.default_vat_rate)
        self.state = SaleState.IDLE
        self.last_sale_number = None
        self._schedule = schedule or _call_later
        self._pending_reset = None

    # --- helpers ---
    def refresh(self):
        self.display.show_cart(list(self.cart.items), self.cart.compute_totals())
        self.display.show_payment_method(self.cart.payment_method)
        self.display.set_finalize_enabled(self.state is SaleState.OPEN and self.cart.can_finalize())

    def _notify(self, message, level="error"):
        logger.info("notice", message=message, level=level)
        self.display.show_notice(message, level)

    def _require_open(self):
        if self.state is not SaleState.OPEN:
            raise SaleNotOpen()

    def _cancel_pending_reset(self):
        if self._pending_reset is not None:
            self._pending_reset.cancel()
            self._pending_reset = None

    def _to_idle(self):
        self.cart.clear()
        self.cart_service.forget_edits()
        self.products.forget()
        self.state = SaleState.IDLE
        self.display.clear_confirmation()
        self.display.show_search_results([])
        self.display.set_entry_enabled(False)
        self.refresh()

    # --- NAV ---
    def begin_sale(self):
        if self.state is SaleState.SUBMITTING:
            return
        self._cancel_pending_reset()
        self.cart.clear()
        self.cart_service.forget_edits()
        self.products.forget()
        self.state = SaleState.OPEN
        self.display.clear_confirmation()
        self.display.show_search_results([])
        self.display.set_entry_enabled(True)
        self.refresh()
        logger.info("sale_started")

    def reset(self):
        if self.state is SaleState.SUBMITTING:
            return
        self._cancel_pending_reset()
        self._to_idle()
        logger.info("sale_reset")

    # --- CART ---
    async def search(self, term=""):
        try:
            self._require_open()
            results = await self.products.search(term)
        except LookupFailure as e:
            self._notify(e.text)
            self.display.show_search_results([])
            return None
        except PosError as e:
            self._notify(e.text)
            return None
        if results is not None:
            self.display.show_search_results(results)
        return results

    def add_product(self, product_id):
        try:
            self._require_open()
            item = self.cart_service.add_from_results(product_id)
        except PosError as e:
            self._notify(e.text)
            return None
        self.products.forget()
        self.display.show_search_results([])
        self.refresh()
        return item

    async def edit_quantity(self, product_id, raw_qty):
        try:
            self._require_open()
        except PosError as e:
            self._notify(e.text)
            return None
        warning = await self.cart_service.edit_quantity(product_id, raw_qty)
        if warning is not None:
            self._notify(warning.message, "warning")
        self.refresh()
        return warning

    def remove_item(self, product_id):
        try:
            self._require_open()
        except PosError as e:
            self._notify(e.text)
            return
        self.cart_service.remove_item(product_id)
        logger.info("product_removed", product_id=product_id)
        self.refresh()

    def choose_payment_method(self, method):
        try:
            self._require_open()
            self.cart.set_payment_method(method)
        except PosError as e:
            self._notify(e.text)
            return False
        self.refresh()
        return True

    # --- CHECKOUT ---
    async def finalize(self):
        if self.state is not SaleState.OPEN or not self.cart.can_finalize():
            return None

        # lock before going remote: one submission at a time
        self.state = SaleState.SUBMITTING
        self.display.set_finalize_enabled(False)
        self.display.set_entry_enabled(False)
        self.display.clear_confirmation()
        self.cart_service.forget_edits()
        payload = self.cart.to_sale_payload()

        try:
            result = await create_sale(self.client, payload)
        except SubmissionFailure as e:
            self._sale_failed(e.text)
            return None
        except Exception:
            logger.exception("sale_submission_crashed")
            self._sale_failed(errmsg.COMMUNICATION_ERROR)
            raise

        if not result.success:
            self._sale_failed(result.error or errmsg.COMMUNICATION_ERROR)
            return result

        self.state = SaleState.SUCCESS
        sale_number = format_sale_id(result.sale_id)
        self.last_sale_number = sale_number
        path = save_receipt(decode_receipt(result.receipt_base64), sale_number, self.settings.receipts_dir)
        self.display.show_confirmation(sale_number, path)
        logger.info("sale_completed", sale_id=result.sale_id, receipt=path)
        self._pending_reset = self._schedule(self.settings.confirmation_delay_ms / 1000.0, self._finish_sale)
        return result

    def _sale_failed(self, message):
        self.state = SaleState.FAILED
        logger.warning("sale_failed", error=message)
        self._notify(message)
        # the ticket stays as it was so the employee can retry
        self.state = SaleState.OPEN
        self.display.set_entry_enabled(True)
        self.refresh()

    def _finish_sale(self):
        self._pending_reset = None
        if self.state is SaleState.SUCCESS:
            self._to_idle()
