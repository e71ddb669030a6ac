from decimal import Decimal

from errors import DuplicateItem, InvalidPaymentMethod, OutOfStock
from schemas import SaleLine, SalePayload

PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER")


def parse_quantity(raw):
    """Turn whatever the quantity box holds into a whole number, 1 when it can't."""
    if isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        return raw
    if isinstance(raw, (float, Decimal)):
        try:
            whole = int(raw)
        except (OverflowError, ValueError):
            # inf, nan
            return 1
        return whole if raw == whole else 1
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 1


def format_sale_id(sale_id):
    # at least four digits on the ticket
    return str(sale_id).zfill(4)


def _decimal(value):
    if value is None:
        return Decimal(0)
    return value if isinstance(value, Decimal) else Decimal(str(value))


#line item model
class LineItem:
    def __init__(self, product_id, name, unit_price, vat_rate, quantity=1, available=None):
        self.product_id = product_id
        self.name = name or ""
        self.unit_price = _decimal(unit_price)
        self.vat_rate = _decimal(vat_rate)
        self.quantity = quantity
        self.available = available

    @classmethod
    def from_snapshot(cls, snapshot, default_vat_rate=0):
        vat_rate = snapshot.vat_rate if snapshot.vat_rate is not None else default_vat_rate
        return cls(snapshot.id, snapshot.name, snapshot.price, vat_rate,
                   quantity=1, available=snapshot.available_quantity)

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    @property
    def vat(self):
        return self.subtotal * self.vat_rate / 100

    @property
    def total(self):
        return self.subtotal + self.vat

    def __repr__(self):
        return f"LineItem({self.product_id!r}, {self.name!r}, qty={self.quantity})"


class Totals:
    def __init__(self, subtotal, vat):
        self.subtotal = subtotal
        self.vat = vat
        self.total = subtotal + vat

    def as_dict(self):
        return {'subtotal': self.subtotal, 'vat': self.vat, 'total': self.total}

    def __eq__(self, other):
        if not isinstance(other, Totals):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self):
        return f"Totals(subtotal={self.subtotal}, vat={self.vat}, total={self.total})"


class StockClamped:
    """Warning: the requested quantity was cut down to what is in stock."""

    def __init__(self, product_id, name, quantity, available):
        self.product_id = product_id
        self.name = name
        self.quantity = quantity
        self.available = available

    @property
    def message(self):
        return f'Not enough stock for "{self.name}". Available: {self.available}'


#cart model
class Cart:
    def __init__(self):
        self.items = []
        self.payment_method = None

    def clear(self):
        self.items = []
        self.payment_method = None

    def get(self, product_id):
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def __contains__(self, product_id):
        return self.get(product_id) is not None

    def __len__(self):
        return len(self.items)

    def add_item(self, snapshot, default_vat_rate=0):
        if snapshot.id in self:
            raise DuplicateItem()
        if (snapshot.available_quantity or 0) < 1:
            raise OutOfStock()
        item = LineItem.from_snapshot(snapshot, default_vat_rate)
        self.items.append(item)
        return item

    def set_quantity(self, product_id, requested, current_available=None):
        """Commit a quantity for an item already on the ticket.

        The value is kept between 1 and ``current_available``. Returns a
        StockClamped warning when stock cut the request down, otherwise None.
        ``current_available=None`` means stock is unknown and the request is
        applied as is.
        """
        item = self.get(product_id)
        if item is None:
            return None
        qty = max(1, parse_quantity(requested))
        warning = None
        if current_available is not None:
            item.available = current_available
            if qty > current_available:
                qty = max(1, current_available)
                warning = StockClamped(product_id, item.name, qty, current_available)
        item.quantity = qty
        return warning

    def remove_item(self, product_id):
        self.items = [item for item in self.items if item.product_id != product_id]

    def set_payment_method(self, method):
        key = str(method or "").strip().upper()
        if key not in PAYMENT_METHODS:
            raise InvalidPaymentMethod()
        self.payment_method = key

    def compute_totals(self):
        subtotal = sum((item.subtotal for item in self.items), Decimal(0))
        vat = sum((item.vat for item in self.items), Decimal(0))
        return Totals(subtotal, vat)

    def can_finalize(self):
        return len(self.items) > 0 and self.payment_method is not None

    def to_sale_payload(self):
        return SalePayload(
            line_items=[SaleLine(product_id=i.product_id, quantity=i.quantity) for i in self.items],
            payment_method=self.payment_method,
        )
