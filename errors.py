"""Errors raised by the till and the messages shown for them."""


class errmsg:
    DUPLICATE_ITEM = "The product is already on the ticket"
    OUT_OF_STOCK = "Not enough stock for this product"
    INVALID_PAYMENT_METHOD = "Unknown payment method"
    SALE_NOT_OPEN = "Start a sale first"
    LOOKUP_FAILED = "Error searching products"
    NOT_IN_RESULTS = "Product not found in search results"
    COMMUNICATION_ERROR = "Communication error"
    UNEXPECTED_ERROR = "Unexpected error"


class PosError(Exception):
    """Base class for everything the till reports to the employee."""

    message = errmsg.UNEXPECTED_ERROR

    def __init__(self, message=None):
        super().__init__(message or self.message)

    @property
    def text(self):
        return self.args[0]


class DuplicateItem(PosError):
    message = errmsg.DUPLICATE_ITEM


class OutOfStock(PosError):
    message = errmsg.OUT_OF_STOCK


class InvalidPaymentMethod(PosError):
    message = errmsg.INVALID_PAYMENT_METHOD


class SaleNotOpen(PosError):
    message = errmsg.SALE_NOT_OPEN


class LookupFailure(PosError):
    """Search or stock validation could not reach the backend."""

    message = errmsg.LOOKUP_FAILED


class SubmissionFailure(PosError):
    """Backend refused the sale or the request never completed."""

    message = errmsg.COMMUNICATION_ERROR
