# tally_pos/domain/errors.py
"""
Errors raised by the cart, checkout and session services.

Every error is local and recoverable: the shell turns it into an
``HTTPException`` with ``status_code`` and the UI shows ``str(error)``.
"""


class CashierError(Exception):
    status_code = 400


#cart
class OutOfStock(CashierError):
    status_code = 409

    def __init__(self, product_name: str):
        super().__init__(f"{product_name} is out of stock")
        self.product_name = product_name


class InsufficientStock(CashierError):
    status_code = 409

    def __init__(self, product_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {product_name}: requested {requested}, available {available}"
        )
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidDiscount(CashierError):
    status_code = 422


class LineNotFound(CashierError):
    status_code = 404

    def __init__(self, product_id: str):
        super().__init__(f"Product {product_id} is not in the cart")
        self.product_id = product_id


class CartInvariantViolation(RuntimeError):
    """Derived totals went negative; a line invariant was broken."""


#checkout
class EmptyCart(CashierError):
    status_code = 409

    def __init__(self):
        super().__init__("Cart is empty")


class InvalidState(CashierError):
    status_code = 409


class InvalidTenderedAmount(CashierError):
    status_code = 422


class InvalidTaxAmount(CashierError):
    status_code = 422


class InsufficientPayment(CashierError):
    status_code = 422

    def __init__(self, tendered, due):
        super().__init__(f"Payment {tendered} is less than amount due {due}")
        self.tendered = tendered
        self.due = due


class AlreadySubmitting(CashierError):
    status_code = 409

    def __init__(self):
        super().__init__("Transaction is already being submitted")


#backend
class RemoteError(CashierError):
    status_code = 502


class RemoteRejected(RemoteError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.remote_status = status_code


class RemoteUnreachable(RemoteError):
    status_code = 503


#session
class AuthenticationFailed(CashierError):
    status_code = 401


class NotAuthenticated(CashierError):
    status_code = 401

    def __init__(self):
        super().__init__("Not logged in")


class Forbidden(CashierError):
    status_code = 403
