# tally_pos/services/checkout_service.py
import threading
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, TypeVar

from tally_pos.domain.errors import (
    AlreadySubmitting,
    CashierError,
    EmptyCart,
    InsufficientPayment,
    InvalidState,
    InvalidTaxAmount,
    InvalidTenderedAmount,
)
from tally_pos.domain.schemas import (
    CheckoutOut,
    Customer,
    PaymentMethod,
    TransactionRequest,
    TransactionResult,
)
from tally_pos.services.cart_service import CartService
from tally_pos.services.transaction_client import TransactionClient
from tally_pos.utils.logging import get_logger
from tally_pos.utils.money import ZERO, to_decimal

logger = get_logger(__name__)

T = TypeVar("T")


class CheckoutState(str, Enum):
    BUILDING = "building"
    AWAITING_CUSTOMER = "awaiting_customer"
    AWAITING_PAYMENT = "awaiting_payment"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    ABORTED = "aborted"


FINISHED = (CheckoutState.COMPLETED, CheckoutState.ABORTED)
PAYING = (CheckoutState.AWAITING_PAYMENT, CheckoutState.SUBMITTING)


@dataclass
class CheckoutSession:
    cart_total: Decimal
    tendered_amount: Decimal
    tax_amount: Decimal = ZERO
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: str = ""

    @property
    def amount_due(self) -> Decimal:
        return self.cart_total + self.tax_amount


class CheckoutService:
    """
    Drives one sale from cart to confirmed transaction.

    building -> (awaiting_customer -> building) -> awaiting_payment
    -> submitting -> completed, or aborted from any state before submitting.
    A failed submission returns to awaiting_payment with the payment details
    kept, so the cashier can retry by hand. Nothing is retried automatically.

    Handlers run on a thread pool, so every state change and every cart
    command routed through ``edit_cart`` runs under one lock. The lock is
    released while the transaction is being sent.
    """

    def __init__(self, cart: CartService, transaction_client: TransactionClient):
        self.cart = cart
        self.transaction_client = transaction_client
        self._state = CheckoutState.BUILDING
        self._session: CheckoutSession | None = None
        self._result: TransactionResult | None = None
        self._last_error: str | None = None
        #reentrant: cart listeners may read the checkout while a command holds it
        self._lock = threading.RLock()

    # =====================================================
    # QUERY
    # =====================================================
    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def session(self) -> CheckoutSession | None:
        return self._session

    @property
    def result(self) -> TransactionResult | None:
        return self._result

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def compute_change(self) -> Decimal:
        if not self._session:
            raise InvalidState("No checkout in progress")
        return self._session.tendered_amount - self._session.amount_due

    @property
    def change_is_payable(self) -> bool:
        return self._session is not None and self.compute_change() >= ZERO

    def view(self) -> CheckoutOut:
        with self._lock:
            s = self._session
            return CheckoutOut(
                state=self._state.value,
                cart_total=s.cart_total if s else None,
                tax_amount=s.tax_amount if s else None,
                amount_due=s.amount_due if s else None,
                payment_method=s.payment_method if s else None,
                tendered_amount=s.tendered_amount if s else None,
                notes=s.notes if s else None,
                change=self.compute_change() if s else None,
                change_is_payable=self.change_is_payable,
                last_error=self._last_error,
                result=self._result,
            )

    # =====================================================
    # CART
    # =====================================================
    def edit_cart(self, command: Callable[[CartService], T]) -> T:
        """
        Run ``command`` against the cart unless payment is in progress.

        After a completed or aborted sale the next sale starts only once the
        command succeeded; a rejected command leaves the old result in place.
        """
        with self._lock:
            if self._state in PAYING:
                raise InvalidState("Cart cannot be changed during payment; cancel checkout first")

            outcome = command(self.cart)
            self._next_sale()
            return outcome

    # =====================================================
    # CUSTOMER
    # =====================================================
    def open_customer_picker(self) -> None:
        with self._lock:
            self._require(CheckoutState.BUILDING, *FINISHED)
            self._next_sale()
            self._transition(CheckoutState.AWAITING_CUSTOMER)

    def choose_customer(self, customer: Customer | None) -> None:
        with self._lock:
            self._require(CheckoutState.AWAITING_CUSTOMER, CheckoutState.BUILDING, *FINISHED)
            self.cart.set_customer(customer)
            self._next_sale()
            self._transition(CheckoutState.BUILDING)

    def close_customer_picker(self) -> None:
        with self._lock:
            self._require(CheckoutState.AWAITING_CUSTOMER)
            self._transition(CheckoutState.BUILDING)

    # =====================================================
    # PAYMENT
    # =====================================================
    def begin_checkout(self) -> CheckoutSession:
        with self._lock:
            self._require(CheckoutState.BUILDING)

            if self.cart.is_empty():
                raise EmptyCart()

            total = self.cart.compute_total()
            self._session = CheckoutSession(cart_total=total, tendered_amount=total)
            self._last_error = None
            self._transition(CheckoutState.AWAITING_PAYMENT)

        logger.info(f"Checkout started, amount due {total}")
        return self._session

    def set_payment_method(self, method: PaymentMethod) -> None:
        with self._lock:
            self._require(CheckoutState.AWAITING_PAYMENT)
            self._session.payment_method = PaymentMethod(method)

    def set_tendered_amount(self, amount) -> None:
        value = to_decimal(amount)
        if value < ZERO:
            raise InvalidTenderedAmount("Tendered amount cannot be negative")

        with self._lock:
            self._require(CheckoutState.AWAITING_PAYMENT)
            self._session.tendered_amount = value

    def set_tax_amount(self, amount) -> None:
        value = self._parse_tax(amount)
        with self._lock:
            self._require(CheckoutState.AWAITING_PAYMENT)
            self._session.tax_amount = value

        logger.info(f"Tax set to {value}, amount due {self._session.amount_due}")

    def set_notes(self, notes: str | None) -> None:
        with self._lock:
            self._require(CheckoutState.AWAITING_PAYMENT)
            self._session.notes = (notes or "").strip()

    def submit(self, tax_amount=None) -> TransactionResult:
        """
        Send the sale to the backend exactly once.

        ``tax_amount`` overrides the tax set during payment; it is checked
        together with the tendered amount before anything is stored.
        """
        with self._lock:
            if self._state == CheckoutState.SUBMITTING:
                raise AlreadySubmitting()
            self._require(CheckoutState.AWAITING_PAYMENT)

            session = self._session
            tax = session.tax_amount if tax_amount is None else self._parse_tax(tax_amount)
            due = session.cart_total + tax
            if session.tendered_amount < due:
                raise InsufficientPayment(session.tendered_amount, due)

            session.tax_amount = tax
            request = self._build_request(session)
            self._transition(CheckoutState.SUBMITTING)

        try:
            result = self.transaction_client.submit(request)
        except CashierError as e:
            self._fail(str(e))
            raise
        except Exception as e:
            self._fail(f"Failed to process transaction: {e}")
            raise

        with self._lock:
            self._result = result
            self._session = None
            self._last_error = None
            self._transition(CheckoutState.COMPLETED)
            #clear only after the backend confirmed the sale
            self.cart.clear()

        logger.info(f"Checkout completed: {result.transaction_code}")
        return result

    def cancel(self) -> None:
        with self._lock:
            self._require(
                CheckoutState.BUILDING,
                CheckoutState.AWAITING_CUSTOMER,
                CheckoutState.AWAITING_PAYMENT,
            )
            self._session = None
            self._last_error = None
            self._transition(CheckoutState.BUILDING)

    def abort(self) -> None:
        with self._lock:
            self._require(
                CheckoutState.BUILDING,
                CheckoutState.AWAITING_CUSTOMER,
                CheckoutState.AWAITING_PAYMENT,
            )
            self._session = None
            self._last_error = None
            self._transition(CheckoutState.ABORTED)
            self.cart.clear()

    def reset(self) -> None:
        """Drop everything for a new cashier; refused while a submission is in flight."""
        with self._lock:
            if self._state == CheckoutState.SUBMITTING:
                raise InvalidState("Cannot reset while a transaction is being submitted")
            self._session = None
            self._result = None
            self._last_error = None
            self._transition(CheckoutState.BUILDING)
            self.cart.clear()

    # =====================================================
    # INTERNAL
    # =====================================================
    @staticmethod
    def _parse_tax(amount) -> Decimal:
        value = to_decimal(amount)
        if value < ZERO:
            raise InvalidTaxAmount("Tax amount cannot be negative")
        return value

    def _next_sale(self) -> None:
        if self._state in FINISHED:
            self._result = None
            self._last_error = None
            self._transition(CheckoutState.BUILDING)

    def _build_request(self, session: CheckoutSession) -> TransactionRequest:
        customer = self.cart.customer
        return TransactionRequest(
            customer_id=customer.id if customer else None,
            items=self.cart.build_items(),
            discount_amount=self.cart.compute_discount_total(),
            tax_amount=session.tax_amount,
            payment_method=session.payment_method,
            payment_amount=session.tendered_amount,
            notes=session.notes or None,
        )

    def _fail(self, reason: str) -> None:
        with self._lock:
            self._last_error = reason
            self._transition(CheckoutState.AWAITING_PAYMENT)
        logger.warning(f"Submission failed, back to payment: {reason}")

    def _require(self, *states: CheckoutState) -> None:
        if self._state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidState(f"Not allowed in state {self._state.value} (expected {allowed})")

    def _transition(self, new_state: CheckoutState) -> None:
        if new_state != self._state:
            logger.info(f"Checkout {self._state.value} -> {new_state.value}")
        self._state = new_state
