# tally_pos/services/cart_service.py
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Dict, List

from tally_pos.domain.errors import (
    CartInvariantViolation,
    InsufficientStock,
    InvalidDiscount,
    LineNotFound,
    OutOfStock,
)
from tally_pos.domain.schemas import (
    CartLineOut,
    CartOut,
    Customer,
    Product,
    TransactionItemIn,
)
from tally_pos.utils.logging import get_logger
from tally_pos.utils.money import ZERO, to_decimal

logger = get_logger(__name__)

CartListener = Callable[[CartOut], None]


@dataclass(frozen=True)
class CartLine:
    product: Product
    quantity: int
    discount: Decimal = ZERO

    @property
    def line_value(self) -> Decimal:
        return self.product.selling_price * self.quantity

    @property
    def subtotal(self) -> Decimal:
        return self.line_value - self.discount


class CartService:
    """
    In-memory cart for one cashier session.

    Commands (add_line, set_quantity, set_line_discount, remove_line, clear,
    set_customer) either apply fully or raise and leave the cart untouched.
    Queries (compute_*, snapshot) are pure and recomputed on every call.
    """

    def __init__(self):
        #dict keeps insertion order, so lines stay in the order they were scanned
        self._lines: Dict[str, CartLine] = {}
        self._customer: Customer | None = None
        self._listeners: List[CartListener] = []

    # =====================================================
    # QUERY
    # =====================================================
    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    @property
    def customer(self) -> Customer | None:
        return self._customer

    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, product_id: str) -> CartLine | None:
        return self._lines.get(product_id)

    def compute_subtotal(self) -> Decimal:
        return sum((line.line_value for line in self._lines.values()), ZERO)

    def compute_discount_total(self) -> Decimal:
        return sum((line.discount for line in self._lines.values()), ZERO)

    def compute_total(self) -> Decimal:
        total = self.compute_subtotal() - self.compute_discount_total()
        if total < ZERO:
            raise CartInvariantViolation(f"Cart total is negative: {total}")
        return total

    def snapshot(self) -> CartOut:
        return CartOut(
            lines=[
                CartLineOut(
                    product_id=line.product.id,
                    name=line.product.name,
                    unit=line.product.unit,
                    unit_price=line.product.selling_price,
                    quantity=line.quantity,
                    stock=line.product.stock,
                    discount=line.discount,
                    subtotal=line.subtotal,
                )
                for line in self._lines.values()
            ],
            customer=self._customer,
            item_count=sum(line.quantity for line in self._lines.values()),
            subtotal=self.compute_subtotal(),
            discount_total=self.compute_discount_total(),
            total=self.compute_total(),
        )

    def build_items(self) -> List[TransactionItemIn]:
        return [
            TransactionItemIn(
                product_id=line.product.id,
                quantity=line.quantity,
                discount_amount=line.discount,
            )
            for line in self._lines.values()
        ]

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a listener for post-mutation snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_line(self, product: Product) -> CartLine:
        existing = self._lines.get(product.id)

        if existing:
            logger.info(
                f"Product {product.id} already in cart, quantity "
                f"{existing.quantity} -> {existing.quantity + 1}"
            )
            return self.set_quantity(product.id, existing.quantity + 1)

        if product.stock <= 0:
            raise OutOfStock(product.name)

        line = CartLine(product=product, quantity=1)
        self._lines[product.id] = line

        logger.info(f"Added product {product.id} ({product.name}) to cart")
        self._emit()
        return line

    def set_quantity(self, product_id: str, quantity: int) -> CartLine | None:
        if quantity <= 0:
            self.remove_line(product_id)
            return None

        line = self._lines.get(product_id)
        if not line:
            raise LineNotFound(product_id)

        if quantity > line.product.stock:
            raise InsufficientStock(line.product.name, quantity, line.product.stock)

        updated = replace(line, quantity=quantity)
        if line.discount > updated.line_value:
            raise InvalidDiscount(
                f"Discount {line.discount} would exceed line value {updated.line_value}; "
                f"lower the discount first"
            )

        self._lines[product_id] = updated

        logger.info(f"Quantity of {product_id} set to {quantity}")
        self._emit()
        return updated

    def set_line_discount(self, product_id: str, discount) -> CartLine:
        line = self._lines.get(product_id)
        if not line:
            raise LineNotFound(product_id)

        amount = to_decimal(discount)
        if amount < ZERO:
            raise InvalidDiscount("Discount cannot be negative")

        if amount > line.line_value:
            raise InvalidDiscount(
                f"Discount {amount} exceeds line value {line.line_value}"
            )

        updated = replace(line, discount=amount)
        self._lines[product_id] = updated

        logger.info(f"Discount of {product_id} set to {amount}")
        self._emit()
        return updated

    def remove_line(self, product_id: str) -> None:
        if self._lines.pop(product_id, None) is None:
            return

        logger.info(f"Removed product {product_id} from cart")
        self._emit()

    def clear(self) -> None:
        if not self._lines and self._customer is None:
            return

        self._lines.clear()
        self._customer = None

        logger.info("Cart cleared")
        self._emit()

    def set_customer(self, customer: Customer | None) -> None:
        self._customer = customer

        logger.info(f"Customer set to {customer.id if customer else 'walk-in'}")
        self._emit()

    def _emit(self) -> None:
        if not self._listeners:
            return

        #the mutation is already applied; a failing listener must not undo it
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception(f"Cart listener {listener!r} failed")
