# tally_pos/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

#backend expects JSON numbers for money, not strings
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class PaymentMethod(str, Enum):
    CASH = "cash"
    DEBIT = "debit"
    CREDIT = "credit"
    QRIS = "qris"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class BackendModel(BaseModel):
    """Backend payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =====================================================
# BACKEND REFERENCE DATA
# =====================================================
class CategoryRef(BackendModel):
    id: str
    name: str


class Product(BackendModel):
    """Product as loaded from the catalog; never mutated locally."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    sku: str = ""
    barcode: str = ""
    unit: str = "pcs"
    selling_price: Decimal
    purchase_price: Decimal | None = None
    stock: int
    min_stock: int = 0
    is_active: bool = True
    category_id: str | None = None
    description: str | None = None
    image_url: str | None = None
    category: CategoryRef | None = None


class Customer(BackendModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    phone: str = ""
    email: str | None = None
    address: str | None = None


# =====================================================
# TRANSACTION SUBMISSION
# =====================================================
class TransactionItemIn(BackendModel):
    product_id: str
    quantity: int = Field(..., gt=0)
    discount_amount: Money = Decimal("0")


class TransactionRequest(BackendModel):
    customer_id: str | None = None
    items: List[TransactionItemIn]
    discount_percentage: Money = Decimal("0")
    discount_amount: Money = Decimal("0")
    tax_amount: Money = Decimal("0")
    payment_method: PaymentMethod
    payment_amount: Money
    notes: str | None = None


class UserRef(BackendModel):
    id: str
    username: str
    full_name: str | None = None


class CustomerRef(BackendModel):
    id: str
    name: str
    phone: str | None = None
    email: str | None = None


class TransactionDetail(BackendModel):
    id: str | None = None
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    discount_amount: Decimal = Decimal("0")
    subtotal: Decimal


class TransactionResult(BackendModel):
    """Transaction as confirmed by the backend. Read-only."""

    id: str
    transaction_code: str
    transaction_date: datetime
    user_id: str | None = None
    customer_id: str | None = None
    subtotal: Decimal
    discount_amount: Decimal = Decimal("0")
    discount_percentage: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal
    payment_method: PaymentMethod
    payment_amount: Decimal
    change_amount: Decimal
    notes: str | None = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    user: UserRef | None = None
    customer: CustomerRef | None = None
    details: List[TransactionDetail] = []


# =====================================================
# SESSION
# =====================================================
class Identity(BackendModel):
    """Claims of the decoded access token."""

    sub: str
    username: str
    role: str
    avatar_url: str | None = None
    iat: int | None = None
    exp: int | None = None


class LoginIn(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginOut(BaseModel):
    identity: Identity
    redirect_to: str


# =====================================================
# TERMINAL SHELL (request / response)
# =====================================================
class CartLineOut(BaseModel):
    product_id: str
    name: str
    unit: str
    unit_price: Decimal
    quantity: int
    stock: int
    discount: Decimal
    subtotal: Decimal


class CartOut(BaseModel):
    """Immutable cart view handed to the UI."""

    model_config = ConfigDict(frozen=True)

    lines: List[CartLineOut]
    customer: Customer | None = None
    item_count: int
    subtotal: Decimal
    discount_total: Decimal
    total: Decimal


class AddItemIn(BaseModel):
    product_id: str = Field(..., min_length=1)


class ScanIn(BaseModel):
    query: str = Field(..., min_length=1, description="Barcode or free-text term")


class QuantityIn(BaseModel):
    quantity: int


class DiscountIn(BaseModel):
    discount: Decimal


class CustomerIn(BaseModel):
    customer_id: str | None = Field(None, description="None means walk-in customer")


class PaymentIn(BaseModel):
    payment_method: PaymentMethod | None = None
    tendered_amount: Decimal | None = None
    tax_amount: Decimal | None = Field(None, ge=0)
    notes: str | None = None


class SubmitIn(BaseModel):
    tax_amount: Decimal | None = Field(None, ge=0, description="None keeps the tax set during payment")


class CheckoutOut(BaseModel):
    state: str
    cart_total: Decimal | None = None
    tax_amount: Decimal | None = None
    amount_due: Decimal | None = None
    payment_method: PaymentMethod | None = None
    tendered_amount: Decimal | None = None
    notes: str | None = None
    change: Decimal | None = None
    change_is_payable: bool = False
    last_error: str | None = None
    result: TransactionResult | None = None


class ScanOut(BaseModel):
    added: bool
    candidates: List[Product] = []
    cart: CartOut


class SearchIn(BaseModel):
    term: str = ""


class SearchResultsOut(BaseModel):
    term: str | None = None
    pending: bool
    products: List[Product]


class ReceiptOut(BaseModel):
    transaction_code: str
    text: str


class HistorySummary(BaseModel):
    transaction_count: int
    completed_count: int
    total_sales: Decimal


class HistoryOut(BaseModel):
    start: datetime | None = None
    end: datetime | None = None
    summary: HistorySummary
    transactions: List[TransactionResult]
