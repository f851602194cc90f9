# tally_pos/api/deps.py
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request

from tally_pos.domain.errors import CashierError
from tally_pos.domain.schemas import Identity
from tally_pos.services.api_client import ApiClient
from tally_pos.services.auth_client import AuthClient
from tally_pos.services.cart_service import CartService
from tally_pos.services.catalog_search import CatalogSearch
from tally_pos.services.checkout_service import CheckoutService
from tally_pos.services.customer_client import CustomerClient
from tally_pos.services.history_service import HistoryService
from tally_pos.services.product_client import ProductClient
from tally_pos.services.session_service import Session, TokenStore
from tally_pos.services.transaction_client import TransactionClient

CASHIER_ROLES = ("kasir", "admin")


@dataclass
class Terminal:
    """Everything one cashier session owns; lives on ``app.state.terminal``."""

    session: Session
    products: ProductClient
    customers: CustomerClient
    transactions: TransactionClient
    cart: CartService
    checkout: CheckoutService
    search: CatalogSearch
    history: HistoryService


def build_terminal(api: ApiClient | None = None, store: TokenStore | None = None) -> Terminal:
    api = api or ApiClient()
    session = Session(store or TokenStore(), AuthClient(api))

    #api client reads the token from the session and expires it on 401
    api.token_provider = lambda: session.token
    api.on_unauthorized = session.expire

    products = ProductClient(api)
    transactions = TransactionClient(api)
    cart = CartService()

    return Terminal(
        session=session,
        products=products,
        customers=CustomerClient(api),
        transactions=transactions,
        cart=cart,
        checkout=CheckoutService(cart, transactions),
        search=CatalogSearch(products),
        history=HistoryService(transactions),
    )


def get_terminal(request: Request) -> Terminal:
    return request.app.state.terminal


def require_cashier(terminal: Terminal = Depends(get_terminal)) -> Identity:
    try:
        return terminal.session.require_role(*CASHIER_ROLES)
    except CashierError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


def http_error(e: CashierError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))
