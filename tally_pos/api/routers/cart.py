# tally_pos/api/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException

from tally_pos.api.deps import Terminal, get_terminal, http_error, require_cashier
from tally_pos.domain.errors import CashierError
from tally_pos.domain.schemas import (
    AddItemIn,
    CartOut,
    DiscountIn,
    QuantityIn,
    ScanIn,
    ScanOut,
)

router = APIRouter(prefix="/cart", tags=["cart"], dependencies=[Depends(require_cashier)])


@router.get("", response_model=CartOut)
def get_cart(terminal: Terminal = Depends(get_terminal)):
    return terminal.cart.snapshot()


@router.post("/items", response_model=CartOut)
def add_item(payload: AddItemIn, terminal: Terminal = Depends(get_terminal)):
    product = terminal.products.get(payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    try:
        terminal.checkout.edit_cart(lambda cart: cart.add_line(product))
    except CashierError as e:
        raise http_error(e)
    return terminal.cart.snapshot()


@router.post("/scan", response_model=ScanOut)
def scan(payload: ScanIn, terminal: Terminal = Depends(get_terminal)):
    """Barcode scanner / search box enter: add on a unique match, otherwise return candidates."""
    outcome = terminal.products.lookup(payload.query)

    if not outcome.match and not outcome.candidates:
        raise HTTPException(status_code=404, detail="Product not found")

    if not outcome.match:
        return ScanOut(added=False, candidates=outcome.candidates, cart=terminal.cart.snapshot())

    try:
        terminal.checkout.edit_cart(lambda cart: cart.add_line(outcome.match))
    except CashierError as e:
        raise http_error(e)
    return ScanOut(added=True, cart=terminal.cart.snapshot())


@router.put("/items/{product_id}/quantity", response_model=CartOut)
def set_quantity(product_id: str, payload: QuantityIn, terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.edit_cart(lambda cart: cart.set_quantity(product_id, payload.quantity))
    except CashierError as e:
        raise http_error(e)
    return terminal.cart.snapshot()


@router.put("/items/{product_id}/discount", response_model=CartOut)
def set_discount(product_id: str, payload: DiscountIn, terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.edit_cart(lambda cart: cart.set_line_discount(product_id, payload.discount))
    except CashierError as e:
        raise http_error(e)
    return terminal.cart.snapshot()


@router.delete("/items/{product_id}", response_model=CartOut)
def remove_item(product_id: str, terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.edit_cart(lambda cart: cart.remove_line(product_id))
    except CashierError as e:
        raise http_error(e)
    return terminal.cart.snapshot()


@router.delete("", response_model=CartOut)
def clear_cart(terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.edit_cart(lambda cart: cart.clear())
    except CashierError as e:
        raise http_error(e)
    return terminal.cart.snapshot()
