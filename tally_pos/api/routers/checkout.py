# tally_pos/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException

from tally_pos.api.deps import Terminal, get_terminal, http_error, require_cashier
from tally_pos.domain.errors import CashierError
from tally_pos.domain.schemas import (
    CheckoutOut,
    CustomerIn,
    Identity,
    PaymentIn,
    ReceiptOut,
    SubmitIn,
)
from tally_pos.services.receipt_service import format_receipt

router = APIRouter(prefix="/checkout", tags=["checkout"], dependencies=[Depends(require_cashier)])


@router.get("", response_model=CheckoutOut)
def get_checkout(terminal: Terminal = Depends(get_terminal)):
    return terminal.checkout.view()


@router.post("/customer-picker", response_model=CheckoutOut)
def open_customer_picker(terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.open_customer_picker()
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.delete("/customer-picker", response_model=CheckoutOut)
def close_customer_picker(terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.close_customer_picker()
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.put("/customer", response_model=CheckoutOut)
def choose_customer(payload: CustomerIn, terminal: Terminal = Depends(get_terminal)):
    customer = None
    if payload.customer_id:
        customer = terminal.customers.get(payload.customer_id)
        if not customer:
            raise HTTPException(status_code=404, detail="Customer not found")

    try:
        terminal.checkout.choose_customer(customer)
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.post("/begin", response_model=CheckoutOut)
def begin_checkout(terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.begin_checkout()
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.put("/payment", response_model=CheckoutOut)
def update_payment(payload: PaymentIn, terminal: Terminal = Depends(get_terminal)):
    checkout = terminal.checkout
    try:
        if payload.payment_method is not None:
            checkout.set_payment_method(payload.payment_method)
        if payload.tendered_amount is not None:
            checkout.set_tendered_amount(payload.tendered_amount)
        if payload.tax_amount is not None:
            checkout.set_tax_amount(payload.tax_amount)
        if payload.notes is not None:
            checkout.set_notes(payload.notes)
    except CashierError as e:
        raise http_error(e)
    return checkout.view()


@router.post("/submit", response_model=CheckoutOut)
def submit(payload: SubmitIn | None = None, terminal: Terminal = Depends(get_terminal)):
    tax_amount = payload.tax_amount if payload else None
    try:
        terminal.checkout.submit(tax_amount=tax_amount)
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.post("/cancel", response_model=CheckoutOut)
def cancel(terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.cancel()
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.post("/abort", response_model=CheckoutOut)
def abort(terminal: Terminal = Depends(get_terminal)):
    try:
        terminal.checkout.abort()
    except CashierError as e:
        raise http_error(e)
    return terminal.checkout.view()


@router.get("/receipt", response_model=ReceiptOut)
def receipt(
    identity: Identity = Depends(require_cashier),
    terminal: Terminal = Depends(get_terminal),
):
    result = terminal.checkout.result
    if not result:
        raise HTTPException(status_code=404, detail="No completed transaction to print")
    return ReceiptOut(
        transaction_code=result.transaction_code,
        text=format_receipt(result, cashier=identity.username),
    )
