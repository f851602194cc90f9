"""Tests for the checkout state machine."""

import threading
from decimal import Decimal

import pytest

from conftest import make_product, make_result
from tally_pos.domain.errors import (
    AlreadySubmitting,
    EmptyCart,
    InsufficientPayment,
    InvalidState,
    InvalidTaxAmount,
    InvalidTenderedAmount,
    OutOfStock,
    RemoteRejected,
    RemoteUnreachable,
)
from tally_pos.domain.schemas import Customer, PaymentMethod
from tally_pos.services.cart_service import CartService
from tally_pos.services.checkout_service import CheckoutService, CheckoutState


class FakeTransactionClient:
    def __init__(self, result=None, error=None):
        self.result = result or make_result()
        self.error = error
        self.requests = []

    def submit(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.result


class BlockingTransactionClient(FakeTransactionClient):
    """Holds the submission open until the test releases it."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def submit(self, request):
        self.requests.append(request)
        self.entered.set()
        self.release.wait(timeout=5)
        return self.result


@pytest.fixture
def cart():
    cart = CartService()
    product_a = make_product("A", price="10000", stock=5)
    cart.add_line(product_a)
    cart.add_line(product_a)
    cart.add_line(make_product("B", price="25000", stock=2))
    cart.set_line_discount("A", 5000)
    return cart


@pytest.fixture
def client():
    return FakeTransactionClient()


@pytest.fixture
def checkout(cart, client):
    return CheckoutService(cart, client)


class TestBeginCheckout:
    def test_snapshots_amount_due_and_defaults_tendered(self, checkout):
        session = checkout.begin_checkout()

        assert checkout.state == CheckoutState.AWAITING_PAYMENT
        assert session.amount_due == Decimal("40000")
        assert session.tendered_amount == Decimal("40000")
        assert session.payment_method == PaymentMethod.CASH
        assert checkout.compute_change() == Decimal("0")

    def test_empty_cart_stays_building(self, client):
        checkout = CheckoutService(CartService(), client)

        with pytest.raises(EmptyCart):
            checkout.begin_checkout()

        assert checkout.state == CheckoutState.BUILDING
        assert checkout.session is None

    def test_only_from_building(self, checkout):
        checkout.begin_checkout()

        with pytest.raises(InvalidState):
            checkout.begin_checkout()


class TestPayment:
    def test_change_from_tendered_amount(self, checkout):
        checkout.begin_checkout()
        checkout.set_tendered_amount(50000)

        assert checkout.compute_change() == Decimal("10000")
        assert checkout.change_is_payable

    def test_short_payment_is_not_payable(self, checkout):
        checkout.begin_checkout()
        checkout.set_tendered_amount(30000)

        assert checkout.compute_change() == Decimal("-10000")
        assert not checkout.change_is_payable

    def test_negative_tendered_is_rejected(self, checkout):
        checkout.begin_checkout()

        with pytest.raises(InvalidTenderedAmount):
            checkout.set_tendered_amount(-1)

    def test_setters_outside_payment_fail(self, checkout):
        with pytest.raises(InvalidState):
            checkout.set_payment_method(PaymentMethod.QRIS)
        with pytest.raises(InvalidState):
            checkout.set_tendered_amount(1000)
        with pytest.raises(InvalidState):
            checkout.set_notes("hi")

    def test_change_without_checkout_fails(self, checkout):
        with pytest.raises(InvalidState):
            checkout.compute_change()


class TestSubmit:
    def test_success_completes_and_clears_cart(self, checkout, cart, client):
        checkout.begin_checkout()
        checkout.set_tendered_amount(50000)

        result = checkout.submit()

        assert result.transaction_code == "TRX-20240115-0001"
        assert checkout.state == CheckoutState.COMPLETED
        assert checkout.result is result
        assert cart.is_empty()
        assert len(client.requests) == 1

    def test_request_payload(self, checkout, cart, client):
        cart.set_customer(Customer(id="c-9", name="Budi"))
        checkout.begin_checkout()
        checkout.set_payment_method(PaymentMethod.QRIS)
        checkout.set_tendered_amount(40000)
        checkout.set_notes("  bungkus terpisah ")

        checkout.submit()

        request = client.requests[0]
        assert request.customer_id == "c-9"
        assert [(i.product_id, i.quantity, i.discount_amount) for i in request.items] == [
            ("A", 2, Decimal("5000")),
            ("B", 1, Decimal("0")),
        ]
        assert request.discount_amount == Decimal("5000")
        assert request.tax_amount == Decimal("0")
        assert request.payment_method == PaymentMethod.QRIS
        assert request.payment_amount == Decimal("40000")
        assert request.notes == "bungkus terpisah"

    def test_walk_in_sends_no_customer_and_no_notes(self, checkout, client):
        checkout.begin_checkout()
        checkout.submit()

        assert client.requests[0].customer_id is None
        assert client.requests[0].notes is None

    def test_insufficient_payment(self, checkout, client):
        checkout.begin_checkout()
        checkout.set_tendered_amount(39999)

        with pytest.raises(InsufficientPayment):
            checkout.submit()

        assert checkout.state == CheckoutState.AWAITING_PAYMENT
        assert client.requests == []

    def test_tax_is_added_to_amount_due(self, checkout):
        checkout.begin_checkout()

        with pytest.raises(InsufficientPayment):
            checkout.submit(tax_amount=4000)

    def test_negative_tax_is_rejected(self, checkout, client):
        checkout.begin_checkout()
        checkout.set_tendered_amount(0)

        with pytest.raises(InvalidTaxAmount):
            checkout.submit(tax_amount=-40000)
        with pytest.raises(InvalidTaxAmount):
            checkout.set_tax_amount(-1)

        assert checkout.state == CheckoutState.AWAITING_PAYMENT
        assert checkout.session.tax_amount == Decimal("0")
        assert client.requests == []

    def test_tax_set_during_payment_counts_everywhere(self, checkout, client):
        checkout.begin_checkout()
        checkout.set_tax_amount(4000)

        assert checkout.session.amount_due == Decimal("44000")
        assert checkout.compute_change() == Decimal("-4000")
        assert not checkout.change_is_payable
        assert checkout.view().amount_due == Decimal("44000")
        with pytest.raises(InsufficientPayment):
            checkout.submit()

        checkout.set_tendered_amount(50000)
        assert checkout.compute_change() == Decimal("6000")
        assert checkout.change_is_payable
        checkout.submit()

        assert client.requests[0].tax_amount == Decimal("4000")
        assert client.requests[0].payment_amount == Decimal("50000")

    def test_failing_cart_listener_does_not_break_completion(self, checkout, cart):
        def broken(snapshot):
            raise RuntimeError("display offline")

        cart.subscribe(broken)
        checkout.begin_checkout()

        checkout.submit()

        assert checkout.state == CheckoutState.COMPLETED
        assert cart.is_empty()
        checkout.reset()
        assert checkout.state == CheckoutState.BUILDING

    def test_submit_outside_payment_fails(self, checkout):
        with pytest.raises(InvalidState):
            checkout.submit()

    @pytest.mark.parametrize(
        "error",
        [RemoteRejected("Stok Teh Botol tidak mencukupi", 400), RemoteUnreachable("offline")],
    )
    def test_failure_returns_to_payment_and_keeps_cart(self, checkout, cart, client, error):
        client.error = error
        checkout.begin_checkout()
        checkout.set_payment_method(PaymentMethod.DEBIT)
        checkout.set_tendered_amount(45000)

        with pytest.raises(type(error)):
            checkout.submit()

        assert checkout.state == CheckoutState.AWAITING_PAYMENT
        assert checkout.last_error == str(error)
        assert checkout.session.payment_method == PaymentMethod.DEBIT
        assert checkout.session.tendered_amount == Decimal("45000")
        assert cart.compute_total() == Decimal("40000")
        assert len(client.requests) == 1

    def test_manual_retry_after_failure(self, checkout, client):
        client.error = RemoteUnreachable("offline")
        checkout.begin_checkout()
        with pytest.raises(RemoteUnreachable):
            checkout.submit()

        client.error = None
        checkout.submit()

        assert checkout.state == CheckoutState.COMPLETED
        assert checkout.last_error is None
        assert len(client.requests) == 2

    def test_unexpected_error_also_returns_to_payment(self, checkout, client):
        client.error = ValueError("bad payload")
        checkout.begin_checkout()

        with pytest.raises(ValueError):
            checkout.submit()

        assert checkout.state == CheckoutState.AWAITING_PAYMENT

    def test_second_submit_while_in_flight_is_rejected(self, cart):
        client = BlockingTransactionClient()
        checkout = CheckoutService(cart, client)
        checkout.begin_checkout()

        worker = threading.Thread(target=checkout.submit)
        worker.start()
        assert client.entered.wait(timeout=5)

        assert checkout.state == CheckoutState.SUBMITTING
        with pytest.raises(AlreadySubmitting):
            checkout.submit()

        client.release.set()
        worker.join(timeout=5)

        assert len(client.requests) == 1
        assert checkout.state == CheckoutState.COMPLETED


class TestCancelAbortAndNextSale:
    def test_cancel_keeps_cart(self, checkout, cart):
        checkout.begin_checkout()
        checkout.cancel()

        assert checkout.state == CheckoutState.BUILDING
        assert checkout.session is None
        assert cart.compute_total() == Decimal("40000")

    def test_abort_clears_cart(self, checkout, cart):
        checkout.begin_checkout()
        checkout.abort()

        assert checkout.state == CheckoutState.ABORTED
        assert cart.is_empty()

    def test_cancel_after_completion_is_invalid(self, checkout):
        checkout.begin_checkout()
        checkout.submit()

        with pytest.raises(InvalidState):
            checkout.cancel()

    def test_cart_locked_during_payment(self, checkout, cart):
        checkout.begin_checkout()

        with pytest.raises(InvalidState):
            checkout.edit_cart(lambda c: c.add_line(make_product("C", stock=3)))

        assert cart.get_line("C") is None

    def test_next_sale_after_completion(self, checkout, cart):
        checkout.begin_checkout()
        checkout.submit()

        checkout.edit_cart(lambda c: c.add_line(make_product("C", stock=3)))

        assert checkout.state == CheckoutState.BUILDING
        assert checkout.result is None
        assert cart.get_line("C").quantity == 1

    def test_reset_clears_everything(self, checkout, cart):
        checkout.begin_checkout()
        checkout.reset()

        assert checkout.state == CheckoutState.BUILDING
        assert cart.is_empty()


class TestCustomerPicker:
    def test_choose_customer_returns_to_building(self, checkout, cart):
        checkout.open_customer_picker()
        assert checkout.state == CheckoutState.AWAITING_CUSTOMER

        checkout.choose_customer(Customer(id="c-1", name="Budi"))

        assert checkout.state == CheckoutState.BUILDING
        assert cart.customer.id == "c-1"

    def test_walk_in_clears_customer(self, checkout, cart):
        cart.set_customer(Customer(id="c-1", name="Budi"))
        checkout.open_customer_picker()

        checkout.choose_customer(None)

        assert cart.customer is None

    def test_close_without_choosing(self, checkout, cart):
        checkout.open_customer_picker()
        checkout.close_customer_picker()

        assert checkout.state == CheckoutState.BUILDING
        assert cart.customer is None

    def test_cannot_begin_checkout_while_picking(self, checkout):
        checkout.open_customer_picker()

        with pytest.raises(InvalidState):
            checkout.begin_checkout()


class TestCartEditsDuringCheckout:
    def test_rejected_command_after_sale_keeps_receipt(self, checkout):
        checkout.begin_checkout()
        result = checkout.submit()

        with pytest.raises(OutOfStock):
            checkout.edit_cart(lambda c: c.add_line(make_product("Z", stock=0)))

        assert checkout.state == CheckoutState.COMPLETED
        assert checkout.result is result

    def test_begin_checkout_waits_for_running_cart_command(self, checkout, cart):
        entered = threading.Event()
        release = threading.Event()

        def slow_add(c):
            entered.set()
            release.wait(timeout=5)
            return c.add_line(make_product("C", price="1500", stock=3))

        editor = threading.Thread(target=checkout.edit_cart, args=(slow_add,))
        editor.start()
        assert entered.wait(timeout=5)

        starter = threading.Thread(target=checkout.begin_checkout)
        starter.start()
        starter.join(timeout=0.2)
        assert checkout.state == CheckoutState.BUILDING

        release.set()
        editor.join(timeout=5)
        starter.join(timeout=5)

        assert checkout.state == CheckoutState.AWAITING_PAYMENT
        assert checkout.session.amount_due == Decimal("41500")
        assert [i.product_id for i in cart.build_items()] == ["A", "B", "C"]
