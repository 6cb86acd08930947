import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlmodel import Session, select

from bookstore.exceptions import (
    EmptyCart,
    NoDefaultAddress,
    NotFound,
    PartialCheckoutFailure,
    TrackingNumberExhausted,
)
from bookstore.models import Address, Book, CartItem, Notification, Order, Payment, Shipping, User
from bookstore.notifications import realtime
from bookstore.services import cart_service, checkout_service, order_service, shipping_service


@pytest.fixture
def ready_cart(session, user, book, make_address):
    """Two copies of a 100.00 book, checked, and a default address 0 km away."""
    make_address(user.id)
    cart_service.add_item(session, user.id, book.id, 2)
    cart_service.set_checked(session, user.id, book.id, True)
    return book


def _raise_exhausted(*args, **kwargs):
    raise TrackingNumberExhausted("Could not generate a unique tracking number after 5 attempts")


class TestCheckout:

    def test_plain_checkout_totals(self, session, user, ready_cart):
        order = checkout_service.checkout(session, user.id, "cod")

        assert order.subtotal == 200
        assert order.discount_amount == 0
        assert order.shipping_cost == 15
        assert order.total_payment == 215
        assert order.status == "pending"
        assert order.discount_id is None

    def test_order_links_shipping_and_payment(self, session, user, ready_cart):
        order = checkout_service.checkout(session, user.id, "card")

        shipping = session.get(Shipping, order.shipping_id)
        payment = session.get(Payment, order.payment_id)

        assert shipping.order_id == order.id
        assert shipping.status == "pending"
        assert shipping.cost == 15
        assert shipping.address["city"] == "Hanoi"
        assert len(shipping.tracking_number) == 8

        assert payment.order_id == order.id
        assert payment.amount == 215
        assert payment.method == "card"
        assert payment.is_paid is False

    def test_items_are_snapshotted(self, session, user, ready_cart):
        order = checkout_service.checkout(session, user.id, "cod")

        [item] = order.items
        assert item.book_id == ready_cart.id
        assert item.book_title == "Dune"
        assert item.quantity == 2
        assert item.line_total == 200

    def test_discount_applied_and_consumed(self, session, user, ready_cart, make_discount):
        discount = make_discount()

        order = checkout_service.checkout(session, user.id, "cod", discount_code="SAVE10")

        assert order.discount_amount == 20
        assert order.total_payment == 195
        assert order.discount_id == discount.id
        session.refresh(discount)
        assert discount.quantity == 4

    def test_discount_below_minimum_not_applied(self, session, user, ready_cart, make_discount):
        discount = make_discount(min_required_value=500)

        order = checkout_service.checkout(session, user.id, "cod", discount_code="SAVE10")

        assert order.discount_amount == 0
        assert order.total_payment == 215
        assert order.discount_id is None
        session.refresh(discount)
        assert discount.quantity == 5

    def test_shipping_cost_follows_distance(self, session, user, book, make_address):
        make_address(user.id, distance_km=10)
        cart_service.add_item(session, user.id, book.id, 1)
        cart_service.set_checked(session, user.id, book.id, True)

        order = checkout_service.checkout(session, user.id, "cod")

        assert order.shipping_cost == 20
        assert order.total_payment == 120

    def test_only_checked_lines_leave_the_cart(self, session, user, ready_cart, make_book):
        other = make_book(title="Emma", price=40)
        cart_service.add_item(session, user.id, other.id, 1)

        order = checkout_service.checkout(session, user.id, "cod")

        assert [item.book_id for item in order.items] == [ready_cart.id]
        remaining = session.exec(select(CartItem)).all()
        assert [line.book_id for line in remaining] == [other.id]

    def test_inventory_untouched(self, session, user, ready_cart):
        checkout_service.checkout(session, user.id, "cod")

        session.refresh(ready_cart)
        assert ready_cart.available_quantity == 8
        assert ready_cart.stock == 10

    def test_order_placed_notifications(self, session, user, ready_cart):
        received = []
        delivered = threading.Event()

        def listener(event, payload):
            received.append((event, payload))
            delivered.set()

        realtime.subscribe(listener)
        try:
            order = checkout_service.checkout(session, user.id, "cod")
            assert delivered.wait(timeout=5)
        finally:
            realtime.unsubscribe(listener)

        event, payload = received[0]
        assert event == "order_placed"
        assert payload["order_id"] == order.id
        assert payload["user_id"] == user.id

        [note] = session.exec(select(Notification)).all()
        assert note.related_id == order.id
        assert note.trigger_source == "order_placed"


    def test_broken_notifications_do_not_fail_checkout(self, session, user, ready_cart, monkeypatch):
        def shut_down(*args, **kwargs):
            raise RuntimeError("cannot schedule new futures after shutdown")

        def no_table(**kwargs):
            raise KeyError("notification")

        monkeypatch.setattr(realtime, "publish", shut_down)
        monkeypatch.setattr("bookstore.notifications.dispatcher.create_notification", no_table)

        order = checkout_service.checkout(session, user.id, "cod")

        assert order.status == "pending"
        assert order.total_payment == 215
        assert session.exec(select(Notification)).all() == []
        assert checkout_service.find_draft_order(session, user.id) is None


class TestCheckoutPreconditions:

    def test_no_cart(self, session, user, make_address):
        make_address(user.id)

        with pytest.raises(EmptyCart, match="Your cart is empty"):
            checkout_service.checkout(session, user.id, "cod")

    def test_nothing_checked(self, session, user, book, make_address):
        make_address(user.id)
        cart_service.add_item(session, user.id, book.id, 1)

        with pytest.raises(EmptyCart, match="No items selected"):
            checkout_service.checkout(session, user.id, "cod")

        assert session.exec(select(Order)).all() == []

    def test_no_default_address(self, session, user, book, make_address):
        make_address(user.id, is_default=False)
        cart_service.add_item(session, user.id, book.id, 1)
        cart_service.set_checked(session, user.id, book.id, True)

        with pytest.raises(NoDefaultAddress):
            checkout_service.checkout(session, user.id, "cod")

        assert session.exec(select(Order)).all() == []
        assert len(session.exec(select(CartItem)).all()) == 1

    def test_failed_precondition_keeps_discount(self, session, user, book, make_discount):
        discount = make_discount()
        cart_service.add_item(session, user.id, book.id, 2)
        cart_service.set_checked(session, user.id, book.id, True)

        with pytest.raises(NoDefaultAddress):
            checkout_service.checkout(session, user.id, "cod", discount_code="SAVE10")

        session.refresh(discount)
        assert discount.quantity == 5


class TestPartialCheckout:

    def test_failure_leaves_hidden_draft_then_resumes(
        self, session, user, ready_cart, make_discount, monkeypatch
    ):
        discount = make_discount()
        monkeypatch.setattr(shipping_service, "generate_tracking_number", _raise_exhausted)

        with pytest.raises(PartialCheckoutFailure) as excinfo:
            checkout_service.checkout(session, user.id, "cod", discount_code="SAVE10")

        order_id = excinfo.value.order_id
        with pytest.raises(NotFound):
            order_service.get_order(session, order_id)
        assert checkout_service.find_draft_order(session, user.id).id == order_id
        assert session.exec(select(CartItem)).all() == []
        session.refresh(discount)
        assert discount.quantity == 4

        monkeypatch.undo()
        order = checkout_service.checkout(session, user.id, "cod", discount_code="SAVE10")

        assert order.id == order_id
        assert order.status == "pending"
        assert order.total_payment == 195
        assert order.is_settled
        session.refresh(discount)
        assert discount.quantity == 4
        assert len(session.exec(select(Order)).all()) == 1

    def test_resume_checkout(self, session, user, ready_cart, monkeypatch):
        monkeypatch.setattr(shipping_service, "generate_tracking_number", _raise_exhausted)
        with pytest.raises(PartialCheckoutFailure) as excinfo:
            checkout_service.checkout(session, user.id, "cod")
        monkeypatch.undo()

        order = checkout_service.resume_checkout(session, user.id)

        assert order.id == excinfo.value.order_id
        assert order_service.get_order(session, order.id).status == "pending"
        assert len(session.exec(select(Shipping)).all()) == 1
        assert len(session.exec(select(Payment)).all()) == 1

    def test_resume_without_draft(self, session, user):
        with pytest.raises(NotFound):
            checkout_service.resume_checkout(session, user.id)

    def test_complete_checkout_is_idempotent(self, session, user, ready_cart):
        order = checkout_service.checkout(session, user.id, "cod")

        again = checkout_service.complete_checkout(session, order.id)

        assert again.id == order.id
        assert again.shipping_id == order.shipping_id
        assert len(session.exec(select(Notification)).all()) == 1


def test_tracking_number_exhausted_after_collisions(session, user, ready_cart):
    order = checkout_service.checkout(session, user.id, "cod")
    taken = session.get(Shipping, order.shipping_id).tracking_number

    with pytest.raises(TrackingNumberExhausted):
        shipping_service.generate_tracking_number(
            session, attempts=3, generator=lambda length: taken
        )


def test_tracking_number_shape(session):
    number = shipping_service.generate_tracking_number(session)

    assert len(number) == 8
    assert all(ch in shipping_service.TRACKING_ALPHABET for ch in number)


def test_concurrent_checkouts_place_one_order(file_engine):
    with Session(file_engine) as session:
        user = User(first_name="Test", last_name="Reader", email="double-click@example.com")
        book = Book(title="Dune", author="Frank Herbert", price=100, available_quantity=10, stock=10)
        session.add(user)
        session.add(book)
        session.commit()
        session.add(Address(
            user_id=user.id, name="Test Reader", phone="0900000000",
            city_name="Hanoi", province_name="Hanoi", distance_km=0, is_default=True,
        ))
        session.commit()
        user_id, book_id = user.id, book.id
        cart_service.add_item(session, user_id, book_id, 2)
        cart_service.set_checked(session, user_id, book_id, True)

    def attempt(_):
        with Session(file_engine) as worker_session:
            try:
                return checkout_service.checkout(worker_session, user_id, "cod").id
            except EmptyCart:
                return "empty"

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(4)))

    with Session(file_engine) as session:
        orders = session.exec(select(Order)).all()
        shippings = session.exec(select(Shipping)).all()
        available = session.get(Book, book_id).available_quantity

    [order] = orders
    assert order.status == "pending"
    assert order.total_payment == 215
    assert order.id in results
    # a late caller may resume the same order, never start another one
    assert {r for r in results if r != "empty"} == {order.id}
    assert len(shippings) == 1
    assert available == 8
