# bookstore/services/checkout_service.py
"""
Checkout: checked cart lines -> Order + Shipping + Payment.

There is no single commit spanning the whole pipeline, so it runs in phases:

1. one commit creates the order as ``draft`` together with its item
   snapshots, consumes the discount unit and drops the checked cart lines;
2. the shipping row is created (own commit);
3. the payment row is created (own commit);
4. one conditional UPDATE attaches both ids and flips ``draft -> pending``.

Drafts are invisible to order readers. If anything after phase 1 fails the
caller gets ``PartialCheckoutFailure``; the next checkout for that user picks
the draft up again and finishes it instead of charging cart or discount twice.
Inventory is not touched here: the units were reserved when they went into
the cart.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from bookstore.constants.order_status import OrderStatus, ShippingStatus
from bookstore.exceptions import (
    BookstoreError,
    EmptyCart,
    NoDefaultAddress,
    NotFound,
    PartialCheckoutFailure,
)
from bookstore.models.cart import CartItem
from bookstore.models.order import Order
from bookstore.models.order_item import OrderItem
from bookstore.models.payment import Payment
from bookstore.models.shipping import Shipping
from bookstore.notifications import OrderEvent, dispatch_order_event
from bookstore.services import (
    address_service,
    cart_service,
    discount_service,
    shipping_service,
)
from bookstore.utils.db import run_in_transaction

logger = logging.getLogger(__name__)


def find_draft_order(session: Session, user_id: int) -> Optional[Order]:
    return session.exec(
        select(Order)
        .where(Order.user_id == user_id, Order.status == OrderStatus.draft.value)
        .order_by(Order.id)
    ).first()


def _checked_lines(session: Session, cart_id: int) -> List[CartItem]:
    return session.exec(
        select(CartItem)
        .where(CartItem.cart_id == cart_id, CartItem.is_checked == True)  # noqa: E712
        .order_by(CartItem.id)
        .execution_options(populate_existing=True)
    ).all()


def checkout(
    session: Session,
    user_id: int,
    payment_method: str,
    discount_code: Optional[str] = None,
) -> Order:
    draft = find_draft_order(session, user_id)
    if draft:
        logger.warning(f"Resuming unfinished checkout: order {draft.id} of user {user_id}")
        return complete_checkout(session, draft.id)

    cart = cart_service.find_cart(session, user_id)
    if not cart:
        raise EmptyCart("Your cart is empty.")
    cart_id = cart.id

    def create_draft():
        items = _checked_lines(session, cart_id)
        if not items:
            raise EmptyCart("No items selected for checkout.")

        subtotal = round(sum(item.line_total for item in items), 2)

        address = address_service.get_default_address(session, user_id)
        if not address:
            raise NoDefaultAddress("No default address found")

        redemption = discount_service.resolve(session, discount_code, subtotal)
        discount_amount = redemption.amount if redemption else 0

        shipping_cost = shipping_service.calculate_shipping_cost(address.distance_km)

        total_payment = round(max(subtotal - discount_amount + shipping_cost, 0), 2)

        order = Order(
            user_id=user_id,
            subtotal=subtotal,
            discount_amount=discount_amount,
            shipping_cost=shipping_cost,
            total_payment=total_payment,
            payment_method=payment_method,
            discount_id=redemption.discount_id if redemption else None,
            shipping_address=address.snapshot(),
            status=OrderStatus.draft.value,
        )
        session.add(order)
        session.flush()

        for item in items:
            session.add(
                OrderItem(
                    order_id=order.id,
                    book_id=item.book_id,
                    book_title=item.book_title,
                    price=item.price,
                    price_discount=item.price_discount,
                    quantity=item.quantity,
                )
            )

        # the units now belong to the order, inventory stays as it is
        cart_service.remove_lines(session, items)
        session.flush()
        return order.id

    order_id = run_in_transaction(
        session, create_draft, label=f"checkout for user {user_id}"
    )
    logger.info(f"Draft order {order_id} created for user {user_id}")

    return complete_checkout(session, order_id)


def resume_checkout(session: Session, user_id: int) -> Order:
    draft = find_draft_order(session, user_id)
    if not draft:
        raise NotFound("No unfinished checkout found")
    return complete_checkout(session, draft.id)


def _ensure_shipping(session: Session, order: Order) -> Shipping:
    order_id = order.id
    address = dict(order.shipping_address or {})
    cost = order.shipping_cost

    def work():
        shipping = session.exec(
            select(Shipping).where(Shipping.order_id == order_id)
        ).first()
        if shipping:
            return shipping

        shipping = Shipping(
            order_id=order_id,
            address=address,
            cost=cost,
            tracking_number=shipping_service.generate_tracking_number(session),
            status=ShippingStatus.pending.value,
        )
        session.add(shipping)
        session.flush()
        return shipping

    # IntegrityError: tracking number taken between check and insert,
    # or a parallel resume created the row first
    return run_in_transaction(
        session,
        work,
        label=f"shipping for order {order_id}",
        retry_on=(OperationalError, IntegrityError),
    )


def _ensure_payment(session: Session, order: Order) -> Payment:
    order_id = order.id
    user_id = order.user_id
    amount = order.total_payment
    method = order.payment_method
    discount_id = order.discount_id

    def work():
        payment = session.exec(
            select(Payment).where(Payment.order_id == order_id)
        ).first()
        if payment:
            return payment

        payment = Payment(
            order_id=order_id,
            user_id=user_id,
            amount=amount,
            method=method,
            discount_id=discount_id,
            is_paid=False,
        )
        session.add(payment)
        session.flush()
        return payment

    return run_in_transaction(
        session,
        work,
        label=f"payment for order {order_id}",
        retry_on=(OperationalError, IntegrityError),
    )


def complete_checkout(session: Session, order_id: int) -> Order:
    """Attach shipping and payment to a draft order and publish it. Idempotent."""
    order = session.get(Order, order_id)
    if not order:
        raise NotFound("Order not found")

    if order.status != OrderStatus.draft.value:
        return order

    try:
        shipping = _ensure_shipping(session, order)
        shipping_id = shipping.id
        payment = _ensure_payment(session, order)
        payment_id = payment.id

        def publish():
            result = session.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == OrderStatus.draft.value)
                .values(
                    shipping_id=shipping_id,
                    payment_id=payment_id,
                    status=OrderStatus.pending.value,
                    updated_at=datetime.utcnow(),
                )
            )
            return result.rowcount == 1

        published = run_in_transaction(session, publish, label=f"publish order {order_id}")

    except BookstoreError as e:
        logger.exception(f"Checkout of order {order_id} stopped half way")
        raise PartialCheckoutFailure(
            f"Order {order_id} was created but could not be completed: {e.detail}",
            order_id=order_id,
        ) from e

    session.refresh(order)

    # lost the race against a parallel resume, it already notified
    if published:
        logger.info(f"Order {order_id} placed: total {order.total_payment}")
        dispatch_order_event(event=OrderEvent.ORDER_PLACED, order=order, session=session)
        session.refresh(order)

    return order
