import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from bookstore.constants.order_status import (
    SHIPPING_TRANSITIONS,
    OrderStatus,
    ShippingStatus,
    can_transition,
)
from bookstore.exceptions import InvalidStatusTransition, NotFound
from bookstore.models.order import Order
from bookstore.models.payment import Payment
from bookstore.models.shipping import Shipping
from bookstore.notifications import OrderEvent, dispatch_order_event
from bookstore.services import inventory_service
from bookstore.utils.db import ConcurrentUpdate, run_in_transaction
from bookstore.utils.pagination import paginate

logger = logging.getLogger(__name__)


def _visible_orders():
    # drafts are checkouts that have not attached shipping/payment yet
    return select(Order).where(Order.status != OrderStatus.draft.value)


def get_order(session: Session, order_id: int, user_id: Optional[int] = None) -> Order:
    """Get order by ID, optionally checking user ownership"""
    statement = _visible_orders().where(Order.id == order_id)
    if user_id is not None:
        statement = statement.where(Order.user_id == user_id)

    order = session.exec(statement.execution_options(populate_existing=True)).first()
    if not order:
        raise NotFound("Order not found")
    return order


def list_orders(
    session: Session,
    user_id: int,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    limit: int = 10,
    serializer=None,
) -> dict:
    query = _visible_orders().where(Order.user_id == user_id)

    if status:
        query = query.where(Order.status == OrderStatus(status).value)

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(session=session, query=query, page=page, limit=limit, serializer=serializer)


def get_shipping_by_order_id(session: Session, order_id: int) -> Shipping:
    shipping = session.exec(
        select(Shipping)
        .where(Shipping.order_id == order_id)
        .execution_options(populate_existing=True)
    ).first()
    if not shipping:
        raise NotFound("Shipping not found")
    return shipping


def _move_order(session: Session, order: Order, target: OrderStatus):
    if not can_transition(order.status, target):
        raise InvalidStatusTransition(f"Order {order.id} is {order.status}, cannot become {target.value}")

    result = session.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == order.status)
        .values(status=target.value, updated_at=datetime.utcnow())
    )
    if result.rowcount != 1:
        raise ConcurrentUpdate(f"Order {order.id} changed")


def confirm_payment(session: Session, order_id: int) -> Order:
    """
    Mark the order's payment as paid.

    In one commit: payment -> paid, order -> paid, shipping -> shipped, and the
    sold units leave on-hand stock. Availability was already taken at
    add-to-cart time, so it is not decremented a second time.
    """

    def work():
        payment = session.exec(
            select(Payment)
            .where(Payment.order_id == order_id, Payment.is_paid == False)  # noqa: E712
            .execution_options(populate_existing=True)
        ).first()
        if not payment:
            raise NotFound("No unpaid payment found for this order")

        order = get_order(session, order_id)
        _move_order(session, order, OrderStatus.paid)

        # a parallel confirm that got here first wins, this one is a 404
        result = session.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.is_paid == False)  # noqa: E712
            .values(is_paid=True, paid_at=datetime.utcnow())
        )
        if result.rowcount != 1:
            raise NotFound("No unpaid payment found for this order")

        shipping = get_shipping_by_order_id(session, order_id)
        _move_shipping(session, shipping, ShippingStatus.shipped)

        inventory_service.commit_stock(
            session, [(item.book_id, item.quantity) for item in order.items]
        )

    run_in_transaction(session, work, label=f"confirm payment of order {order_id}")

    order = get_order(session, order_id)
    logger.info(f"Payment confirmed for order {order_id}")
    dispatch_order_event(event=OrderEvent.PAYMENT_SUCCESS, order=order, session=session)
    return get_order(session, order_id)


def cancel_order(session: Session, order_id: int) -> Order:
    """Admin cancel of an unpaid order, the held units go back on sale."""

    def work():
        order = get_order(session, order_id)
        _move_order(session, order, OrderStatus.cancelled)

        for item in order.items:
            inventory_service.release(session, item.book_id, item.quantity, commit=False)

    run_in_transaction(session, work, label=f"cancel order {order_id}")

    order = get_order(session, order_id)
    logger.info(f"Order {order_id} cancelled")
    dispatch_order_event(event=OrderEvent.ORDER_CANCELLED, order=order, session=session)
    return get_order(session, order_id)


def _move_shipping(session: Session, shipping: Shipping, target: ShippingStatus):
    if not can_transition(shipping.status, target, SHIPPING_TRANSITIONS):
        raise InvalidStatusTransition(
            f"Shipping is {shipping.status}, cannot become {target.value}"
        )

    now = datetime.utcnow()
    values = {"status": target.value, "updated_at": now}
    if target == ShippingStatus.shipped:
        values["shipped_at"] = now

    result = session.execute(
        update(Shipping)
        .where(Shipping.id == shipping.id, Shipping.status == shipping.status)
        .values(**values)
    )
    if result.rowcount != 1:
        raise ConcurrentUpdate(f"Shipping {shipping.id} changed")


def update_shipping(
    session: Session,
    order_id: int,
    status: Optional[ShippingStatus] = None,
    description: Optional[str] = None,
) -> Shipping:
    """Admin shipping update: delivered / returned, or a note for the customer."""
    target = ShippingStatus(status) if status is not None else None
    if target == ShippingStatus.shipped:
        # only payment confirmation ships an order
        raise InvalidStatusTransition("Shipping is marked shipped when the payment is confirmed")

    def work():
        get_order(session, order_id)
        shipping = get_shipping_by_order_id(session, order_id)

        if target is not None:
            _move_shipping(session, shipping, target)

        if description is not None:
            session.execute(
                update(Shipping)
                .where(Shipping.id == shipping.id)
                .values(description=description, updated_at=datetime.utcnow())
            )

    run_in_transaction(session, work, label=f"update shipping of order {order_id}")

    shipping = get_shipping_by_order_id(session, order_id)
    if status is not None:
        order = get_order(session, order_id)
        dispatch_order_event(
            event=OrderEvent.SHIPPING_UPDATED,
            order=order,
            session=session,
            extra={"shipping_status": shipping.status},
        )
    return shipping
