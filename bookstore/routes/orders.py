from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from bookstore.constants.order_status import OrderStatus
from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.schemas.orders_schemas import (
    OrderPage,
    OrderRead,
    OrderSummary,
    ShippingRead,
    ShippingUpdate,
)
from bookstore.services import order_service
from bookstore.utils.token import get_current_admin, get_current_user

router = APIRouter()


def _owner_filter(user: User) -> Optional[int]:
    return None if user.role == "admin" else user.id


@router.get("/", response_model=OrderPage)
def list_my_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return order_service.list_orders(
        session,
        current_user.id,
        status=status,
        page=page,
        limit=limit,
        serializer=OrderSummary.model_validate,
    )


@router.get("/{order_id}", response_model=OrderRead)
def order_details(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return order_service.get_order(session, order_id, user_id=_owner_filter(current_user))


@router.get("/{order_id}/shipping", response_model=ShippingRead)
def get_shipping(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order_service.get_order(session, order_id, user_id=_owner_filter(current_user))
    return order_service.get_shipping_by_order_id(session, order_id)


# -------- ADMIN --------

@router.put("/{order_id}/shipping", response_model=ShippingRead)
def update_shipping(
    order_id: int,
    data: ShippingUpdate,
    session: Session = Depends(get_session),
    _: User = Depends(get_current_admin)
):
    return order_service.update_shipping(
        session, order_id, status=data.status, description=data.description
    )


@router.post("/{order_id}/cancel", response_model=OrderRead)
def cancel_order(
    order_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(get_current_admin)
):
    return order_service.cancel_order(session, order_id)
