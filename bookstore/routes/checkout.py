from fastapi import APIRouter, Depends
from sqlmodel import Session

from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.schemas.address_schemas import AddressCreate, AddressRead
from bookstore.schemas.checkout_schemas import CheckoutRequest
from bookstore.schemas.orders_schemas import OrderRead
from bookstore.services import address_service, checkout_service, order_service
from bookstore.utils.token import get_current_user

router = APIRouter()


@router.post("/address", response_model=AddressRead)
def add_address(
    data: AddressCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return address_service.create_address(session, current_user.id, data.model_dump())


@router.post("/", response_model=OrderRead)
def place_order(
    data: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return checkout_service.checkout(
        session,
        current_user.id,
        payment_method=data.payment_method.value,
        discount_code=data.discount_code,
    )


@router.post("/resume", response_model=OrderRead)
def resume_order(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return checkout_service.resume_checkout(session, current_user.id)


# mock gateway callback: the payment is simply marked as paid
@router.post("/orders/{order_id}/confirm-payment", response_model=OrderRead)
def confirm_payment(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    order_service.get_order(session, order_id, user_id=current_user.id)
    return order_service.confirm_payment(session, order_id)
