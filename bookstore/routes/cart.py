from fastapi import APIRouter, Depends
from sqlmodel import Session

from bookstore.database import get_session
from bookstore.models.user import User
from bookstore.schemas.cart_schemas import (
    CartAddRequest,
    CartCheckAllRequest,
    CartCheckRequest,
    CartResponse,
    CartUpdateRequest,
)
from bookstore.services import cart_service
from bookstore.utils.token import get_current_user

router = APIRouter()


# View Cart

@router.get("/", response_model=CartResponse)
def get_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return cart_service.get_cart(session, current_user.id)


# Add to Cart

@router.post("/add", response_model=CartResponse)
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.add_item(session, current_user.id, data.book_id, data.quantity)
    return cart_service.get_cart(session, current_user.id)


# Update Cart

@router.put("/update", response_model=CartResponse)
def update_cart_item(
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.update_item(session, current_user.id, data.book_id, data.quantity)
    return cart_service.get_cart(session, current_user.id)


# Remove Cart

@router.delete("/remove/{book_id}", response_model=CartResponse)
def remove_item(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.remove_item(session, current_user.id, book_id)
    return cart_service.get_cart(session, current_user.id)


# Clear Cart (gives the held books back to the shop)

@router.delete("/clear", response_model=CartResponse)
def clear_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.release(session, current_user.id)
    return cart_service.get_cart(session, current_user.id)


# Checked items

@router.put("/check", response_model=CartResponse)
def check_item(
    data: CartCheckRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.set_checked(session, current_user.id, data.book_id, data.is_checked)
    return cart_service.get_cart(session, current_user.id)


@router.put("/check-all", response_model=CartResponse)
def check_all_items(
    data: CartCheckAllRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_service.set_all_checked(session, current_user.id, data.is_checked)
    return cart_service.get_cart(session, current_user.id)
