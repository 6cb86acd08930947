# bookstore/services/cart_service.py
"""
Per-user cart.

Units are soft-reserved from the inventory the moment they go into a cart,
and every line change commits together with its inventory change. Line writes
are field-targeted UPDATE/DELETE statements guarded by the quantity that was
read, so two tabs editing the same cart can not lose each other's updates.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from bookstore.exceptions import NotFound
from bookstore.models.book import Book
from bookstore.models.cart import Cart, CartItem
from bookstore.services import blob_store, inventory_service
from bookstore.utils.db import ConcurrentUpdate, run_in_transaction

logger = logging.getLogger(__name__)


def find_cart(session: Session, user_id: int) -> Optional[Cart]:
    return session.exec(select(Cart).where(Cart.user_id == user_id)).first()


def require_cart(session: Session, user_id: int) -> Cart:
    cart = find_cart(session, user_id)
    if not cart:
        raise NotFound("Cart not found")
    return cart


def _find_line(session: Session, cart_id: int, book_id: int) -> Optional[CartItem]:
    return session.exec(
        select(CartItem)
        .where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
        .execution_options(populate_existing=True)
    ).first()


def _touch(session: Session, cart_id: int):
    session.execute(
        update(Cart).where(Cart.id == cart_id).values(updated_at=datetime.utcnow())
    )


def _delete_line(session: Session, item: CartItem):
    """Delete a line only if it still holds the quantity we read."""
    result = session.execute(
        delete(CartItem).where(
            CartItem.id == item.id,
            CartItem.quantity == item.quantity,
        )
    )
    if result.rowcount != 1:
        raise ConcurrentUpdate(f"Cart line {item.id} changed")


# Add to Cart

def add_item(session: Session, user_id: int, book_id: int, quantity: int) -> Cart:
    if quantity <= 0:
        raise ValueError("Quantity must be at least 1")

    def work():
        book = session.get(Book, book_id)
        if not book:
            raise NotFound("Book not found")

        inventory_service.reserve(session, book_id, quantity, commit=False)

        # first add creates the cart, rolled back with the rest on failure
        cart = find_cart(session, user_id)
        if not cart:
            cart = Cart(user_id=user_id)
            session.add(cart)
            session.flush()
        cart_id = cart.id

        # existing line: bump its quantity in place
        result = session.execute(
            update(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
            .values(quantity=CartItem.quantity + quantity)
        )

        if result.rowcount == 0:
            session.add(
                CartItem(
                    cart_id=cart_id,
                    book_id=book.id,
                    book_title=book.title,
                    price=book.price,
                    price_discount=book.discount_price,
                    quantity=quantity,
                )
            )
            session.flush()

        _touch(session, cart_id)
        return cart_id

    # IntegrityError: a parallel request inserted the same cart or line first
    cart_id = run_in_transaction(
        session,
        work,
        label=f"add book {book_id} to cart of user {user_id}",
        retry_on=(OperationalError, IntegrityError, ConcurrentUpdate),
    )
    logger.info(f"User {user_id} added {quantity} x book {book_id} to cart")

    cart = session.get(Cart, cart_id)
    session.refresh(cart)
    return cart


# Update Cart

def update_item(session: Session, user_id: int, book_id: int, new_quantity: int) -> Cart:
    if new_quantity <= 0:
        return remove_item(session, user_id, book_id)

    cart = require_cart(session, user_id)
    cart_id = cart.id

    def work():
        item = _find_line(session, cart_id, book_id)
        if not item:
            raise NotFound("Cart item not found")

        old_quantity = item.quantity
        delta = new_quantity - old_quantity
        if delta == 0:
            return

        if delta > 0:
            inventory_service.reserve(session, book_id, delta, commit=False)
        else:
            inventory_service.release(session, book_id, -delta, commit=False)

        result = session.execute(
            update(CartItem)
            .where(CartItem.id == item.id, CartItem.quantity == old_quantity)
            .values(quantity=new_quantity)
        )
        if result.rowcount != 1:
            raise ConcurrentUpdate(f"Cart line {item.id} changed")

        _touch(session, cart_id)

    run_in_transaction(session, work, label=f"update book {book_id} in cart of user {user_id}")

    session.refresh(cart)
    return cart


# Remove Cart

def remove_item(session: Session, user_id: int, book_id: int) -> Cart:
    cart = require_cart(session, user_id)
    cart_id = cart.id

    def work():
        item = _find_line(session, cart_id, book_id)
        if not item:
            raise NotFound("Cart item not found")

        held = item.quantity
        _delete_line(session, item)
        inventory_service.release(session, book_id, held, commit=False)
        _touch(session, cart_id)

    run_in_transaction(session, work, label=f"remove book {book_id} from cart of user {user_id}")
    logger.info(f"User {user_id} removed book {book_id} from cart")

    session.refresh(cart)
    return cart


def remove_lines(session: Session, items: List[CartItem]):
    """
    Drop the given lines without touching inventory (their units now belong
    to an order). Joins the caller's transaction.
    """
    for item in items:
        _delete_line(session, item)


# Clear Cart

def clear(session: Session, user_id: int) -> Cart:
    """Empty the cart, keeping the held units out of inventory."""
    cart = require_cart(session, user_id)
    cart_id = cart.id

    def work():
        session.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
        _touch(session, cart_id)

    run_in_transaction(session, work, label=f"clear cart of user {user_id}")

    session.refresh(cart)
    return cart


def release(session: Session, user_id: int) -> Cart:
    """Abandon the cart: empty it and hand every held unit back to inventory."""
    cart = require_cart(session, user_id)
    cart_id = cart.id

    def work():
        items = session.exec(
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .execution_options(populate_existing=True)
        ).all()

        for item in items:
            held = item.quantity
            _delete_line(session, item)
            inventory_service.release(session, item.book_id, held, commit=False)

        _touch(session, cart_id)
        return len(items)

    released = run_in_transaction(session, work, label=f"release cart of user {user_id}")
    logger.info(f"Released {released} cart lines of user {user_id}")

    session.refresh(cart)
    return cart


# Checked items

def set_checked(session: Session, user_id: int, book_id: int, is_checked: bool) -> Cart:
    cart = require_cart(session, user_id)
    cart_id = cart.id

    def work():
        result = session.execute(
            update(CartItem)
            .where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
            .values(is_checked=is_checked)
        )
        if result.rowcount == 0:
            raise NotFound("Cart item not found")

    run_in_transaction(session, work, label=f"check book {book_id} for user {user_id}")

    session.refresh(cart)
    return cart


def set_all_checked(session: Session, user_id: int, is_checked: bool) -> Cart:
    cart = require_cart(session, user_id)
    cart_id = cart.id

    def work():
        session.execute(
            update(CartItem)
            .where(CartItem.cart_id == cart_id)
            .values(is_checked=is_checked)
        )

    run_in_transaction(session, work, label=f"check all for user {user_id}")

    session.refresh(cart)
    return cart


def checked_items(cart: Cart) -> List[CartItem]:
    return [item for item in cart.items if item.is_checked]


# View Cart

def get_cart(session: Session, user_id: int) -> dict:
    cart = require_cart(session, user_id)

    rows = session.exec(
        select(CartItem, Book)
        .join(Book, CartItem.book_id == Book.id)
        .where(CartItem.cart_id == cart.id)
        .order_by(CartItem.id)
    ).all()

    items_response = []
    subtotal = 0
    checked_subtotal = 0

    for item, book in rows:
        subtotal += item.line_total
        if item.is_checked:
            checked_subtotal += item.line_total

        items_response.append({
            "item_id": item.id,
            "book_id": item.book_id,
            "book_title": item.book_title,
            "cover_image_url": blob_store.signed_url(book.cover_image),
            "price": item.price,
            "price_discount": item.price_discount,
            "unit_price": item.unit_price,
            "quantity": item.quantity,
            "line_total": item.line_total,
            "is_checked": item.is_checked,
            "available_quantity": book.available_quantity,
        })

    return {
        "cart_id": cart.id,
        "user_id": cart.user_id,
        "items": items_response,
        "subtotal": round(subtotal, 2),
        "checked_subtotal": round(checked_subtotal, 2),
    }
