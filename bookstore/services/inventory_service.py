# bookstore/services/inventory_service.py
"""
Inventory ledger on top of Book.available_quantity.

Every change is one conditional UPDATE on the book row, never a
read-modify-write, so concurrent carts can not oversell a title.
"""
import logging
from datetime import datetime
from typing import Iterable, Tuple

from sqlalchemy import case, update
from sqlmodel import Session

from bookstore.exceptions import InsufficientStock, NotFound
from bookstore.models.book import Book
from bookstore.utils.db import run_in_transaction

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int):
    if quantity <= 0:
        raise ValueError(f"Quantity must be positive, got {quantity}")


def reserve(session: Session, book_id: int, quantity: int, *, commit: bool = True):
    """Take ``quantity`` units out of availability or raise InsufficientStock."""
    _check_quantity(quantity)

    def work():
        result = session.execute(
            update(Book)
            .where(Book.id == book_id, Book.available_quantity >= quantity)
            .values(
                available_quantity=Book.available_quantity - quantity,
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 1:
            return

        book = session.get(Book, book_id)
        if not book:
            raise NotFound("Book not found")

        raise InsufficientStock(
            f"Not enough quantity for {book.title}. "
            f"Available: {book.available_quantity}, Requested: {quantity}",
            book_id=book_id,
        )

    if commit:
        run_in_transaction(session, work, label=f"reserve book {book_id}")
    else:
        work()
    logger.info(f"Reserved {quantity} of book {book_id}")


def release(session: Session, book_id: int, quantity: int, *, commit: bool = True):
    """Give ``quantity`` units back to availability."""
    _check_quantity(quantity)

    def work():
        result = session.execute(
            update(Book)
            .where(Book.id == book_id)
            .values(
                available_quantity=Book.available_quantity + quantity,
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            raise NotFound("Book not found")

    if commit:
        run_in_transaction(session, work, label=f"release book {book_id}")
    else:
        work()
    logger.info(f"Released {quantity} of book {book_id}")


def commit_stock(session: Session, lines: Iterable[Tuple[int, int]]):
    """
    Permanently remove sold units from on-hand stock (floored at 0).

    Runs inside the caller's transaction; availability was already taken
    when the units went into a cart, so it is left alone here.
    """
    now = datetime.utcnow()
    count = 0

    for book_id, quantity in lines:
        session.execute(
            update(Book)
            .where(Book.id == book_id)
            .values(
                stock=case((Book.stock > quantity, Book.stock - quantity), else_=0),
                updated_at=now,
            )
        )
        count += 1

    logger.info(f"Committed stock for {count} order lines")
