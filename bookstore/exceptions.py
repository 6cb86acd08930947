"""Typed errors raised by the cart, discount, checkout and order services.

Routes never see raw SQLAlchemy errors: services either raise one of these
directly or let ``run_in_transaction`` wrap storage failures into
``StorageError``. ``main.py`` maps every ``BookstoreError`` to a JSON response
using ``status_code``.
"""

from typing import Optional


class BookstoreError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(BookstoreError):
    status_code = 404


class InsufficientStock(BookstoreError):
    status_code = 400

    def __init__(self, detail: str, book_id: Optional[int] = None):
        super().__init__(detail)
        self.book_id = book_id


class EmptyCart(BookstoreError):
    status_code = 400


class NoDefaultAddress(BookstoreError):
    status_code = 400


class InvalidStatusTransition(BookstoreError):
    status_code = 409


class TrackingNumberExhausted(BookstoreError):
    status_code = 500


class PartialCheckoutFailure(BookstoreError):
    """The order row exists but shipping/payment could not be attached.

    Retrying checkout for the same user resumes ``order_id`` instead of
    creating a second order.
    """

    status_code = 500

    def __init__(self, detail: str, order_id: int):
        super().__init__(detail)
        self.order_id = order_id


class StorageError(BookstoreError):
    status_code = 503
