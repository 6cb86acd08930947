# bookstore/schemas/checkout_schemas.py
from typing import Optional

from pydantic import BaseModel

from bookstore.constants.order_status import PaymentMethod


class CheckoutRequest(BaseModel):
    payment_method: PaymentMethod
    discount_code: Optional[str] = None
