from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime

from bookstore.constants.order_status import OrderStatus
from bookstore.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    subtotal: float
    discount_amount: float = 0
    shipping_cost: float
    total_payment: float

    payment_method: str
    discount_id: Optional[int] = Field(default=None, foreign_key="discount.id")
    # set once, when checkout attaches the shipping and payment rows
    shipping_id: Optional[int] = None
    payment_id: Optional[int] = None

    # resolved address, later address edits must not rewrite history
    shipping_address: dict = Field(default_factory=dict, sa_column=Column(JSON))

    status: str = Field(default=OrderStatus.draft.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")

    @property
    def is_settled(self) -> bool:
        return self.shipping_id is not None and self.payment_id is not None
