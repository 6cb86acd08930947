from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime


class Book(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("available_quantity >= 0", name="ck_book_available_quantity"),
        CheckConstraint("stock >= 0", name="ck_book_stock"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    author: str

    #Image (blob key, signed on read)
    cover_image: Optional[str] = None

    #Shop Details
    price: float
    discount_price: Optional[float] = None

    # on-hand units, reduced once a payment is confirmed
    stock: int = Field(default=0, ge=0)
    # units not held by any cart line or open order
    available_quantity: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def in_stock(self) -> bool:
        return self.available_quantity > 0
