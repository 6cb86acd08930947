from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import CheckConstraint, UniqueConstraint
from typing import List, Optional
from datetime import datetime


class Cart(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["CartItem"] = Relationship(
        back_populates="cart",
        sa_relationship_kwargs={"order_by": "CartItem.id"},
    )


class CartItem(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("cart_id", "book_id"),
        CheckConstraint("quantity >= 1", name="ck_cartitem_quantity"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    cart_id: int = Field(foreign_key="cart.id", index=True)
    book_id: int = Field(foreign_key="book.id")

    # snapshot of the catalog when the line was created
    book_title: str
    price: float
    price_discount: Optional[float] = None

    quantity: int = Field(default=1, ge=1)
    is_checked: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    cart: Optional[Cart] = Relationship(back_populates="items")

    @property
    def unit_price(self) -> float:
        return self.price_discount if self.price_discount is not None else self.price

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)
