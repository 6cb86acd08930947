from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from bookstore.models.order import Order


class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    book_id: int = Field(foreign_key="book.id")

    book_title: str
    price: float
    price_discount: Optional[float] = None
    quantity: int

    order: Optional["Order"] = Relationship(back_populates="items")

    @property
    def unit_price(self) -> float:
        return self.price_discount if self.price_discount is not None else self.price

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)
