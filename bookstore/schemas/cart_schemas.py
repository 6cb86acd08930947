from typing import List, Optional

from pydantic import BaseModel
from sqlmodel import SQLModel, Field


class CartAddRequest(SQLModel):
    book_id: int
    quantity: int = Field(default=1, ge=1)


class CartUpdateRequest(SQLModel):
    book_id: int
    quantity: int  # 0 removes the line


class CartCheckRequest(SQLModel):
    book_id: int
    is_checked: bool


class CartCheckAllRequest(SQLModel):
    is_checked: bool


class CartLine(BaseModel):
    item_id: int
    book_id: int
    book_title: str
    cover_image_url: Optional[str] = None
    price: float
    price_discount: Optional[float] = None
    unit_price: float
    quantity: int
    line_total: float
    is_checked: bool
    available_quantity: int


class CartResponse(BaseModel):
    cart_id: int
    user_id: int
    items: List[CartLine]
    subtotal: float          # every line
    checked_subtotal: float  # lines that go into the next checkout
