from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from bookstore.constants.order_status import OrderStatus, ShippingStatus


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    book_id: int
    book_title: str
    price: float
    price_discount: Optional[float] = None
    unit_price: float
    quantity: int
    line_total: float


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: OrderStatus
    subtotal: float
    discount_amount: float
    shipping_cost: float
    total_payment: float
    payment_method: str
    discount_id: Optional[int] = None
    shipping_id: Optional[int] = None
    payment_id: Optional[int] = None
    shipping_address: dict
    created_at: datetime
    items: List[OrderItemRead] = []


class OrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: OrderStatus
    total_payment: float
    created_at: datetime


class OrderPage(BaseModel):
    total_items: int
    total_pages: int
    current_page: int
    limit: int
    results: List[OrderSummary]


class ShippingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    address: dict
    cost: float
    tracking_number: str
    status: ShippingStatus
    description: Optional[str] = None
    shipped_at: Optional[datetime] = None


class ShippingUpdate(BaseModel):
    status: Optional[ShippingStatus] = None
    description: Optional[str] = None
