from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime

from bookstore.constants.order_status import ShippingStatus


class Shipping(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", unique=True, index=True)

    address: dict = Field(default_factory=dict, sa_column=Column(JSON))
    cost: float
    tracking_number: str = Field(unique=True, index=True)
    status: str = Field(default=ShippingStatus.pending.value)
    description: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    shipped_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)
