from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    order_id: int = Field(foreign_key="order.id", unique=True, index=True)
    user_id: int = Field(index=True)

    amount: float
    method: str  # cod | card | bank_transfer | wallet
    discount_id: Optional[int] = None
    is_paid: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    paid_at: Optional[datetime] = None
