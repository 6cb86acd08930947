from sqlmodel import SQLModel, Field
from sqlalchemy import CheckConstraint
from typing import Optional
from datetime import datetime

from bookstore.constants.order_status import DiscountType


class Discount(SQLModel, table=True):
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_discount_quantity"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True)
    name: Optional[str] = None

    type: DiscountType
    value: float = Field(ge=0)
    min_required_value: float = 0
    max_discount_value: Optional[float] = None

    # remaining redemptions, only ever decremented
    quantity: int = Field(default=0, ge=0)

    start_date: datetime
    end_date: datetime
    is_active: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)

    def is_available(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.utcnow()
        return (
            self.is_active
            and self.start_date <= now <= self.end_date
            and self.quantity > 0
        )
