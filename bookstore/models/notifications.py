from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class RecipientRole(str, Enum):
    admin = "admin"
    customer = "customer"


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    recipient_role: RecipientRole
    user_id: Optional[int] = None

    trigger_source: str  # order_placed / payment_success / ...
    related_id: Optional[int] = None  # order_id

    title: str
    content: str

    created_at: datetime = Field(default_factory=datetime.utcnow)
