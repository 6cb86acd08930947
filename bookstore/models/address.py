from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Address(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str
    phone: str
    description: Optional[str] = None
    city_name: str
    province_name: str
    # precomputed by the geo lookup when the address is saved
    distance_km: float = 0
    is_default: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def snapshot(self) -> dict:
        return {
            "name": self.name,
            "phone": self.phone,
            "description": self.description,
            "city": self.city_name,
            "province": self.province_name,
        }
