from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AddressCreate(BaseModel):
    name: str
    phone: str
    description: Optional[str] = None
    city_name: str
    province_name: str
    distance_km: float = Field(default=0, ge=0)
    is_default: bool = False


class AddressRead(AddressCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
