from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dentalcare.models.inventory import InventoryCategory, StockStatus


def _require_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class InventoryItemCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: InventoryCategory
    quantity: int = Field(default=0, ge=0)
    minimum_quantity: int = Field(default=10, ge=0)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    supplier: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        return _require_name(value)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[InventoryCategory] = None
    minimum_quantity: Optional[int] = Field(default=None, ge=0)
    unit_price_cents: Optional[int] = Field(default=None, ge=0)
    supplier: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        return _require_name(value)


class StockAdjustment(BaseModel):
    delta: int

    @field_validator("delta")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("must not be zero")
        return value


class InventoryItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    category: InventoryCategory
    quantity: int
    minimum_quantity: int
    unit_price_cents: Optional[int] = None
    status: StockStatus
    supplier: Optional[str] = None
    last_ordered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
