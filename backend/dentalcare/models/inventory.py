from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dentalcare.models.base import AuditMixin, Base, enum_type


class StockStatus(str, enum.Enum):
    in_stock = "in_stock"
    low_stock = "low_stock"
    out_of_stock = "out_of_stock"


class InventoryCategory(str, enum.Enum):
    restorative = "restorative_material"
    instruments = "instruments"
    anesthetics = "anesthetics"
    hygiene = "hygiene"
    orthodontics = "orthodontics"
    disposables = "disposables"
    equipment = "equipment"
    other = "other"


class InventoryItem(Base, AuditMixin):
    __tablename__ = "inventory_items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[InventoryCategory] = mapped_column(
        enum_type(InventoryCategory, "inventory_category"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minimum_quantity: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    unit_price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[StockStatus] = mapped_column(
        enum_type(StockStatus, "stock_status"),
        default=StockStatus.in_stock,
        nullable=False,
    )
    supplier: Mapped[str | None] = mapped_column(String(200), nullable=True)
    last_ordered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
