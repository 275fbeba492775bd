from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from dentalcare.models.inventory import InventoryItem, StockStatus

DEFAULT_MINIMUM_QUANTITY = 10


class InsufficientStockError(ValueError):
    def __init__(self, quantity: int, delta: int) -> None:
        super().__init__(f"Stock cannot go below zero (have {quantity}, change {delta})")
        self.quantity = quantity
        self.delta = delta


@dataclass(frozen=True)
class StockChange:
    quantity: int
    status: StockStatus
    restocked: bool


def stock_status(quantity: int, minimum_quantity: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.out_of_stock
    if quantity <= minimum_quantity:
        return StockStatus.low_stock
    return StockStatus.in_stock


def plan_stock_change(quantity: int, minimum_quantity: int, delta: int) -> StockChange:
    """Outcome of adding ``delta`` units; raises before anything is written."""
    new_quantity = quantity + delta
    if new_quantity < 0:
        raise InsufficientStockError(quantity, delta)
    return StockChange(
        quantity=new_quantity,
        status=stock_status(new_quantity, minimum_quantity),
        restocked=delta > 0,
    )


def apply_stock_change(item: InventoryItem, delta: int, *, now: datetime | None = None) -> StockChange:
    change = plan_stock_change(item.quantity, item.minimum_quantity, delta)
    item.quantity = change.quantity
    item.status = change.status
    if change.restocked:
        item.last_ordered_at = now or datetime.now(timezone.utc)
    return change


def refresh_status(item: InventoryItem) -> StockStatus:
    item.status = stock_status(item.quantity, item.minimum_quantity)
    return item.status
