from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from dentalcare.db.session import get_db
from dentalcare.deps import get_current_user
from dentalcare.models.inventory import InventoryCategory, InventoryItem, StockStatus
from dentalcare.models.user import User
from dentalcare.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    StockAdjustment,
)
from dentalcare.services.audit import log_event, snapshot_model
from dentalcare.services.inventory import InsufficientStockError, apply_stock_change, refresh_status

router = APIRouter(prefix="/inventory", tags=["inventory"])


def get_item_or_404(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")
    return item


@router.get("", response_model=list[InventoryItemOut])
def list_items(
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
    q: str | None = Query(default=None),
    category: InventoryCategory | None = Query(default=None),
    status_filter: StockStatus | None = Query(default=None, alias="status"),
):
    stmt = select(InventoryItem).order_by(InventoryItem.name, InventoryItem.id)
    if q:
        like = f"%{q.strip()}%"
        stmt = stmt.where(
            or_(
                InventoryItem.name.ilike(like),
                InventoryItem.description.ilike(like),
                InventoryItem.supplier.ilike(like),
            )
        )
    if category:
        stmt = stmt.where(InventoryItem.category == category)
    if status_filter:
        stmt = stmt.where(InventoryItem.status == status_filter)
    return list(db.scalars(stmt).unique())


@router.get("/alerts", response_model=list[InventoryItemOut])
def low_stock_alerts(
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = (
        select(InventoryItem)
        .where(InventoryItem.status.in_([StockStatus.low_stock, StockStatus.out_of_stock]))
        .order_by(InventoryItem.quantity, InventoryItem.name)
    )
    return list(db.scalars(stmt).unique())


@router.post("", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: InventoryItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    item = InventoryItem(
        name=payload.name,
        description=payload.description,
        category=payload.category,
        quantity=payload.quantity,
        minimum_quantity=payload.minimum_quantity,
        unit_price_cents=payload.unit_price_cents,
        supplier=payload.supplier,
        created_by_user_id=user.id,
        updated_by_user_id=user.id,
    )
    refresh_status(item)
    db.add(item)
    db.flush()
    log_event(
        db,
        actor=user,
        action="inventory.created",
        entity_type="inventory_item",
        entity_id=str(item.id),
        before_obj=None,
        after_obj=item,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(item)
    return item


@router.get("/{item_id}", response_model=InventoryItemOut)
def get_item(
    item_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return get_item_or_404(db, item_id)


@router.patch("/{item_id}", response_model=InventoryItemOut)
def update_item(
    item_id: int,
    payload: InventoryItemUpdate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    item = get_item_or_404(db, item_id)
    before_data = snapshot_model(item)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in {"name", "category", "minimum_quantity"}:
            continue
        setattr(item, field, value)
    refresh_status(item)
    item.updated_by_user_id = user.id
    db.add(item)
    log_event(
        db,
        actor=user,
        action="inventory.updated",
        entity_type="inventory_item",
        entity_id=str(item.id),
        before_data=before_data,
        after_obj=item,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(item)
    return item


@router.post("/{item_id}/stock", response_model=InventoryItemOut)
def adjust_stock(
    item_id: int,
    payload: StockAdjustment,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    request_id: str | None = Header(default=None),
):
    item = get_item_or_404(db, item_id)
    before_data = snapshot_model(item)
    try:
        apply_stock_change(item, payload.delta)
    except InsufficientStockError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    item.updated_by_user_id = user.id
    db.add(item)
    log_event(
        db,
        actor=user,
        action="inventory.stock_adjusted",
        entity_type="inventory_item",
        entity_id=str(item.id),
        before_data=before_data,
        after_obj=item,
        request_id=request_id,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    db.refresh(item)
    return item
