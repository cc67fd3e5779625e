"""
Endpoints de Inventario: artículos, entradas/salidas manuales y kardex.
El stock no se edita directamente: solo vía movimientos.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id, get_user_id
from app.database import get_db
from app.models.inventory import StockMovementType
from app.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemListResponse,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventorySummary,
    LowStockItem,
    StockAdjust,
    StockMovementListResponse,
)
from app.services import inventory_service

router = APIRouter()


# ── Artículos ────────────────────────────────────────

@router.get("/items", response_model=InventoryItemListResponse)
async def list_items(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None),
    low_stock_only: bool = Query(False),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await inventory_service.list_items(
        db, clinic_id, page=page, size=size, search=search, low_stock_only=low_stock_only
    )


@router.post("/items", response_model=InventoryItemResponse, status_code=201)
async def create_item(
    data: InventoryItemCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Crea un artículo; el stock inicial queda registrado en el kardex."""
    return await inventory_service.create_item(db, clinic_id, data, user_id=user_id)


@router.get("/items/{item_id}", response_model=InventoryItemResponse)
async def get_item(
    item_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await inventory_service.get_item(db, clinic_id, item_id)


@router.patch("/items/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: UUID,
    data: InventoryItemUpdate,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await inventory_service.update_item(db, clinic_id, item_id, data)


# ── Movimientos ──────────────────────────────────────

@router.post("/items/{item_id}/increment", response_model=InventoryItemResponse)
async def increment_stock(
    item_id: UUID,
    data: StockAdjust,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Entrada de stock (compra, devolución o +1 rápido)."""
    return await inventory_service.adjust_stock(
        db, clinic_id, item_id, data, StockMovementType.ENTRY, user_id=user_id
    )


@router.post("/items/{item_id}/decrement", response_model=InventoryItemResponse)
async def decrement_stock(
    item_id: UUID,
    data: StockAdjust,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Salida de stock. 409 si no alcanza: nunca deja stock negativo."""
    return await inventory_service.adjust_stock(
        db, clinic_id, item_id, data, StockMovementType.EXIT, user_id=user_id
    )


@router.get("/movements", response_model=StockMovementListResponse)
async def list_movements(
    item_id: UUID | None = Query(None),
    reference: str | None = Query(None, description="ej. appointment:<id>"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await inventory_service.list_movements(
        db, clinic_id, item_id=item_id, reference=reference, page=page, size=size
    )


# ── Reportes ─────────────────────────────────────────

@router.get("/low-stock", response_model=list[LowStockItem])
async def low_stock(
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await inventory_service.get_low_stock_items(db, clinic_id)


@router.get("/summary", response_model=InventorySummary)
async def inventory_summary(
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await inventory_service.get_inventory_summary(db, clinic_id)
