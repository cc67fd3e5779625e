"""
Schemas Pydantic v2 para Inventario y Kardex.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.inventory import ItemUnit, StockMovementReason, StockMovementType


class InventoryItemCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=2, max_length=300)
    unit: ItemUnit = ItemUnit.UNIT
    initial_stock: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)
    min_stock: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)
    unit_cost: Decimal = Field(Decimal("0"), ge=0)


class InventoryItemUpdate(BaseModel):
    """El stock no se edita aquí: solo vía movimientos."""
    name: str | None = Field(None, min_length=2, max_length=300)
    unit: ItemUnit | None = None
    min_stock: Decimal | None = Field(None, ge=0, decimal_places=3)
    unit_cost: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None


class InventoryItemResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    code: str
    name: str
    unit: ItemUnit
    current_stock: Decimal
    min_stock: Decimal
    unit_cost: Decimal
    is_active: bool
    is_low_stock: bool

    model_config = {"from_attributes": True}


class InventoryItemListResponse(BaseModel):
    items: list[InventoryItemResponse]
    total: int
    page: int
    size: int
    pages: int


class StockAdjust(BaseModel):
    """Entrada o salida manual (incluye los +1 / -1 rápidos)."""
    quantity: Decimal = Field(Decimal("1"), gt=0, decimal_places=3)
    reason: StockMovementReason = StockMovementReason.MANUAL_ADJUSTMENT
    reference: str | None = Field(None, max_length=200)
    notes: str | None = None


class StockMovementResponse(BaseModel):
    id: UUID
    item_id: UUID
    item_name: str | None = None
    movement_type: StockMovementType
    reason: StockMovementReason
    quantity: Decimal
    stock_before: Decimal
    stock_after: Decimal
    reference: str | None = None
    notes: str | None = None
    created_by: UUID | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class StockMovementListResponse(BaseModel):
    items: list[StockMovementResponse]
    total: int
    page: int
    size: int
    pages: int


class LowStockItem(BaseModel):
    item_id: UUID
    code: str
    name: str
    current_stock: Decimal
    min_stock: Decimal
    unit: str


class InventorySummary(BaseModel):
    total_items: int
    total_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
