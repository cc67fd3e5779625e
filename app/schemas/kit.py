"""
Schemas para KitItem — procedimiento → insumos consumidos.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class KitItemCreate(BaseModel):
    service_id: UUID
    item_id: UUID
    quantity: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=3)


class KitItemUpdate(BaseModel):
    quantity: Decimal = Field(..., gt=0, decimal_places=3)


class KitItemResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    service_id: UUID
    item_id: UUID
    quantity: Decimal
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class KitItemWithNames(KitItemResponse):
    """Response enriquecido con nombres de procedimiento e insumo."""
    service_name: str | None = None
    item_name: str | None = None
    item_code: str | None = None
    item_unit: str | None = None
    unit_cost: Decimal | None = None


class KitCostResponse(BaseModel):
    service_id: UUID
    items: int
    total_cost: Decimal
