"""
Schemas Pydantic para el catálogo de procedimientos.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


# ── Create / Update ──────────────────────────────────


class ServiceCreate(BaseModel):
    code: str | None = Field(None, max_length=20, description="Código interno")
    name: str = Field(..., min_length=1, max_length=150, description="Nombre del procedimiento")
    description: str | None = None
    duration_minutes: int = Field(30, gt=0, le=720, description="Duración en minutos")
    price: Decimal = Field(Decimal("0"), ge=0, description="Precio de venta")
    is_active: bool = True


class ServiceUpdate(BaseModel):
    code: str | None = None
    name: str | None = Field(None, min_length=1, max_length=150)
    description: str | None = None
    duration_minutes: int | None = Field(None, gt=0, le=720)
    price: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None


# ── Response ─────────────────────────────────────────


class ServiceResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    code: str | None = None
    name: str
    description: str | None = None
    duration_minutes: int
    price: Decimal
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ServiceListResponse(BaseModel):
    items: list[ServiceResponse]
    total: int
    page: int
    size: int
    pages: int
