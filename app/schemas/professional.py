"""
Schemas para Professional — directorio mínimo con tasa de comisión.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ProfessionalCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    specialty: str | None = Field(None, max_length=100)
    commission_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Porcentaje 0-100")


class ProfessionalUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    specialty: str | None = Field(None, max_length=100)
    commission_rate: Decimal | None = Field(None, ge=0, le=100)
    is_active: bool | None = None


class ProfessionalResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    first_name: str
    last_name: str
    full_name: str
    specialty: str | None = None
    commission_rate: Decimal
    is_active: bool
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
