"""Schemas Pydantic v2 para el ledger de comisiones."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.models.commission import CommissionEntryStatus, CommissionEntryType


# ── CommissionEntry ──────────────────────


class CommissionEntryResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    professional_id: UUID
    appointment_id: UUID
    entry_type: CommissionEntryType
    service_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    status: CommissionEntryStatus
    period: str
    notes: str | None = None
    paid_at: datetime | None = None
    paid_reference: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class CommissionEntryListResponse(BaseModel):
    items: list[CommissionEntryResponse]
    total: int
    page: int
    size: int
    pages: int


# ── Liquidación ──────────────────────────


class CommissionSettle(BaseModel):
    paid_reference: str | None = Field(None, max_length=200)


class CommissionSettlePeriod(BaseModel):
    professional_id: UUID
    period_start: date
    period_end: date
    paid_reference: str | None = Field(None, max_length=200)

    @field_validator("period_end")
    @classmethod
    def end_after_start(cls, v: date, info) -> date:
        start = info.data.get("period_start")
        if start and v < start:
            raise ValueError("period_end debe ser igual o posterior a period_start")
        return v


class SettlePeriodResponse(BaseModel):
    professional_id: UUID
    period_start: date
    period_end: date
    settled: int


class CommissionAdjustmentCreate(BaseModel):
    """Ajuste compensatorio; el monto puede ser negativo."""
    amount: Decimal = Field(..., decimal_places=2)
    notes: str = Field(..., min_length=3, max_length=500)

    @field_validator("amount")
    @classmethod
    def non_zero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("El ajuste no puede ser cero")
        return v


class CommissionSummary(BaseModel):
    professional_id: UUID
    period_start: date
    period_end: date
    total_generated: Decimal
    total_paid: Decimal
    total_pending: Decimal
    count: int
    rate: Decimal


class ProfessionalLiquidation(BaseModel):
    professional_id: UUID
    professional_name: str
    total_services: int
    total_service_amount: Decimal
    total_commission: Decimal
    pending_amount: Decimal
    paid_amount: Decimal


class LiquidationResponse(BaseModel):
    period_start: date
    period_end: date
    clinic_id: UUID
    professionals: list[ProfessionalLiquidation]
    grand_total_commission: Decimal
    grand_total_pending: Decimal
    grand_total_paid: Decimal
