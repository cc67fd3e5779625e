"""
Endpoints del ledger de comisiones: consulta, resumen, liquidación y pago.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id, get_user_id
from app.database import get_db
from app.models.commission import CommissionEntryStatus
from app.schemas.commission import (
    CommissionAdjustmentCreate,
    CommissionEntryListResponse,
    CommissionEntryResponse,
    CommissionSettle,
    CommissionSettlePeriod,
    CommissionSummary,
    LiquidationResponse,
    SettlePeriodResponse,
)
from app.services import commission_service

router = APIRouter()


@router.get("/entries", response_model=CommissionEntryListResponse)
async def list_entries(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    professional_id: UUID | None = Query(None),
    status: CommissionEntryStatus | None = Query(None),
    period: str | None = Query(None, pattern=r"^\d{4}-\d{2}$", description="YYYY-MM"),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await commission_service.list_entries(
        db,
        clinic_id=clinic_id,
        page=page,
        size=size,
        professional_id=professional_id,
        status=status,
        period=period,
    )


@router.get("/summary", response_model=CommissionSummary)
async def summarize(
    professional_id: UUID = Query(...),
    period_start: date = Query(...),
    period_end: date = Query(...),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Totales generados/pagados/pendientes de un profesional en un rango."""
    return await commission_service.summarize(
        db, clinic_id, professional_id, period_start, period_end
    )


@router.get("/liquidation", response_model=LiquidationResponse)
async def get_liquidation(
    period_start: date = Query(...),
    period_end: date = Query(...),
    professional_id: UUID | None = Query(None),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Liquidación por profesional para un rango de fechas."""
    return await commission_service.get_liquidation(
        db, clinic_id, period_start, period_end, professional_id=professional_id
    )


@router.post("/entries/{entry_id}/settle", response_model=CommissionEntryResponse)
async def settle_entry(
    entry_id: UUID,
    data: CommissionSettle,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Marca una entrada como pagada. Repetir la llamada no cambia nada."""
    return await commission_service.settle(
        db, clinic_id, entry_id, paid_reference=data.paid_reference, user_id=user_id
    )


@router.post("/entries/{entry_id}/adjustments", response_model=CommissionEntryResponse, status_code=201)
async def post_adjustment(
    entry_id: UUID,
    data: CommissionAdjustmentCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await commission_service.post_adjustment(db, clinic_id, entry_id, data, user_id=user_id)


@router.post("/settle-period", response_model=SettlePeriodResponse)
async def settle_period(
    data: CommissionSettlePeriod,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Paga todas las entradas pendientes del profesional en el rango."""
    settled = await commission_service.settle_period(
        db,
        clinic_id,
        data.professional_id,
        data.period_start,
        data.period_end,
        paid_reference=data.paid_reference,
        user_id=user_id,
    )
    return SettlePeriodResponse(
        professional_id=data.professional_id,
        period_start=data.period_start,
        period_end=data.period_end,
        settled=settled,
    )
