"""
Endpoints de disponibilidad: horario semanal, excepciones y consulta de slots.
"""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id, get_user_id
from app.core.exceptions import UnavailableException
from app.database import get_db
from app.schemas.availability import (
    AvailabilityCheckResponse,
    AvailabilityExceptionCreate,
    AvailabilityExceptionResponse,
    FreeSlotsResponse,
    ScheduleBlockCreate,
    ScheduleBlockResponse,
)
from app.services import availability_service

router = APIRouter()


# ── Consultas ────────────────────────────────────────

@router.get("/check", response_model=AvailabilityCheckResponse)
async def check_availability(
    professional_id: UUID = Query(...),
    start_time: datetime = Query(...),
    end_time: datetime = Query(...),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """¿El profesional atiende en [start_time, end_time)? No considera citas."""
    reason = None
    try:
        await availability_service.check_availability(
            db, clinic_id, professional_id, start_time, end_time
        )
    except UnavailableException as exc:
        reason = exc.detail

    return AvailabilityCheckResponse(
        professional_id=professional_id,
        start_time=start_time,
        end_time=end_time,
        available=reason is None,
        reason=reason,
    )


@router.get("/slots", response_model=FreeSlotsResponse)
async def get_free_slots(
    professional_id: UUID = Query(...),
    target_date: date = Query(..., alias="date", description="Fecha (YYYY-MM-DD)"),
    slot_minutes: int = Query(30, ge=5, le=240),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Slots del día según plantilla, excepciones y citas existentes."""
    return await availability_service.get_free_slots(
        db, clinic_id, professional_id, target_date, slot_minutes=slot_minutes
    )


# ── Plantilla semanal ────────────────────────────────

@router.get("/schedule", response_model=list[ScheduleBlockResponse])
async def list_schedule(
    professional_id: UUID = Query(...),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await availability_service.list_schedule(db, clinic_id, professional_id)


@router.post("/schedule", response_model=ScheduleBlockResponse, status_code=201)
async def create_schedule_block(
    data: ScheduleBlockCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Agrega un bloque semanal; 409 si se superpone con otro del mismo día."""
    return await availability_service.set_schedule_block(db, clinic_id, data)


@router.delete("/schedule/{block_id}", status_code=204)
async def delete_schedule_block(
    block_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    await availability_service.deactivate_schedule_block(db, clinic_id, block_id)


# ── Excepciones ──────────────────────────────────────

@router.get("/exceptions", response_model=list[AvailabilityExceptionResponse])
async def list_exceptions(
    professional_id: UUID = Query(...),
    include_expired: bool = Query(False),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await availability_service.list_exceptions(
        db, clinic_id, professional_id, include_expired=include_expired
    )


@router.post("/exceptions", response_model=AvailabilityExceptionResponse, status_code=201)
async def create_exception(
    data: AvailabilityExceptionCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Bloquea la agenda (vacaciones, capacitación, etc.). No cancela citas existentes."""
    return await availability_service.add_exception(db, clinic_id, data, created_by=user_id)


@router.delete("/exceptions/{exception_id}", status_code=204)
async def delete_exception(
    exception_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    await availability_service.remove_exception(db, clinic_id, exception_id)
