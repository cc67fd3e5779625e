"""
Endpoints de citas: reserva, reprogramación, cambios de estado y agenda diaria.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id, get_user_id
from app.database import get_db
from app.models.appointment import AppointmentStatus
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatusChange,
)
from app.services import appointment_service

router = APIRouter()


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    professional_id: UUID | None = Query(None, description="Filtrar por profesional"),
    patient_id: UUID | None = Query(None, description="Filtrar por paciente"),
    status: AppointmentStatus | None = Query(None, description="Filtrar por estado"),
    date_from: date | None = Query(None, description="Desde fecha (YYYY-MM-DD)"),
    date_to: date | None = Query(None, description="Hasta fecha (YYYY-MM-DD)"),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Lista citas de la clínica con filtros y paginación."""
    return await appointment_service.list_appointments(
        db,
        clinic_id=clinic_id,
        page=page,
        size=size,
        professional_id=professional_id,
        patient_id=patient_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
    )


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserva una cita. 409 si el profesional no atiende en ese horario
    o ya tiene otra cita que se solapa.
    """
    appt = await appointment_service.book_appointment(
        db, clinic_id=clinic_id, data=data, user_id=user_id
    )
    return appointment_service.to_response(appt)


@router.get("/agenda", response_model=list[AppointmentResponse])
async def get_daily_agenda(
    professional_id: UUID = Query(...),
    target_date: date = Query(..., alias="date", description="Fecha (YYYY-MM-DD)"),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Agenda diaria de un profesional."""
    return await appointment_service.get_daily_agenda(
        db, clinic_id=clinic_id, professional_id=professional_id, target_date=target_date
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    appt = await appointment_service.get_appointment(db, clinic_id, appointment_id)
    return appointment_service.to_response(appt)


@router.patch("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Mueve una cita scheduled/confirmed a otro horario."""
    appt = await appointment_service.reschedule_appointment(
        db,
        clinic_id=clinic_id,
        appointment_id=appointment_id,
        new_start=data.start_time,
        user_id=user_id,
    )
    return appointment_service.to_response(appt)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def change_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusChange,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Cambia el estado de una cita según la state machine.
    Al completar descuenta el kit y genera la comisión; 409 si falta stock.
    """
    appt = await appointment_service.change_status(
        db,
        clinic_id=clinic_id,
        appointment_id=appointment_id,
        new_status=data.status,
        reason=data.cancellation_reason,
        user_id=user_id,
    )
    return appointment_service.to_response(appt)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    data: AppointmentCancel,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    appt = await appointment_service.cancel_appointment(
        db,
        clinic_id=clinic_id,
        appointment_id=appointment_id,
        reason=data.reason,
        user_id=user_id,
    )
    return appointment_service.to_response(appt)
