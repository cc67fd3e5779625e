"""
Lógica de negocio de citas: reserva, reprogramación y state machine.

Toda escritura que dependa de "no hay otra cita en ese horario" corre
serializada por profesional (app.core.locks) y hace commit dentro del
bloqueo, así dos reservas concurrentes no pueden solaparse.
"""

import logging
import math
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
)
from app.core.locks import professional_key, serialized
from app.core.timeutils import as_utc, local_day_bounds, to_local, utcnow
from app.models.appointment import (
    BLOCKING_STATUSES,
    RESCHEDULABLE_STATUSES,
    VALID_TRANSITIONS,
    Appointment,
    AppointmentStatus,
    is_valid_transition,
)
from app.schemas.appointment import AppointmentCreate, AppointmentResponse
from app.services import availability_service, fulfillment_service, professional_service, service_service
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────

def to_response(appt: Appointment) -> AppointmentResponse:
    """Convierte una cita (con relaciones cargadas) a su schema de respuesta."""
    resp = AppointmentResponse.model_validate(appt)
    resp.professional_name = appt.professional.full_name if appt.professional else None
    resp.service_name = appt.service.name if appt.service else None
    return resp


def _load_options():
    return [
        selectinload(Appointment.professional),
        selectinload(Appointment.service),
    ]


async def get_appointment(
    db: AsyncSession,
    clinic_id: UUID,
    appointment_id: UUID,
) -> Appointment:
    """Lee la cita desde la BD con profesional y servicio cargados."""
    appt = (
        await db.execute(
            select(Appointment)
            .options(*_load_options())
            .where(Appointment.id == appointment_id, Appointment.clinic_id == clinic_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not appt:
        raise NotFoundException("Cita")
    return appt


# ── Validación de solapamiento ───────────────────────

async def _check_overlap(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    start_time: datetime,
    end_time: datetime,
    exclude_id: UUID | None = None,
) -> None:
    """
    Verifica que no exista otra cita activa del mismo profesional.
    Dos citas se solapan si: existing.start < new.end AND existing.end > new.start
    """
    query = select(Appointment).where(
        Appointment.clinic_id == clinic_id,
        Appointment.professional_id == professional_id,
        Appointment.status.in_(BLOCKING_STATUSES),
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_id:
        query = query.where(Appointment.id != exclude_id)

    existing = (await db.execute(query.limit(1))).scalar_one_or_none()
    if existing:
        local_start = to_local(existing.start_time)
        local_end = to_local(existing.end_time)
        raise ConflictException(
            f"El profesional ya tiene una cita entre {local_start.strftime('%H:%M')} "
            f"y {local_end.strftime('%H:%M')} el {local_start.date().isoformat()}"
        )


# ── Reserva ──────────────────────────────────────────

async def book_appointment(
    db: AsyncSession,
    clinic_id: UUID,
    data: AppointmentCreate,
    user_id: UUID | None = None,
) -> Appointment:
    """
    Reserva una cita en estado `scheduled`.

    1. El fin se calcula con la duración del procedimiento
    2. El intervalo debe caer dentro del horario y fuera de excepciones
    3. No puede solaparse con otra cita activa del profesional
    Los pasos 2 y 3 + INSERT corren bajo el lock del profesional.
    """
    professional = await professional_service.get_professional(
        db, clinic_id, data.professional_id, active_only=True
    )
    service = await service_service.get_service(db, clinic_id, data.service_id, active_only=True)

    start = as_utc(data.start_time)
    end = start + timedelta(minutes=service.duration_minutes)

    try:
        async with serialized(db, professional_key(clinic_id, professional.id)):
            await availability_service.check_availability(db, clinic_id, professional.id, start, end)
            await _check_overlap(db, clinic_id, professional.id, start, end)

            appt = Appointment(
                clinic_id=clinic_id,
                patient_id=data.patient_id,
                professional_id=professional.id,
                service_id=service.id,
                start_time=start,
                end_time=end,
                status=AppointmentStatus.SCHEDULED,
                room=data.room,
                notes=data.notes,
                booked_by=user_id,
            )
            db.add(appt)
            await db.flush()

            await log_action(
                db,
                clinic_id=clinic_id,
                user_id=user_id,
                entity="appointment",
                entity_id=appt.id,
                action="create",
                new_data={
                    "professional_id": professional.id,
                    "service_id": service.id,
                    "start_time": start,
                    "end_time": end,
                },
            )
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Cita {appt.id} reservada con {professional.full_name} "
        f"({service.name}) {to_local(start).isoformat()}"
    )
    return await get_appointment(db, clinic_id, appt.id)


async def reschedule_appointment(
    db: AsyncSession,
    clinic_id: UUID,
    appointment_id: UUID,
    new_start: datetime,
    user_id: UUID | None = None,
) -> Appointment:
    """Mueve una cita scheduled/confirmed; revalida horario y solapamiento."""
    appt = await get_appointment(db, clinic_id, appointment_id)

    try:
        async with serialized(db, professional_key(clinic_id, appt.professional_id)):
            await db.refresh(appt)
            if appt.status not in RESCHEDULABLE_STATUSES:
                raise InvalidTransitionException(
                    appt.status.value,
                    "reschedule",
                    [s.value for s in RESCHEDULABLE_STATUSES],
                )

            service = await service_service.get_service(db, clinic_id, appt.service_id)
            old_start, old_end = appt.start_time, appt.end_time
            start = as_utc(new_start)
            end = start + timedelta(minutes=service.duration_minutes)

            await availability_service.check_availability(db, clinic_id, appt.professional_id, start, end)
            await _check_overlap(db, clinic_id, appt.professional_id, start, end, exclude_id=appt.id)

            appt.start_time = start
            appt.end_time = end
            await db.flush()

            await log_action(
                db,
                clinic_id=clinic_id,
                user_id=user_id,
                entity="appointment",
                entity_id=appt.id,
                action="reschedule",
                old_data={"start_time": old_start, "end_time": old_end},
                new_data={"start_time": start, "end_time": end},
            )
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Cita {appointment_id} reprogramada a {to_local(start).isoformat()}")
    return await get_appointment(db, clinic_id, appointment_id)


# ── State machine ────────────────────────────────────

async def change_status(
    db: AsyncSession,
    clinic_id: UUID,
    appointment_id: UUID,
    new_status: AppointmentStatus,
    reason: str | None = None,
    user_id: UUID | None = None,
) -> Appointment:
    """
    Aplica una transición de la state machine.

    Al pasar a `completed` se ejecuta el fulfillment (kit + comisión) en la
    misma transacción: si falta stock, la cita sigue en `in_service`.
    """
    appt = await get_appointment(db, clinic_id, appointment_id)

    try:
        async with serialized(db, professional_key(clinic_id, appt.professional_id)):
            await db.refresh(appt)
            old_status = appt.status

            if not is_valid_transition(old_status, new_status):
                raise InvalidTransitionException(
                    old_status.value,
                    new_status.value,
                    [s.value for s in VALID_TRANSITIONS.get(old_status, [])],
                )

            if new_status == AppointmentStatus.COMPLETED:
                await fulfillment_service.fulfill_appointment(db, appt, user_id=user_id)
                appt.completed_at = utcnow()
            elif new_status == AppointmentStatus.CANCELED:
                appt.cancellation_reason = reason
                appt.canceled_at = utcnow()

            appt.status = new_status
            await db.flush()

            await log_action(
                db,
                clinic_id=clinic_id,
                user_id=user_id,
                entity="appointment",
                entity_id=appt.id,
                action="status_change",
                old_data={"status": old_status},
                new_data={"status": new_status, "reason": reason},
            )
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Cita {appointment_id}: {old_status.value} → {new_status.value}")
    return await get_appointment(db, clinic_id, appointment_id)


async def cancel_appointment(
    db: AsyncSession,
    clinic_id: UUID,
    appointment_id: UUID,
    reason: str | None = None,
    user_id: UUID | None = None,
) -> Appointment:
    return await change_status(
        db, clinic_id, appointment_id, AppointmentStatus.CANCELED, reason=reason, user_id=user_id
    )


# ── Consultas ────────────────────────────────────────

async def list_appointments(
    db: AsyncSession,
    clinic_id: UUID,
    page: int = 1,
    size: int = 20,
    professional_id: UUID | None = None,
    patient_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    query = select(Appointment).where(Appointment.clinic_id == clinic_id)

    if professional_id:
        query = query.where(Appointment.professional_id == professional_id)
    if patient_id:
        query = query.where(Appointment.patient_id == patient_id)
    if status:
        query = query.where(Appointment.status == status)
    if date_from:
        query = query.where(Appointment.start_time >= local_day_bounds(date_from)[0])
    if date_to:
        query = query.where(Appointment.start_time < local_day_bounds(date_to)[1])

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = (
        query.options(*_load_options())
        .order_by(Appointment.start_time)
        .offset((page - 1) * size)
        .limit(size)
    )
    appointments = (await db.execute(query)).scalars().all()

    return {
        "items": [to_response(a) for a in appointments],
        "total": total,
        "page": page,
        "size": size,
        "pages": max(1, math.ceil(total / size)),
    }


async def get_daily_agenda(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    target_date: date,
) -> list[AppointmentResponse]:
    """Todas las citas de un profesional para un día local."""
    day_start, day_end = local_day_bounds(target_date)

    result = await db.execute(
        select(Appointment)
        .options(*_load_options())
        .where(
            Appointment.clinic_id == clinic_id,
            Appointment.professional_id == professional_id,
            Appointment.start_time >= day_start,
            Appointment.start_time < day_end,
        )
        .order_by(Appointment.start_time)
    )
    return [to_response(a) for a in result.scalars().all()]
