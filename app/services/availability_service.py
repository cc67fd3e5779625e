"""
Calendario de disponibilidad: plantilla semanal + excepciones.

Un intervalo [start, end) está disponible si cada tramo diario (en hora
local de la clínica) queda cubierto por bloques activos de la plantilla y
ninguna excepción vigente lo toca. Las citas existentes NO se consideran
aquí; eso lo resuelve la validación de solapamiento en appointment_service.
"""

import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictException,
    NotFoundException,
    UnavailableException,
    ValidationException,
)
from app.core.timeutils import as_utc, clinic_tz, local_day_bounds, local_today, split_by_local_day, utcnow
from app.models.appointment import BLOCKING_STATUSES, Appointment
from app.models.availability_exception import AvailabilityException
from app.models.professional_schedule import ProfessionalSchedule
from app.schemas.availability import (
    AvailabilityExceptionCreate,
    FreeSlotsResponse,
    ScheduleBlockCreate,
    TimeSlot,
)
from app.services import professional_service

logger = logging.getLogger(__name__)

DAY_NAMES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]


# ── Helpers ──────────────────────────────────────────

def _covered(blocks: list[tuple[time, time]], start: time, end: time) -> bool:
    """¿La unión de bloques cubre [start, end) sin huecos?"""
    cursor = start
    for block_start, block_end in sorted(blocks):
        if block_start > cursor:
            return False
        if block_end > cursor:
            cursor = block_end
        if cursor >= end:
            return True
    return cursor >= end


async def _active_blocks(
    db: AsyncSession, clinic_id: UUID, professional_id: UUID
) -> dict[int, list[tuple[time, time]]]:
    result = await db.execute(
        select(ProfessionalSchedule).where(
            ProfessionalSchedule.clinic_id == clinic_id,
            ProfessionalSchedule.professional_id == professional_id,
            ProfessionalSchedule.is_active.is_(True),
        )
    )
    by_day: dict[int, list[tuple[time, time]]] = {}
    for block in result.scalars().all():
        by_day.setdefault(block.day_of_week, []).append((block.start_time, block.end_time))
    return by_day


async def _live_exceptions(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    first_day: date,
    last_day: date,
    today: date,
) -> list[AvailabilityException]:
    """Excepciones que tocan [first_day, last_day] y no están vencidas."""
    result = await db.execute(
        select(AvailabilityException).where(
            AvailabilityException.clinic_id == clinic_id,
            AvailabilityException.professional_id == professional_id,
            AvailabilityException.date_end >= today,
            AvailabilityException.date_start <= last_day,
            AvailabilityException.date_end >= first_day,
        )
    )
    return list(result.scalars().all())


# ── Consulta de disponibilidad ───────────────────────

async def check_availability(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    start: datetime,
    end: datetime,
    today: date | None = None,
) -> None:
    """Lanza UnavailableException con el motivo si [start, end) no está disponible."""
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise ValidationException("El fin del intervalo debe ser posterior al inicio")

    today = today or local_today()
    pieces = split_by_local_day(start, end)
    blocks = await _active_blocks(db, clinic_id, professional_id)

    if not blocks:
        raise UnavailableException("El profesional no tiene horario configurado")

    for day, piece_start, piece_end in pieces:
        if not _covered(blocks.get(day.weekday(), []), piece_start, piece_end):
            raise UnavailableException(
                f"Fuera del horario del profesional ({DAY_NAMES[day.weekday()]} "
                f"{piece_start.strftime('%H:%M')})"
            )

    exceptions = await _live_exceptions(
        db, clinic_id, professional_id, pieces[0][0], pieces[-1][0], today
    )
    for day, piece_start, piece_end in pieces:
        for exc in exceptions:
            if exc.blocks(day, piece_start, piece_end):
                raise UnavailableException(
                    f"Agenda bloqueada el {day.isoformat()}"
                    + (f": {exc.reason}" if exc.reason else "")
                )


async def is_available(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    start: datetime,
    end: datetime,
    today: date | None = None,
) -> bool:
    try:
        await check_availability(db, clinic_id, professional_id, start, end, today)
    except UnavailableException:
        return False
    return True


async def get_free_slots(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    target_date: date,
    slot_minutes: int = 30,
    now: datetime | None = None,
) -> FreeSlotsResponse:
    """
    Slots de un día local para un profesional.

    1. Recorre los bloques de la plantilla para el día de la semana
    2. Descarta lo que cae en una excepción vigente
    3. Marca como ocupados los slots con cita activa o ya pasados
    """
    await professional_service.get_professional(db, clinic_id, professional_id)
    now = as_utc(now) if now else utcnow()
    tz = clinic_tz()

    blocks = (await _active_blocks(db, clinic_id, professional_id)).get(target_date.weekday(), [])
    if not blocks:
        return FreeSlotsResponse(professional_id=professional_id, date=target_date, slots=[])

    exceptions = await _live_exceptions(
        db, clinic_id, professional_id, target_date, target_date, local_today()
    )

    day_start, day_end = local_day_bounds(target_date)
    existing = (
        await db.execute(
            select(Appointment).where(
                Appointment.clinic_id == clinic_id,
                Appointment.professional_id == professional_id,
                Appointment.start_time < day_end,
                Appointment.end_time > day_start,
                Appointment.status.in_(BLOCKING_STATUSES),
            )
        )
    ).scalars().all()
    busy = [(as_utc(a.start_time), as_utc(a.end_time)) for a in existing]

    delta = timedelta(minutes=slot_minutes)
    slots: list[TimeSlot] = []

    for block_start, block_end in sorted(blocks):
        current = datetime.combine(target_date, block_start).replace(tzinfo=tz)
        limit = datetime.combine(target_date, block_end).replace(tzinfo=tz)

        while current + delta <= limit:
            slot_start, slot_end = current, current + delta
            if any(exc.blocks(target_date, slot_start.time(), slot_end.time()) for exc in exceptions):
                current += delta
                continue

            utc_start, utc_end = as_utc(slot_start), as_utc(slot_end)
            free = utc_start >= now and not any(
                b_start < utc_end and b_end > utc_start for b_start, b_end in busy
            )
            slots.append(TimeSlot(start_time=utc_start, end_time=utc_end, available=free))
            current += delta

    slots.sort(key=lambda s: s.start_time)
    return FreeSlotsResponse(professional_id=professional_id, date=target_date, slots=slots)


# ── Plantilla semanal ────────────────────────────────

async def set_schedule_block(
    db: AsyncSession,
    clinic_id: UUID,
    data: ScheduleBlockCreate,
) -> ProfessionalSchedule:
    """Crea un bloque de horario semanal para un profesional."""
    await professional_service.get_professional(db, clinic_id, data.professional_id)

    # Verificar superposición de horarios del mismo profesional/día
    overlapping = await db.execute(
        select(ProfessionalSchedule).where(
            ProfessionalSchedule.clinic_id == clinic_id,
            ProfessionalSchedule.professional_id == data.professional_id,
            ProfessionalSchedule.day_of_week == data.day_of_week,
            ProfessionalSchedule.is_active.is_(True),
            ProfessionalSchedule.start_time < data.end_time,
            ProfessionalSchedule.end_time > data.start_time,
        )
    )
    if overlapping.scalars().first():
        raise ConflictException(
            "Ya existe un horario que se superpone para este profesional en ese día"
        )

    block = ProfessionalSchedule(
        clinic_id=clinic_id,
        professional_id=data.professional_id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
    )
    db.add(block)
    await db.commit()
    await db.refresh(block)
    return block


async def list_schedule(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
) -> list[ProfessionalSchedule]:
    result = await db.execute(
        select(ProfessionalSchedule).where(
            ProfessionalSchedule.clinic_id == clinic_id,
            ProfessionalSchedule.professional_id == professional_id,
            ProfessionalSchedule.is_active.is_(True),
        ).order_by(ProfessionalSchedule.day_of_week, ProfessionalSchedule.start_time)
    )
    return list(result.scalars().all())


async def deactivate_schedule_block(
    db: AsyncSession,
    clinic_id: UUID,
    block_id: UUID,
) -> None:
    """Desactiva un bloque de horario (soft delete)."""
    block = (
        await db.execute(
            select(ProfessionalSchedule).where(
                ProfessionalSchedule.id == block_id,
                ProfessionalSchedule.clinic_id == clinic_id,
            )
        )
    ).scalar_one_or_none()
    if not block:
        raise NotFoundException("Horario")

    block.is_active = False
    await db.commit()


# ── Excepciones ──────────────────────────────────────

async def add_exception(
    db: AsyncSession,
    clinic_id: UUID,
    data: AvailabilityExceptionCreate,
    created_by: UUID | None = None,
) -> AvailabilityException:
    """
    Registra un bloqueo de agenda. Las citas ya reservadas dentro del rango
    se mantienen; solo se impiden reservas nuevas.
    """
    await professional_service.get_professional(db, clinic_id, data.professional_id)

    exc = AvailabilityException(
        clinic_id=clinic_id,
        professional_id=data.professional_id,
        date_start=data.date_start,
        date_end=data.date_end,
        is_full_day=data.is_full_day,
        start_time=None if data.is_full_day else data.start_time,
        end_time=None if data.is_full_day else data.end_time,
        reason=data.reason,
        created_by=created_by,
    )
    db.add(exc)
    await db.commit()
    await db.refresh(exc)

    logger.info(
        f"Excepción de agenda {exc.id} para profesional {data.professional_id}: "
        f"{data.date_start} → {data.date_end}"
    )
    return exc


async def remove_exception(
    db: AsyncSession,
    clinic_id: UUID,
    exception_id: UUID,
) -> None:
    exc = (
        await db.execute(
            select(AvailabilityException).where(
                AvailabilityException.id == exception_id,
                AvailabilityException.clinic_id == clinic_id,
            )
        )
    ).scalar_one_or_none()
    if not exc:
        raise NotFoundException("Excepción de agenda")

    await db.delete(exc)
    await db.commit()


async def list_exceptions(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    include_expired: bool = False,
) -> list[AvailabilityException]:
    query = select(AvailabilityException).where(
        AvailabilityException.clinic_id == clinic_id,
        AvailabilityException.professional_id == professional_id,
    )
    if not include_expired:
        query = query.where(AvailabilityException.date_end >= local_today())

    result = await db.execute(query.order_by(AvailabilityException.date_start))
    return list(result.scalars().all())
