"""
Tests del calendario de disponibilidad: plantilla semanal y excepciones.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.config import get_settings
from app.core.exceptions import ConflictException, UnavailableException, ValidationException
from app.core.timeutils import split_by_local_day
from app.models.professional_schedule import ProfessionalSchedule
from app.schemas.availability import AvailabilityExceptionCreate, ScheduleBlockCreate
from app.services import availability_service
from app.services.availability_service import _covered
from tests.conftest import at


# ── Helpers puros ────────────────────────────────────

def test_covered_joins_adjacent_blocks():
    blocks = [(time(12), time(15)), (time(9), time(12))]
    assert _covered(blocks, time(11, 30), time(12, 30))
    assert not _covered(blocks, time(14, 30), time(15, 30))


def test_covered_detects_gap_between_blocks():
    blocks = [(time(9), time(12)), (time(14), time(17))]
    assert not _covered(blocks, time(11, 30), time(14, 30))
    assert _covered(blocks, time(14), time(17))


def test_split_by_local_day_handles_midnight(monday):
    pieces = split_by_local_day(at(monday, 23), at(monday + timedelta(days=1), 1))
    assert pieces == [
        (monday, time(23), time.max),
        (monday + timedelta(days=1), time(0), time(1)),
    ]


# 1 de noviembre de 2026: Nueva York vuelve de EDT (UTC-4) a EST (UTC-5) a las 02:00
FALL_BACK = datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc)


def test_split_by_local_day_across_fall_back(monkeypatch):
    monkeypatch.setattr(get_settings(), "CLINIC_TIMEZONE", "America/New_York")

    # 01:30 EDT → 01:00 EST: el reloj retrocede dentro del tramo
    pieces = split_by_local_day(FALL_BACK, FALL_BACK + timedelta(minutes=30))

    assert pieces == [(date(2026, 11, 1), time(1), time(2))]


async def test_fall_back_hour_is_bookable(db_session, clinic_id, professional, monkeypatch):
    monkeypatch.setattr(get_settings(), "CLINIC_TIMEZONE", "America/New_York")
    await availability_service.set_schedule_block(
        db_session,
        clinic_id,
        ScheduleBlockCreate(
            professional_id=professional.id,
            day_of_week=6,
            start_time=time(0),
            end_time=time(23, 59),
        ),
    )
    early = date(2026, 10, 1)

    assert await availability_service.is_available(
        db_session, clinic_id, professional.id, FALL_BACK, FALL_BACK + timedelta(minutes=30), today=early
    )
    # La hora repetida completa (01:00 EDT → 01:00 EST) también entra
    assert await availability_service.is_available(
        db_session, clinic_id, professional.id,
        FALL_BACK - timedelta(minutes=30), FALL_BACK + timedelta(minutes=30), today=early,
    )


# ── is_available ─────────────────────────────────────

async def test_inside_template_is_available(db_session, clinic_id, professional, weekly_schedule, monday):
    assert await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 9), at(monday, 17)
    )


async def test_interval_must_fit_template(db_session, clinic_id, professional, weekly_schedule, monday):
    assert not await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 16, 30), at(monday, 17, 30)
    )


async def test_inactive_block_does_not_count(db_session, clinic_id, professional, weekly_schedule, monday):
    monday_block = next(b for b in weekly_schedule if b.day_of_week == 0)
    await availability_service.deactivate_schedule_block(db_session, clinic_id, monday_block.id)

    assert not await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 10), at(monday, 11)
    )


async def test_empty_interval_is_rejected(db_session, clinic_id, professional, weekly_schedule, monday):
    with pytest.raises(ValidationException):
        await availability_service.check_availability(
            db_session, clinic_id, professional.id, at(monday, 10), at(monday, 10)
        )


async def test_partial_exception_blocks_only_its_window(
    db_session, clinic_id, professional, weekly_schedule, monday
):
    await availability_service.add_exception(
        db_session,
        clinic_id,
        AvailabilityExceptionCreate(
            professional_id=professional.id,
            date_start=monday,
            date_end=monday,
            is_full_day=False,
            start_time=time(12),
            end_time=time(14),
            reason="Capacitación",
        ),
    )

    check = availability_service.is_available
    assert not await check(db_session, clinic_id, professional.id, at(monday, 13), at(monday, 13, 30))
    assert not await check(db_session, clinic_id, professional.id, at(monday, 11, 45), at(monday, 12, 15))
    assert await check(db_session, clinic_id, professional.id, at(monday, 11, 30), at(monday, 12))
    assert await check(db_session, clinic_id, professional.id, at(monday, 14), at(monday, 14, 30))


async def test_expired_exception_is_ignored(db_session, clinic_id, professional, weekly_schedule, monday):
    await availability_service.add_exception(
        db_session,
        clinic_id,
        AvailabilityExceptionCreate(
            professional_id=professional.id,
            date_start=monday,
            date_end=monday,
        ),
    )

    # Vista desde después del fin de la excepción: ya no bloquea
    later = monday + timedelta(days=1)
    assert await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 10), at(monday, 10, 30), today=later
    )
    assert not await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 10), at(monday, 10, 30), today=monday
    )


async def test_removing_exception_restores_availability(
    db_session, clinic_id, professional, weekly_schedule, monday
):
    exc = await availability_service.add_exception(
        db_session,
        clinic_id,
        AvailabilityExceptionCreate(professional_id=professional.id, date_start=monday, date_end=monday),
    )
    assert len(await availability_service.list_exceptions(db_session, clinic_id, professional.id)) == 1

    await availability_service.remove_exception(db_session, clinic_id, exc.id)

    assert await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 10), at(monday, 11)
    )
    assert await availability_service.list_exceptions(db_session, clinic_id, professional.id) == []


async def test_wall_clock_uses_clinic_timezone(
    db_session, clinic_id, professional, weekly_schedule, monday, monkeypatch
):
    # Lima = UTC-5: 14:00 UTC son las 09:00 locales
    monkeypatch.setattr(get_settings(), "CLINIC_TIMEZONE", "America/Lima")

    assert await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 14), at(monday, 14, 30)
    )
    assert not await availability_service.is_available(
        db_session, clinic_id, professional.id, at(monday, 13), at(monday, 13, 30)
    )


# ── Plantilla semanal ────────────────────────────────

async def test_overlapping_schedule_block_is_rejected(db_session, clinic_id, professional, weekly_schedule):
    with pytest.raises(ConflictException):
        await availability_service.set_schedule_block(
            db_session,
            clinic_id,
            ScheduleBlockCreate(
                professional_id=professional.id,
                day_of_week=0,
                start_time=time(16),
                end_time=time(19),
            ),
        )


async def test_sunday_block_makes_sunday_bookable(db_session, clinic_id, professional, weekly_schedule, monday):
    block = await availability_service.set_schedule_block(
        db_session,
        clinic_id,
        ScheduleBlockCreate(
            professional_id=professional.id,
            day_of_week=6,
            start_time=time(10),
            end_time=time(13),
        ),
    )
    assert isinstance(block, ProfessionalSchedule)

    sunday = monday + timedelta(days=6)
    assert await availability_service.is_available(
        db_session, clinic_id, professional.id, at(sunday, 10), at(sunday, 12)
    )
    schedule = await availability_service.list_schedule(db_session, clinic_id, professional.id)
    assert len(schedule) == 7


# ── Slots ────────────────────────────────────────────

async def test_free_slots_mark_booked_and_skip_exceptions(
    book, db_session, clinic_id, professional, monday
):
    await book(at(monday, 10))
    await availability_service.add_exception(
        db_session,
        clinic_id,
        AvailabilityExceptionCreate(
            professional_id=professional.id,
            date_start=monday,
            date_end=monday,
            is_full_day=False,
            start_time=time(12),
            end_time=time(13),
        ),
    )

    result = await availability_service.get_free_slots(
        db_session, clinic_id, professional.id, monday, slot_minutes=60
    )
    by_hour = {slot.start_time.hour: slot.available for slot in result.slots}

    assert 12 not in by_hour
    assert by_hour[10] is False
    assert by_hour[9] is True
    assert len(result.slots) == 7


async def test_no_slots_on_day_off(db_session, clinic_id, professional, weekly_schedule, monday):
    sunday = monday + timedelta(days=6)
    result = await availability_service.get_free_slots(db_session, clinic_id, professional.id, sunday)
    assert result.slots == []
