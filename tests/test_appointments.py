"""
Tests de reserva, reprogramación y state machine de citas.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    ConflictException,
    InvalidTransitionException,
    NotFoundException,
    UnavailableException,
)
from app.core.timeutils import as_utc
from app.models.appointment import Appointment, AppointmentStatus
from app.models.commission import CommissionEntry, CommissionEntryStatus
from app.models.inventory import StockMovement, StockMovementReason
from app.schemas.appointment import AppointmentCreate
from app.schemas.availability import AvailabilityExceptionCreate
from app.services import appointment_service, audit_service, availability_service, inventory_service
from tests.conftest import at


# ── Reserva ──────────────────────────────────────────

async def test_book_sets_end_from_service_duration(book, monday):
    appt = await book(at(monday, 10))

    assert appt.status == AppointmentStatus.SCHEDULED
    assert as_utc(appt.end_time) - as_utc(appt.start_time) == timedelta(minutes=30)
    assert appt.professional.full_name == "Ana Torres"
    assert appt.service.name == "Limpieza facial"


async def test_overlapping_booking_is_rejected(book, monday):
    await book(at(monday, 10))

    with pytest.raises(ConflictException):
        await book(at(monday, 10, 15))


async def test_back_to_back_bookings_are_allowed(book, monday):
    first = await book(at(monday, 10))
    second = await book(at(monday, 10, 30))

    assert as_utc(first.end_time) == as_utc(second.start_time)


async def test_canceled_appointment_frees_the_slot(book, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))
    await appointment_service.cancel_appointment(db_session, clinic_id, appt.id, reason="Paciente enfermo")

    again = await book(at(monday, 10))
    assert again.status == AppointmentStatus.SCHEDULED


async def test_booking_outside_weekly_template(book, monday):
    with pytest.raises(UnavailableException):
        await book(at(monday, 8, 45))

    with pytest.raises(UnavailableException):
        await book(at(monday, 16, 45))

    sunday = monday - timedelta(days=1)
    with pytest.raises(UnavailableException):
        await book(at(sunday, 10))


async def test_booking_inside_full_day_exception(book, monday, db_session, clinic_id, professional):
    await availability_service.add_exception(
        db_session,
        clinic_id,
        AvailabilityExceptionCreate(
            professional_id=professional.id,
            date_start=monday,
            date_end=monday + timedelta(days=2),
            reason="Congreso",
        ),
    )

    with pytest.raises(UnavailableException, match="Congreso"):
        await book(at(monday + timedelta(days=1), 11))

    # Fuera del rango sigue disponible
    appt = await book(at(monday + timedelta(days=3), 11))
    assert appt.status == AppointmentStatus.SCHEDULED


async def test_booking_without_template_is_unavailable(db_session, clinic_id, professional, service, monday):
    with pytest.raises(UnavailableException):
        await appointment_service.book_appointment(
            db_session,
            clinic_id,
            AppointmentCreate(
                patient_id=uuid4(),
                professional_id=professional.id,
                service_id=service.id,
                start_time=at(monday, 10),
            ),
        )


async def test_booking_unknown_professional(db_session, clinic_id, service, monday):
    with pytest.raises(NotFoundException):
        await appointment_service.book_appointment(
            db_session,
            clinic_id,
            AppointmentCreate(
                patient_id=uuid4(),
                professional_id=uuid4(),
                service_id=service.id,
                start_time=at(monday, 10),
            ),
        )


async def test_concurrent_bookings_same_slot_only_one_wins(book, monday, session_factory, db_session):
    async def attempt():
        async with session_factory() as session:
            return await book(at(monday, 11), session=session)

    results = await asyncio.gather(*(attempt() for _ in range(4)), return_exceptions=True)

    booked = [r for r in results if isinstance(r, Appointment)]
    conflicts = [r for r in results if isinstance(r, ConflictException)]
    assert len(booked) == 1
    assert len(conflicts) == 3

    rows = (await db_session.execute(select(Appointment))).scalars().all()
    assert len(rows) == 1


async def test_booking_is_audited(book, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))
    await appointment_service.cancel_appointment(db_session, clinic_id, appt.id)

    logs = await audit_service.get_audit_logs(
        db_session, clinic_id=clinic_id, entity="appointment", entity_id=appt.id
    )
    assert logs["total"] == 2
    assert sorted(log.action for log in logs["items"]) == ["create", "status_change"]

    other_clinic = await audit_service.get_audit_logs(db_session, clinic_id=uuid4())
    assert other_clinic["total"] == 0


# ── Reprogramación ───────────────────────────────────

async def test_reschedule_to_free_slot(book, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))

    moved = await appointment_service.reschedule_appointment(
        db_session, clinic_id, appt.id, at(monday, 10, 15)
    )

    # Puede solaparse con su propio horario anterior
    assert as_utc(moved.start_time) == at(monday, 10, 15)
    assert as_utc(moved.end_time) == at(monday, 10, 45)


async def test_reschedule_onto_other_appointment_fails(book, monday, db_session, clinic_id):
    first_id = (await book(at(monday, 10))).id
    await book(at(monday, 11))

    with pytest.raises(ConflictException):
        await appointment_service.reschedule_appointment(
            db_session, clinic_id, first_id, at(monday, 11, 15)
        )

    unchanged = await appointment_service.get_appointment(db_session, clinic_id, first_id)
    assert as_utc(unchanged.start_time) == at(monday, 10)


async def test_reschedule_after_arrival_is_invalid(book, advance, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))
    await advance(appt, AppointmentStatus.ARRIVED)

    with pytest.raises(InvalidTransitionException):
        await appointment_service.reschedule_appointment(
            db_session, clinic_id, appt.id, at(monday, 12)
        )


# ── State machine ────────────────────────────────────

@pytest.mark.parametrize(
    "target",
    [AppointmentStatus.IN_SERVICE, AppointmentStatus.COMPLETED],
)
async def test_cannot_skip_states_from_scheduled(book, monday, db_session, clinic_id, target):
    appt = await book(at(monday, 10))

    with pytest.raises(InvalidTransitionException) as exc_info:
        await appointment_service.change_status(db_session, clinic_id, appt.id, target)

    assert exc_info.value.current == "scheduled"
    assert exc_info.value.requested == target.value


async def test_scheduled_can_go_directly_to_arrived(book, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))
    appt = await appointment_service.change_status(
        db_session, clinic_id, appt.id, AppointmentStatus.ARRIVED
    )
    assert appt.status == AppointmentStatus.ARRIVED


async def test_no_show_not_allowed_once_in_service(book, advance, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))
    await advance(appt, AppointmentStatus.IN_SERVICE)

    with pytest.raises(InvalidTransitionException):
        await appointment_service.change_status(
            db_session, clinic_id, appt.id, AppointmentStatus.NO_SHOW
        )


@pytest.mark.parametrize(
    "terminal",
    [AppointmentStatus.CANCELED, AppointmentStatus.NO_SHOW],
)
async def test_terminal_states_accept_no_transitions(book, monday, db_session, clinic_id, terminal):
    appt_id = (await book(at(monday, 10))).id
    await appointment_service.change_status(db_session, clinic_id, appt_id, terminal)

    for target in AppointmentStatus:
        with pytest.raises(InvalidTransitionException):
            await appointment_service.change_status(db_session, clinic_id, appt_id, target)

    appt = await appointment_service.get_appointment(db_session, clinic_id, appt_id)
    assert appt.status == terminal
    assert appt.is_terminal
    assert appointment_service.to_response(appt).is_terminal


async def test_cancel_records_reason(book, monday, db_session, clinic_id):
    appt = await book(at(monday, 10))
    canceled = await appointment_service.cancel_appointment(
        db_session, clinic_id, appt.id, reason="Reprogramará por teléfono"
    )

    assert canceled.status == AppointmentStatus.CANCELED
    assert canceled.cancellation_reason == "Reprogramará por teléfono"
    assert canceled.canceled_at is not None


# ── Flujo completo ───────────────────────────────────

async def test_full_visit_consumes_kit_and_accrues_commission(
    book, advance, kit, gauze, monday, db_session, clinic_id
):
    gauze_id = gauze.id
    appt = await book(at(monday, 10))
    appt_id = appt.id
    await advance(appt, AppointmentStatus.IN_SERVICE)

    done = await appointment_service.change_status(
        db_session, clinic_id, appt_id, AppointmentStatus.COMPLETED
    )
    assert done.status == AppointmentStatus.COMPLETED
    assert done.completed_at is not None

    item = await inventory_service.get_item(db_session, clinic_id, gauze_id)
    assert item.current_stock == Decimal("8")

    movements = (
        await db_session.execute(
            select(StockMovement).where(StockMovement.reference == f"appointment:{appt_id}")
        )
    ).scalars().all()
    assert len(movements) == 1
    assert movements[0].reason == StockMovementReason.PATIENT_USE
    assert movements[0].quantity == Decimal("2")

    entries = (
        await db_session.execute(
            select(CommissionEntry).where(CommissionEntry.appointment_id == appt_id)
        )
    ).scalars().all()
    assert len(entries) == 1
    assert entries[0].commission_amount == Decimal("15.00")
    assert entries[0].status == CommissionEntryStatus.PENDING
    assert entries[0].period == monday.strftime("%Y-%m")

    # Completar de nuevo no vuelve a descontar ni a devengar
    with pytest.raises(InvalidTransitionException):
        await appointment_service.change_status(
            db_session, clinic_id, appt_id, AppointmentStatus.COMPLETED
        )
    item = await inventory_service.get_item(db_session, clinic_id, gauze_id)
    assert item.current_stock == Decimal("8")


async def test_daily_agenda_lists_only_that_day(book, monday, db_session, clinic_id, professional):
    await book(at(monday, 9))
    await book(at(monday, 15))
    await book(at(monday + timedelta(days=1), 9))

    agenda = await appointment_service.get_daily_agenda(db_session, clinic_id, professional.id, monday)

    assert [a.start_time.hour for a in agenda] == [9, 15]
    assert all(a.professional_name == "Ana Torres" for a in agenda)


async def test_list_appointments_filters_by_status(book, monday, db_session, clinic_id):
    first = await book(at(monday, 9))
    await book(at(monday, 10))
    await appointment_service.cancel_appointment(db_session, clinic_id, first.id)

    result = await appointment_service.list_appointments(
        db_session, clinic_id, status=AppointmentStatus.SCHEDULED
    )
    assert result["total"] == 1
    assert result["items"][0].status == AppointmentStatus.SCHEDULED
