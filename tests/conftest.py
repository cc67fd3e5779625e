"""
Fixtures compartidas para Pytest.
Configura base de datos de test, datos base de la clínica y cliente HTTP.
"""

from collections.abc import AsyncGenerator
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import Base, build_engine, get_db
from app.main import app
from app.models.appointment import Appointment, AppointmentStatus
from app.models.inventory import InventoryItem
from app.models.kit_item import KitItem
from app.models.professional import Professional
from app.models.professional_schedule import ProfessionalSchedule
from app.models.service import Service
from app.schemas.appointment import AppointmentCreate
from app.schemas.inventory import InventoryItemCreate
from app.schemas.kit import KitItemCreate
from app.schemas.professional import ProfessionalCreate
from app.schemas.service import ServiceCreate
from app.services import (
    appointment_service,
    inventory_service,
    kit_service,
    professional_service,
    service_service,
)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """Instante UTC (la clínica de test opera en UTC)."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


# ── Engine de test (SQLite async, un archivo por test) ─

@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provee una sesión de DB de test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP de test: una sesión nueva por request, igual que get_db."""

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Datos base ───────────────────────────────────────

@pytest.fixture
def clinic_id() -> UUID:
    return uuid4()


@pytest.fixture
def monday() -> date:
    """Próximo lunes (siempre en el futuro, así las excepciones no están vencidas)."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 or 7)


@pytest_asyncio.fixture
async def professional(db_session: AsyncSession, clinic_id: UUID) -> Professional:
    return await professional_service.create_professional(
        db_session,
        clinic_id,
        ProfessionalCreate(
            first_name="Ana",
            last_name="Torres",
            specialty="Dermatología",
            commission_rate=Decimal("10"),
        ),
    )


@pytest_asyncio.fixture
async def weekly_schedule(
    db_session: AsyncSession, clinic_id: UUID, professional: Professional
) -> list[ProfessionalSchedule]:
    """Lunes a sábado de 09:00 a 17:00; domingo libre."""
    blocks = [
        ProfessionalSchedule(
            clinic_id=clinic_id,
            professional_id=professional.id,
            day_of_week=day,
            start_time=time(9, 0),
            end_time=time(17, 0),
        )
        for day in range(6)
    ]
    db_session.add_all(blocks)
    await db_session.commit()
    return blocks


@pytest_asyncio.fixture
async def service(db_session: AsyncSession, clinic_id: UUID) -> Service:
    return await service_service.create_service(
        db_session,
        clinic_id,
        ServiceCreate(
            code="LIMP-FAC",
            name="Limpieza facial",
            duration_minutes=30,
            price=Decimal("150.00"),
        ),
    )


@pytest_asyncio.fixture
async def gauze(db_session: AsyncSession, clinic_id: UUID) -> InventoryItem:
    return await inventory_service.create_item(
        db_session,
        clinic_id,
        InventoryItemCreate(
            code="GAS-001",
            name="Gasa estéril",
            initial_stock=Decimal("10"),
            min_stock=Decimal("3"),
            unit_cost=Decimal("1.50"),
        ),
    )


@pytest_asyncio.fixture
async def kit(
    db_session: AsyncSession, clinic_id: UUID, service: Service, gauze: InventoryItem
) -> KitItem:
    """El procedimiento consume 2 gasas."""
    return await kit_service.add_kit_item(
        db_session,
        clinic_id,
        KitItemCreate(service_id=service.id, item_id=gauze.id, quantity=Decimal("2")),
    )


@pytest.fixture
def book(db_session, clinic_id, professional, service, weekly_schedule):
    """
    Reserva una cita del procedimiento base a la hora indicada.
    Guarda solo los ids: un rollback en la sesión expira las instancias ORM.
    """
    professional_id, service_id = professional.id, service.id

    async def _book(start: datetime, session: AsyncSession | None = None) -> Appointment:
        return await appointment_service.book_appointment(
            session or db_session,
            clinic_id,
            AppointmentCreate(
                patient_id=uuid4(),
                professional_id=professional_id,
                service_id=service_id,
                start_time=start,
            ),
        )

    return _book


@pytest.fixture
def advance(db_session, clinic_id):
    """Lleva una cita por la state machine hasta `target` (sin completar)."""
    path = [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.ARRIVED,
        AppointmentStatus.IN_SERVICE,
    ]

    async def _advance(appt: Appointment, target: AppointmentStatus) -> Appointment:
        appointment_id = appt.id
        for step in path:
            appt = await appointment_service.change_status(db_session, clinic_id, appointment_id, step)
            if step == target:
                break
        return appt

    return _advance
