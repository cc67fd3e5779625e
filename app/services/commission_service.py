"""
Ledger de comisiones: devengo al completar, ajustes, liquidación y pago.

Las entradas no se editan. Un error se corrige con una entrada
`adjustment`; el pago solo cambia status/paid_at/paid_reference.
"""

import logging
import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.core.locks import commission_key, serialized
from app.core.timeutils import period_bounds, to_local, utcnow
from app.models.appointment import Appointment
from app.models.commission import CommissionEntry, CommissionEntryStatus, CommissionEntryType
from app.models.professional import Professional
from app.models.service import Service
from app.schemas.commission import (
    CommissionAdjustmentCreate,
    CommissionSummary,
    LiquidationResponse,
    ProfessionalLiquidation,
)
from app.services import professional_service
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def _appointments_in_period(
    clinic_id: UUID, professional_id: UUID | None, period_start: date, period_end: date
):
    """Subquery de ids de citas cuyo inicio cae en el rango (fechas locales inclusivas)."""
    start, end = period_bounds(period_start, period_end)
    query = select(Appointment.id).where(
        Appointment.clinic_id == clinic_id,
        Appointment.start_time >= start,
        Appointment.start_time < end,
    )
    if professional_id:
        query = query.where(Appointment.professional_id == professional_id)
    return query


async def _get_entry(db: AsyncSession, clinic_id: UUID, entry_id: UUID) -> CommissionEntry:
    entry = (
        await db.execute(
            select(CommissionEntry)
            .where(CommissionEntry.id == entry_id, CommissionEntry.clinic_id == clinic_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not entry:
        raise NotFoundException("Entrada de comisión")
    return entry


# ── Devengo ──────────────────────────────────────────


async def accrue_for_appointment(
    db: AsyncSession,
    appointment: Appointment,
) -> CommissionEntry:
    """
    Genera la comisión de una cita completada: precio × tasa / 100.
    Corre dentro de la transacción del cambio de estado; no hace commit.
    El índice único parcial impide un segundo devengo para la misma cita.
    """
    service = await db.get(Service, appointment.service_id)
    professional = await db.get(Professional, appointment.professional_id)

    service_amount = Decimal(str(service.price))
    rate = Decimal(str(professional.commission_rate))
    amount = (service_amount * rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)

    entry = CommissionEntry(
        clinic_id=appointment.clinic_id,
        professional_id=appointment.professional_id,
        appointment_id=appointment.id,
        entry_type=CommissionEntryType.ACCRUAL,
        service_amount=service_amount,
        commission_rate=rate,
        commission_amount=amount,
        status=CommissionEntryStatus.PENDING,
        period=to_local(appointment.start_time).strftime("%Y-%m"),
    )
    db.add(entry)
    await db.flush()

    logger.info(
        f"Comisión generada: {professional.full_name} — {service.name} "
        f"S/ {service_amount} × {rate}% = S/ {amount}"
    )
    return entry


async def post_adjustment(
    db: AsyncSession,
    clinic_id: UUID,
    entry_id: UUID,
    data: CommissionAdjustmentCreate,
    user_id: UUID | None = None,
) -> CommissionEntry:
    """Registra un ajuste (positivo o negativo) sobre la cita de una entrada."""
    original = await _get_entry(db, clinic_id, entry_id)

    adjustment = CommissionEntry(
        clinic_id=clinic_id,
        professional_id=original.professional_id,
        appointment_id=original.appointment_id,
        entry_type=CommissionEntryType.ADJUSTMENT,
        service_amount=original.service_amount,
        commission_rate=original.commission_rate,
        commission_amount=data.amount.quantize(CENT, rounding=ROUND_HALF_UP),
        status=CommissionEntryStatus.PENDING,
        period=original.period,
        notes=data.notes,
    )
    try:
        db.add(adjustment)
        await db.flush()
        await log_action(
            db,
            clinic_id=clinic_id,
            user_id=user_id,
            entity="commission_entry",
            entity_id=adjustment.id,
            action="adjust",
            new_data={"adjusts": original.id, "amount": adjustment.commission_amount, "notes": data.notes},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await _get_entry(db, clinic_id, adjustment.id)


# ── Consulta ─────────────────────────────────────────


async def list_entries(
    db: AsyncSession,
    clinic_id: UUID,
    page: int = 1,
    size: int = 20,
    professional_id: UUID | None = None,
    status: CommissionEntryStatus | None = None,
    period: str | None = None,
) -> dict:
    query = select(CommissionEntry).where(CommissionEntry.clinic_id == clinic_id)

    if professional_id:
        query = query.where(CommissionEntry.professional_id == professional_id)
    if status:
        query = query.where(CommissionEntry.status == status)
    if period:
        query = query.where(CommissionEntry.period == period)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    query = query.order_by(CommissionEntry.created_at.desc()).offset((page - 1) * size).limit(size)
    items = (await db.execute(query)).scalars().all()

    return {
        "items": list(items),
        "total": total,
        "page": page,
        "size": size,
        "pages": max(1, math.ceil(total / size)),
    }


async def summarize(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    period_start: date,
    period_end: date,
) -> CommissionSummary:
    """Totales del profesional para citas que iniciaron en el rango."""
    professional = await professional_service.get_professional(db, clinic_id, professional_id)

    row = (
        await db.execute(
            select(
                func.count(CommissionEntry.id).label("count"),
                func.sum(CommissionEntry.commission_amount).label("generated"),
                func.sum(
                    case(
                        (CommissionEntry.status == CommissionEntryStatus.PAID,
                         CommissionEntry.commission_amount),
                        else_=Decimal("0"),
                    )
                ).label("paid"),
                func.sum(
                    case(
                        (CommissionEntry.status == CommissionEntryStatus.PENDING,
                         CommissionEntry.commission_amount),
                        else_=Decimal("0"),
                    )
                ).label("pending"),
            ).where(
                CommissionEntry.clinic_id == clinic_id,
                CommissionEntry.professional_id == professional_id,
                CommissionEntry.appointment_id.in_(
                    _appointments_in_period(clinic_id, professional_id, period_start, period_end)
                ),
            )
        )
    ).one()

    return CommissionSummary(
        professional_id=professional_id,
        period_start=period_start,
        period_end=period_end,
        total_generated=_money(row.generated),
        total_paid=_money(row.paid),
        total_pending=_money(row.pending),
        count=row.count or 0,
        rate=professional.commission_rate,
    )


async def get_liquidation(
    db: AsyncSession,
    clinic_id: UUID,
    period_start: date,
    period_end: date,
    professional_id: UUID | None = None,
) -> LiquidationResponse:
    """Resumen de comisiones por profesional para un rango de fechas."""
    query = (
        select(
            CommissionEntry.professional_id,
            Professional.first_name,
            Professional.last_name,
            func.sum(
                case((CommissionEntry.entry_type == CommissionEntryType.ACCRUAL, 1), else_=0)
            ).label("total_services"),
            func.sum(
                case(
                    (CommissionEntry.entry_type == CommissionEntryType.ACCRUAL,
                     CommissionEntry.service_amount),
                    else_=Decimal("0"),
                )
            ).label("total_service_amount"),
            func.sum(CommissionEntry.commission_amount).label("total_commission"),
            func.sum(
                case(
                    (CommissionEntry.status == CommissionEntryStatus.PENDING,
                     CommissionEntry.commission_amount),
                    else_=Decimal("0"),
                )
            ).label("pending_amount"),
            func.sum(
                case(
                    (CommissionEntry.status == CommissionEntryStatus.PAID,
                     CommissionEntry.commission_amount),
                    else_=Decimal("0"),
                )
            ).label("paid_amount"),
        )
        .join(Professional, CommissionEntry.professional_id == Professional.id)
        .where(
            CommissionEntry.clinic_id == clinic_id,
            CommissionEntry.appointment_id.in_(
                _appointments_in_period(clinic_id, professional_id, period_start, period_end)
            ),
        )
        .group_by(CommissionEntry.professional_id, Professional.first_name, Professional.last_name)
        .order_by(Professional.last_name, Professional.first_name)
    )

    rows = (await db.execute(query)).all()

    professionals = [
        ProfessionalLiquidation(
            professional_id=row.professional_id,
            professional_name=f"{row.first_name} {row.last_name}",
            total_services=row.total_services or 0,
            total_service_amount=_money(row.total_service_amount),
            total_commission=_money(row.total_commission),
            pending_amount=_money(row.pending_amount),
            paid_amount=_money(row.paid_amount),
        )
        for row in rows
    ]

    return LiquidationResponse(
        period_start=period_start,
        period_end=period_end,
        clinic_id=clinic_id,
        professionals=professionals,
        grand_total_commission=sum((p.total_commission for p in professionals), Decimal("0")),
        grand_total_pending=sum((p.pending_amount for p in professionals), Decimal("0")),
        grand_total_paid=sum((p.paid_amount for p in professionals), Decimal("0")),
    )


# ── Pago ─────────────────────────────────────────────


async def settle(
    db: AsyncSession,
    clinic_id: UUID,
    entry_id: UUID,
    paid_reference: str | None = None,
    user_id: UUID | None = None,
) -> CommissionEntry:
    """
    Marca una entrada como pagada. Idempotente: si ya estaba pagada se
    devuelve sin cambios (paid_at original intacto).
    """
    entry = await _get_entry(db, clinic_id, entry_id)
    if entry.status == CommissionEntryStatus.PAID:
        return entry

    try:
        async with serialized(db, commission_key(clinic_id, entry.professional_id)):
            result = await db.execute(
                update(CommissionEntry)
                .where(
                    CommissionEntry.id == entry_id,
                    CommissionEntry.status == CommissionEntryStatus.PENDING,
                )
                .values(
                    status=CommissionEntryStatus.PAID,
                    paid_at=utcnow(),
                    paid_reference=paid_reference,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                await log_action(
                    db,
                    clinic_id=clinic_id,
                    user_id=user_id,
                    entity="commission_entry",
                    entity_id=entry_id,
                    action="settle",
                    old_data={"status": CommissionEntryStatus.PENDING},
                    new_data={"status": CommissionEntryStatus.PAID, "paid_reference": paid_reference},
                )
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await _get_entry(db, clinic_id, entry_id)


async def settle_period(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    period_start: date,
    period_end: date,
    paid_reference: str | None = None,
    user_id: UUID | None = None,
) -> int:
    """
    Paga en una sola sentencia todas las entradas pendientes del
    profesional cuyas citas iniciaron en el rango. Devuelve cuántas pagó.
    """
    await professional_service.get_professional(db, clinic_id, professional_id)

    try:
        async with serialized(db, commission_key(clinic_id, professional_id)):
            result = await db.execute(
                update(CommissionEntry)
                .where(
                    CommissionEntry.clinic_id == clinic_id,
                    CommissionEntry.professional_id == professional_id,
                    CommissionEntry.status == CommissionEntryStatus.PENDING,
                    CommissionEntry.appointment_id.in_(
                        _appointments_in_period(clinic_id, professional_id, period_start, period_end)
                    ),
                )
                .values(
                    status=CommissionEntryStatus.PAID,
                    paid_at=utcnow(),
                    paid_reference=paid_reference,
                )
                .execution_options(synchronize_session=False)
            )
            settled = result.rowcount or 0
            if settled:
                await log_action(
                    db,
                    clinic_id=clinic_id,
                    user_id=user_id,
                    entity="professional",
                    entity_id=professional_id,
                    action="settle_period",
                    new_data={
                        "period_start": period_start,
                        "period_end": period_end,
                        "settled": settled,
                        "paid_reference": paid_reference,
                    },
                )
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Liquidación de {professional_id} ({period_start} → {period_end}): "
        f"{settled} entradas pagadas"
    )
    return settled
