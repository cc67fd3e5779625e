"""
Lógica de negocio de Inventario: artículos, kardex y cambios de stock.

El stock nunca se lee-modifica-escribe en Python: decrement/increment
emiten un UPDATE condicional (`current_stock >= q`) y revisan rowcount,
así dos descuentos concurrentes no pueden dejar stock negativo.
decrement/increment NO hacen commit: se ejecutan dentro de la
transacción del llamador (ej. fulfillment al completar una cita).
"""

import logging
import math
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictException,
    InsufficientStockException,
    NotFoundException,
    ValidationException,
)
from app.models.inventory import (
    ENTRY_REASONS,
    EXIT_REASONS,
    InventoryItem,
    StockMovement,
    StockMovementReason,
    StockMovementType,
)
from app.schemas.inventory import (
    InventoryItemCreate,
    InventoryItemUpdate,
    InventorySummary,
    LowStockItem,
    StockAdjust,
    StockMovementResponse,
)

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────

async def get_item(
    db: AsyncSession,
    clinic_id: UUID,
    item_id: UUID,
) -> InventoryItem:
    """Lee el artículo desde la BD (ignora lo que haya en la identity map)."""
    item = (
        await db.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id, InventoryItem.clinic_id == clinic_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not item:
        raise NotFoundException("Artículo")
    return item


def _movement_to_response(mov: StockMovement, item_name: str | None = None) -> StockMovementResponse:
    resp = StockMovementResponse.model_validate(mov)
    resp.item_name = item_name
    return resp


# ── Cambios de stock ─────────────────────────────────

async def decrement(
    db: AsyncSession,
    clinic_id: UUID,
    item_id: UUID,
    quantity: Decimal,
    *,
    reason: StockMovementReason = StockMovementReason.PATIENT_USE,
    reference: str | None = None,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> InventoryItem:
    """
    Descuenta `quantity` solo si hay stock suficiente; si no, falla sin
    tocar nada. Nunca recorta a cero.
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationException("La cantidad debe ser mayor a 0")
    if reason not in EXIT_REASONS:
        raise ValidationException(f"Razón inválida para una salida: {reason.value}")

    result = await db.execute(
        update(InventoryItem)
        .where(
            InventoryItem.id == item_id,
            InventoryItem.clinic_id == clinic_id,
            InventoryItem.current_stock >= quantity,
        )
        .values(current_stock=InventoryItem.current_stock - quantity)
        .execution_options(synchronize_session=False)
    )

    item = await get_item(db, clinic_id, item_id)
    if result.rowcount == 0:
        logger.warning(
            f"Stock insuficiente de {item.name}: disponible {item.current_stock}, "
            f"requerido {quantity}"
        )
        raise InsufficientStockException([(item.id, item.name, item.current_stock, quantity)])

    db.add(StockMovement(
        clinic_id=clinic_id,
        item_id=item.id,
        created_by=user_id,
        movement_type=StockMovementType.EXIT,
        reason=reason,
        quantity=quantity,
        stock_before=item.current_stock + quantity,
        stock_after=item.current_stock,
        reference=reference,
        notes=notes,
    ))
    await db.flush()

    if item.is_low_stock:
        logger.warning(
            f"Stock bajo: {item.name} — actual: {item.current_stock}, "
            f"mínimo: {item.min_stock}"
        )
    return item


async def increment(
    db: AsyncSession,
    clinic_id: UUID,
    item_id: UUID,
    quantity: Decimal,
    *,
    reason: StockMovementReason = StockMovementReason.PURCHASE,
    reference: str | None = None,
    notes: str | None = None,
    user_id: UUID | None = None,
) -> InventoryItem:
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValidationException("La cantidad debe ser mayor a 0")
    if reason not in ENTRY_REASONS:
        raise ValidationException(f"Razón inválida para una entrada: {reason.value}")

    result = await db.execute(
        update(InventoryItem)
        .where(InventoryItem.id == item_id, InventoryItem.clinic_id == clinic_id)
        .values(current_stock=InventoryItem.current_stock + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundException("Artículo")

    item = await get_item(db, clinic_id, item_id)
    db.add(StockMovement(
        clinic_id=clinic_id,
        item_id=item.id,
        created_by=user_id,
        movement_type=StockMovementType.ENTRY,
        reason=reason,
        quantity=quantity,
        stock_before=item.current_stock - quantity,
        stock_after=item.current_stock,
        reference=reference,
        notes=notes,
    ))
    await db.flush()
    return item


async def adjust_stock(
    db: AsyncSession,
    clinic_id: UUID,
    item_id: UUID,
    data: StockAdjust,
    movement_type: StockMovementType,
    user_id: UUID | None = None,
) -> InventoryItem:
    """Entrada/salida manual desde la API; es su propia transacción."""
    change = decrement if movement_type == StockMovementType.EXIT else increment
    try:
        item = await change(
            db,
            clinic_id,
            item_id,
            data.quantity,
            reason=data.reason,
            reference=data.reference,
            notes=data.notes,
            user_id=user_id,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Movimiento {movement_type.value} de {data.quantity} en {item.name} "
        f"({data.reason.value}) → stock {item.current_stock}"
    )
    return await get_item(db, clinic_id, item_id)


# ── Artículos ────────────────────────────────────────

async def create_item(
    db: AsyncSession,
    clinic_id: UUID,
    data: InventoryItemCreate,
    user_id: UUID | None = None,
) -> InventoryItem:
    """Crea el artículo; el stock inicial entra como movimiento INITIAL_STOCK."""
    existing = await db.execute(
        select(InventoryItem).where(
            InventoryItem.clinic_id == clinic_id,
            InventoryItem.code == data.code,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictException(f"Ya existe un artículo con código '{data.code}'")

    item = InventoryItem(
        clinic_id=clinic_id,
        code=data.code,
        name=data.name,
        unit=data.unit,
        current_stock=Decimal("0"),
        min_stock=data.min_stock,
        unit_cost=data.unit_cost,
    )
    try:
        db.add(item)
        await db.flush()
        if data.initial_stock > 0:
            await increment(
                db,
                clinic_id,
                item.id,
                data.initial_stock,
                reason=StockMovementReason.INITIAL_STOCK,
                user_id=user_id,
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await get_item(db, clinic_id, item.id)


async def update_item(
    db: AsyncSession,
    clinic_id: UUID,
    item_id: UUID,
    data: InventoryItemUpdate,
) -> InventoryItem:
    item = await get_item(db, clinic_id, item_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(item, key, value)
    await db.commit()
    return await get_item(db, clinic_id, item_id)


async def list_items(
    db: AsyncSession,
    clinic_id: UUID,
    page: int = 1,
    size: int = 20,
    search: str | None = None,
    low_stock_only: bool = False,
) -> dict:
    query = select(InventoryItem).where(
        InventoryItem.clinic_id == clinic_id,
        InventoryItem.is_active.is_(True),
    )
    if search:
        query = query.where(
            InventoryItem.name.ilike(f"%{search}%") | InventoryItem.code.ilike(f"%{search}%")
        )
    if low_stock_only:
        query = query.where(InventoryItem.current_stock <= InventoryItem.min_stock)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    query = query.order_by(InventoryItem.name).offset((page - 1) * size).limit(size)
    items = (await db.execute(query)).scalars().all()

    return {
        "items": list(items),
        "total": total,
        "page": page,
        "size": size,
        "pages": max(1, math.ceil(total / size)),
    }


# ── Kardex ───────────────────────────────────────────

async def list_movements(
    db: AsyncSession,
    clinic_id: UUID,
    item_id: UUID | None = None,
    reference: str | None = None,
    page: int = 1,
    size: int = 20,
) -> dict:
    query = (
        select(StockMovement, InventoryItem.name)
        .join(InventoryItem, StockMovement.item_id == InventoryItem.id)
        .where(StockMovement.clinic_id == clinic_id)
    )
    if item_id:
        query = query.where(StockMovement.item_id == item_id)
    if reference:
        query = query.where(StockMovement.reference == reference)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0
    query = query.order_by(StockMovement.created_at.desc()).offset((page - 1) * size).limit(size)
    rows = (await db.execute(query)).all()

    return {
        "items": [_movement_to_response(mov, name) for mov, name in rows],
        "total": total,
        "page": page,
        "size": size,
        "pages": max(1, math.ceil(total / size)),
    }


# ── Reportes ─────────────────────────────────────────

async def get_low_stock_items(
    db: AsyncSession, clinic_id: UUID
) -> list[LowStockItem]:
    result = await db.execute(
        select(InventoryItem).where(
            InventoryItem.clinic_id == clinic_id,
            InventoryItem.is_active.is_(True),
            InventoryItem.current_stock <= InventoryItem.min_stock,
        ).order_by(InventoryItem.current_stock)
    )
    return [
        LowStockItem(
            item_id=item.id,
            code=item.code,
            name=item.name,
            current_stock=item.current_stock,
            min_stock=item.min_stock,
            unit=item.unit.value,
        )
        for item in result.scalars().all()
    ]


async def get_inventory_summary(
    db: AsyncSession, clinic_id: UUID
) -> InventorySummary:
    active = (
        InventoryItem.clinic_id == clinic_id,
        InventoryItem.is_active.is_(True),
    )

    total_items = (
        await db.execute(select(func.count()).select_from(InventoryItem).where(*active))
    ).scalar() or 0

    value = (
        await db.execute(
            select(
                func.coalesce(func.sum(InventoryItem.current_stock * InventoryItem.unit_cost), 0)
            ).where(*active)
        )
    ).scalar()
    total_value = Decimal(str(value)).quantize(Decimal("0.01"))

    low_stock_count = (
        await db.execute(
            select(func.count()).select_from(InventoryItem).where(
                *active,
                InventoryItem.current_stock <= InventoryItem.min_stock,
                InventoryItem.current_stock > 0,
            )
        )
    ).scalar() or 0

    out_of_stock_count = (
        await db.execute(
            select(func.count()).select_from(InventoryItem).where(
                *active,
                InventoryItem.current_stock <= 0,
            )
        )
    ).scalar() or 0

    return InventorySummary(
        total_items=total_items,
        total_value=total_value,
        low_stock_count=low_stock_count,
        out_of_stock_count=out_of_stock_count,
    )
