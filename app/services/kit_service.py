"""
Servicio de Kits — CRUD del mapeo procedimiento → insumos y su costo.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.inventory import InventoryItem
from app.models.kit_item import KitItem
from app.models.service import Service
from app.schemas.kit import KitCostResponse, KitItemCreate, KitItemUpdate, KitItemWithNames
from app.services import inventory_service, service_service


async def _get_kit_item(db: AsyncSession, clinic_id: UUID, kit_item_id: UUID) -> KitItem:
    result = await db.execute(
        select(KitItem).where(
            KitItem.id == kit_item_id,
            KitItem.clinic_id == clinic_id,
        )
    )
    kit_item = result.scalar_one_or_none()
    if not kit_item:
        raise NotFoundException("Insumo del kit")
    return kit_item


async def items_for(
    db: AsyncSession,
    clinic_id: UUID,
    service_id: UUID,
) -> list[tuple[InventoryItem, Decimal]]:
    """
    Insumos que consume el procedimiento, con el stock recién leído.
    Un procedimiento sin kit devuelve lista vacía.
    """
    result = await db.execute(
        select(InventoryItem, KitItem.quantity)
        .join(KitItem, KitItem.item_id == InventoryItem.id)
        .where(
            KitItem.clinic_id == clinic_id,
            KitItem.service_id == service_id,
        )
        .order_by(InventoryItem.name)
        .execution_options(populate_existing=True)
    )
    return [(item, quantity) for item, quantity in result.all()]


async def add_kit_item(
    db: AsyncSession,
    clinic_id: UUID,
    data: KitItemCreate,
) -> KitItem:
    """Agrega un insumo al kit de un procedimiento."""
    await service_service.get_service(db, clinic_id, data.service_id)
    await inventory_service.get_item(db, clinic_id, data.item_id)

    existing = await db.execute(
        select(KitItem).where(
            KitItem.clinic_id == clinic_id,
            KitItem.service_id == data.service_id,
            KitItem.item_id == data.item_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ConflictException("El insumo ya forma parte del kit de este procedimiento")

    kit_item = KitItem(
        clinic_id=clinic_id,
        service_id=data.service_id,
        item_id=data.item_id,
        quantity=data.quantity,
    )
    db.add(kit_item)
    await db.commit()
    await db.refresh(kit_item)
    return kit_item


async def update_kit_item(
    db: AsyncSession,
    clinic_id: UUID,
    kit_item_id: UUID,
    data: KitItemUpdate,
) -> KitItem:
    kit_item = await _get_kit_item(db, clinic_id, kit_item_id)
    kit_item.quantity = data.quantity
    await db.commit()
    await db.refresh(kit_item)
    return kit_item


async def remove_kit_item(
    db: AsyncSession,
    clinic_id: UUID,
    kit_item_id: UUID,
) -> None:
    """Elimina un insumo del kit (hard delete)."""
    kit_item = await _get_kit_item(db, clinic_id, kit_item_id)
    await db.delete(kit_item)
    await db.commit()


async def list_kit_items(
    db: AsyncSession,
    clinic_id: UUID,
    service_id: UUID | None = None,
) -> list[KitItemWithNames]:
    """Lista los insumos por procedimiento con nombres enriquecidos."""
    query = (
        select(KitItem, Service.name, InventoryItem.name, InventoryItem.code,
               InventoryItem.unit, InventoryItem.unit_cost)
        .join(Service, KitItem.service_id == Service.id)
        .join(InventoryItem, KitItem.item_id == InventoryItem.id)
        .where(KitItem.clinic_id == clinic_id)
    )
    if service_id:
        query = query.where(KitItem.service_id == service_id)

    rows = (await db.execute(query.order_by(Service.name, InventoryItem.name))).all()

    items = []
    for kit_item, svc_name, item_name, item_code, item_unit, unit_cost in rows:
        items.append(KitItemWithNames(
            id=kit_item.id,
            clinic_id=kit_item.clinic_id,
            service_id=kit_item.service_id,
            item_id=kit_item.item_id,
            quantity=kit_item.quantity,
            created_at=kit_item.created_at,
            updated_at=kit_item.updated_at,
            service_name=svc_name,
            item_name=item_name,
            item_code=item_code,
            item_unit=item_unit.value if item_unit else None,
            unit_cost=unit_cost,
        ))
    return items


async def get_kit_cost(
    db: AsyncSession,
    clinic_id: UUID,
    service_id: UUID,
) -> KitCostResponse:
    """Costo de insumos de un procedimiento: Σ cantidad × costo unitario."""
    await service_service.get_service(db, clinic_id, service_id)
    kit = await items_for(db, clinic_id, service_id)
    total = sum((qty * item.unit_cost for item, qty in kit), Decimal("0"))
    return KitCostResponse(
        service_id=service_id,
        items=len(kit),
        total_cost=total.quantize(Decimal("0.01")),
    )
