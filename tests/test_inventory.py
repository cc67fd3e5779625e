"""
Tests del inventario: decrementos atómicos, kardex y reportes.
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.core.exceptions import (
    ConflictException,
    InsufficientStockException,
    NotFoundException,
    ValidationException,
)
from app.models.inventory import (
    InventoryItem,
    StockMovement,
    StockMovementReason,
    StockMovementType,
)
from app.schemas.inventory import InventoryItemCreate, StockAdjust
from app.services import inventory_service


async def _movements(db_session, item_id) -> list[StockMovement]:
    result = await db_session.execute(
        select(StockMovement)
        .where(StockMovement.item_id == item_id)
        .order_by(StockMovement.created_at, StockMovement.stock_after.desc())
    )
    return list(result.scalars().all())


async def test_create_item_records_initial_stock(db_session, clinic_id, gauze):
    assert gauze.current_stock == Decimal("10")

    movements = await _movements(db_session, gauze.id)
    assert len(movements) == 1
    assert movements[0].reason == StockMovementReason.INITIAL_STOCK
    assert movements[0].stock_before == Decimal("0")
    assert movements[0].stock_after == Decimal("10")


async def test_duplicate_code_is_rejected(db_session, clinic_id, gauze):
    with pytest.raises(ConflictException):
        await inventory_service.create_item(
            db_session, clinic_id, InventoryItemCreate(code="GAS-001", name="Otra gasa")
        )


async def test_decrement_records_movement(db_session, clinic_id, gauze):
    item = await inventory_service.decrement(
        db_session, clinic_id, gauze.id, Decimal("4"), reference="appointment:test"
    )
    await db_session.commit()

    assert item.current_stock == Decimal("6")
    last = (await _movements(db_session, gauze.id))[-1]
    assert last.movement_type == StockMovementType.EXIT
    assert last.stock_before == Decimal("10")
    assert last.stock_after == Decimal("6")
    assert last.reference == "appointment:test"


async def test_decrement_beyond_stock_fails_without_clamping(db_session, clinic_id, gauze):
    gauze_id = gauze.id
    with pytest.raises(InsufficientStockException) as exc_info:
        await inventory_service.decrement(db_session, clinic_id, gauze_id, Decimal("11"))
    await db_session.rollback()

    (item_id, name, available, required), = exc_info.value.shortfalls
    assert item_id == gauze_id
    assert available == Decimal("10")
    assert required == Decimal("11")

    item = await inventory_service.get_item(db_session, clinic_id, gauze_id)
    assert item.current_stock == Decimal("10")
    assert len(await _movements(db_session, gauze_id)) == 1


async def test_decrement_to_exactly_zero(db_session, clinic_id, gauze):
    item = await inventory_service.decrement(db_session, clinic_id, gauze.id, Decimal("10"))
    await db_session.commit()
    assert item.current_stock == Decimal("0")


@pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
async def test_non_positive_quantity_is_rejected(db_session, clinic_id, gauze, quantity):
    with pytest.raises(ValidationException):
        await inventory_service.decrement(db_session, clinic_id, gauze.id, quantity)
    with pytest.raises(ValidationException):
        await inventory_service.increment(db_session, clinic_id, gauze.id, quantity)


async def test_exit_reason_cannot_be_used_for_entry(db_session, clinic_id, gauze):
    with pytest.raises(ValidationException):
        await inventory_service.increment(
            db_session, clinic_id, gauze.id, Decimal("1"), reason=StockMovementReason.PATIENT_USE
        )


async def test_unknown_item(db_session, clinic_id):
    with pytest.raises(NotFoundException):
        await inventory_service.increment(db_session, clinic_id, uuid4(), Decimal("1"))


async def test_adjust_stock_commits_its_own_transaction(db_session, session_factory, clinic_id, gauze):
    await inventory_service.adjust_stock(
        db_session,
        clinic_id,
        gauze.id,
        StockAdjust(quantity=Decimal("5"), reason=StockMovementReason.PURCHASE, reference="FAC-001"),
        StockMovementType.ENTRY,
    )

    async with session_factory() as other:
        item = await inventory_service.get_item(other, clinic_id, gauze.id)
        assert item.current_stock == Decimal("15")


async def test_concurrent_decrements_never_oversell(session_factory, clinic_id, gauze):
    async def take_three():
        async with session_factory() as session:
            return await inventory_service.adjust_stock(
                session,
                clinic_id,
                gauze.id,
                StockAdjust(quantity=Decimal("3"), reason=StockMovementReason.PATIENT_USE),
                StockMovementType.EXIT,
            )

    results = await asyncio.gather(*(take_three() for _ in range(5)), return_exceptions=True)

    succeeded = [r for r in results if isinstance(r, InventoryItem)]
    failed = [r for r in results if isinstance(r, InsufficientStockException)]
    assert len(succeeded) == 3
    assert len(failed) == 2

    async with session_factory() as session:
        item = await inventory_service.get_item(session, clinic_id, gauze.id)
        assert item.current_stock == Decimal("1")
        exits = [m for m in await _movements(session, gauze.id) if m.movement_type == StockMovementType.EXIT]
        assert len(exits) == 3


async def test_low_stock_report_and_summary(db_session, clinic_id, gauze):
    await inventory_service.decrement(db_session, clinic_id, gauze.id, Decimal("8"))
    await db_session.commit()

    low = await inventory_service.get_low_stock_items(db_session, clinic_id)
    assert [i.code for i in low] == ["GAS-001"]

    summary = await inventory_service.get_inventory_summary(db_session, clinic_id)
    assert summary.total_items == 1
    assert summary.low_stock_count == 1
    assert summary.out_of_stock_count == 0
    assert summary.total_value == Decimal("3.00")


async def test_list_movements_by_reference(db_session, clinic_id, gauze):
    await inventory_service.decrement(db_session, clinic_id, gauze.id, Decimal("1"), reference="appointment:abc")
    await inventory_service.decrement(db_session, clinic_id, gauze.id, Decimal("1"), reference="appointment:xyz")
    await db_session.commit()

    result = await inventory_service.list_movements(db_session, clinic_id, reference="appointment:abc")
    assert result["total"] == 1
    assert result["items"][0].item_name == "Gasa estéril"
