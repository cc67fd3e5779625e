"""
Endpoints del kit de cada procedimiento: qué insumos consume y cuánto cuesta.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id
from app.database import get_db
from app.schemas.kit import (
    KitCostResponse,
    KitItemCreate,
    KitItemResponse,
    KitItemUpdate,
    KitItemWithNames,
)
from app.services import kit_service

router = APIRouter()


@router.post("", response_model=KitItemResponse, status_code=201)
async def add_kit_item(
    data: KitItemCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Agrega un insumo al kit de un procedimiento."""
    return await kit_service.add_kit_item(db, clinic_id=clinic_id, data=data)


@router.get("", response_model=list[KitItemWithNames])
async def list_kit_items(
    service_id: UUID | None = Query(None, description="Filtrar por procedimiento"),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await kit_service.list_kit_items(db, clinic_id=clinic_id, service_id=service_id)


@router.get("/cost/{service_id}", response_model=KitCostResponse)
async def get_kit_cost(
    service_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await kit_service.get_kit_cost(db, clinic_id=clinic_id, service_id=service_id)


@router.patch("/{kit_item_id}", response_model=KitItemResponse)
async def update_kit_item(
    kit_item_id: UUID,
    data: KitItemUpdate,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await kit_service.update_kit_item(
        db, clinic_id=clinic_id, kit_item_id=kit_item_id, data=data
    )


@router.delete("/{kit_item_id}", status_code=204)
async def remove_kit_item(
    kit_item_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    await kit_service.remove_kit_item(db, clinic_id=clinic_id, kit_item_id=kit_item_id)
