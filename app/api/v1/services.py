"""
Endpoints REST para el catálogo de procedimientos por clínica.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id, get_user_id
from app.database import get_db
from app.schemas.service import (
    ServiceCreate,
    ServiceListResponse,
    ServiceResponse,
    ServiceUpdate,
)
from app.services import service_service

router = APIRouter()


@router.get("", response_model=ServiceListResponse)
async def list_services(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, description="Buscar por nombre"),
    is_active: bool | None = Query(None, description="Filtrar por estado activo"),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Lista paginada de procedimientos de la clínica."""
    return await service_service.list_services(
        db, clinic_id=clinic_id, page=page, size=size,
        search=search, is_active=is_active,
    )


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await service_service.get_service(db, clinic_id=clinic_id, service_id=service_id)


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await service_service.create_service(db, clinic_id=clinic_id, data=data, user_id=user_id)


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: UUID,
    data: ServiceUpdate,
    clinic_id: UUID = Depends(get_clinic_id),
    user_id: UUID | None = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Un cambio de precio solo afecta comisiones futuras."""
    return await service_service.update_service(
        db, clinic_id=clinic_id, service_id=service_id, data=data, user_id=user_id
    )
