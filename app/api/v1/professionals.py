"""
Endpoints del directorio de profesionales.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_clinic_id
from app.database import get_db
from app.schemas.professional import ProfessionalCreate, ProfessionalResponse, ProfessionalUpdate
from app.services import professional_service

router = APIRouter()


@router.get("", response_model=list[ProfessionalResponse])
async def list_professionals(
    is_active: bool | None = Query(None),
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await professional_service.list_professionals(db, clinic_id, is_active=is_active)


@router.post("", response_model=ProfessionalResponse, status_code=201)
async def create_professional(
    data: ProfessionalCreate,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await professional_service.create_professional(db, clinic_id, data)


@router.get("/{professional_id}", response_model=ProfessionalResponse)
async def get_professional(
    professional_id: UUID,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    return await professional_service.get_professional(db, clinic_id, professional_id)


@router.patch("/{professional_id}", response_model=ProfessionalResponse)
async def update_professional(
    professional_id: UUID,
    data: ProfessionalUpdate,
    clinic_id: UUID = Depends(get_clinic_id),
    db: AsyncSession = Depends(get_db),
):
    """Un cambio de tasa no recalcula comisiones ya devengadas."""
    return await professional_service.update_professional(db, clinic_id, professional_id, data)
