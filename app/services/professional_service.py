"""
Directorio mínimo de profesionales: identidad y tasa de comisión.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.professional import Professional
from app.schemas.professional import ProfessionalCreate, ProfessionalUpdate


async def create_professional(
    db: AsyncSession, clinic_id: UUID, data: ProfessionalCreate
) -> Professional:
    professional = Professional(clinic_id=clinic_id, **data.model_dump())
    db.add(professional)
    await db.commit()
    await db.refresh(professional)
    return professional


async def get_professional(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    *,
    active_only: bool = False,
) -> Professional:
    query = select(Professional).where(
        Professional.id == professional_id,
        Professional.clinic_id == clinic_id,
    )
    if active_only:
        query = query.where(Professional.is_active.is_(True))

    professional = (await db.execute(query)).scalar_one_or_none()
    if not professional:
        raise NotFoundException("Profesional")
    return professional


async def list_professionals(
    db: AsyncSession, clinic_id: UUID, is_active: bool | None = None
) -> list[Professional]:
    query = select(Professional).where(Professional.clinic_id == clinic_id)
    if is_active is not None:
        query = query.where(Professional.is_active == is_active)
    result = await db.execute(query.order_by(Professional.last_name, Professional.first_name))
    return list(result.scalars().all())


async def update_professional(
    db: AsyncSession,
    clinic_id: UUID,
    professional_id: UUID,
    data: ProfessionalUpdate,
) -> Professional:
    """Actualiza datos; un cambio de tasa solo afecta comisiones futuras."""
    professional = await get_professional(db, clinic_id, professional_id)

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(professional, key, value)

    await db.commit()
    await db.refresh(professional)
    return professional
