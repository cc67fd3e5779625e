"""
Catálogo de procedimientos por clínica.

La duración define el fin de cada cita y el precio es la base de la
comisión; ambos se auditan al cambiar. Citas ya reservadas y comisiones
ya devengadas conservan los valores con los que se crearon.
"""

import logging
import math
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.models.service import Service
from app.schemas.service import ServiceCreate, ServiceUpdate
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)

AUDITED_FIELDS = ("price", "duration_minutes", "is_active")


async def _ensure_unique_name(
    db: AsyncSession,
    clinic_id: UUID,
    name: str,
    exclude_id: UUID | None = None,
) -> None:
    query = select(Service.id).where(Service.clinic_id == clinic_id, Service.name == name)
    if exclude_id:
        query = query.where(Service.id != exclude_id)
    if (await db.execute(query)).first():
        raise ConflictException(f"Ya existe un procedimiento con el nombre '{name}'")


async def create_service(
    db: AsyncSession,
    clinic_id: UUID,
    data: ServiceCreate,
    user_id: UUID | None = None,
) -> Service:
    await _ensure_unique_name(db, clinic_id, data.name)

    service = Service(clinic_id=clinic_id, **data.model_dump())
    db.add(service)
    try:
        await db.flush()
        await log_action(
            db,
            clinic_id=clinic_id,
            user_id=user_id,
            entity="service",
            entity_id=service.id,
            action="create",
            new_data={field: getattr(service, field) for field in AUDITED_FIELDS},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(service)
    logger.info(f"Procedimiento '{service.name}' creado ({service.duration_minutes} min, {service.price})")
    return service


async def get_service(
    db: AsyncSession,
    clinic_id: UUID,
    service_id: UUID,
    *,
    active_only: bool = False,
) -> Service:
    query = select(Service).where(
        Service.id == service_id,
        Service.clinic_id == clinic_id,
    )
    if active_only:
        query = query.where(Service.is_active.is_(True))

    service = (await db.execute(query)).scalar_one_or_none()
    if not service:
        raise NotFoundException("Procedimiento")
    return service


async def update_service(
    db: AsyncSession,
    clinic_id: UUID,
    service_id: UUID,
    data: ServiceUpdate,
    user_id: UUID | None = None,
) -> Service:
    """Actualización parcial; precio, duración y estado quedan en el audit log."""
    service = await get_service(db, clinic_id, service_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("name") and changes["name"] != service.name:
        await _ensure_unique_name(db, clinic_id, changes["name"], exclude_id=service_id)
    if changes.get("price") is not None:
        changes["price"] = Decimal(str(changes["price"]))

    old = {f: getattr(service, f) for f in AUDITED_FIELDS if f in changes and changes[f] != getattr(service, f)}
    for key, value in changes.items():
        setattr(service, key, value)

    try:
        if old:
            await log_action(
                db,
                clinic_id=clinic_id,
                user_id=user_id,
                entity="service",
                entity_id=service.id,
                action="update",
                old_data=old,
                new_data={f: getattr(service, f) for f in old},
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(service)
    if old:
        logger.info(f"Procedimiento '{service.name}' actualizado: {', '.join(old)}")
    return service


async def list_services(
    db: AsyncSession,
    clinic_id: UUID,
    page: int = 1,
    size: int = 20,
    search: str | None = None,
    is_active: bool | None = None,
) -> dict:
    query = select(Service).where(Service.clinic_id == clinic_id)

    if search:
        query = query.where(Service.name.ilike(f"%{search}%"))
    if is_active is not None:
        query = query.where(Service.is_active == is_active)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = query.order_by(Service.name).offset((page - 1) * size).limit(size)
    services = (await db.execute(query)).scalars().all()

    return {
        "items": list(services),
        "total": total,
        "page": page,
        "size": size,
        "pages": max(1, math.ceil(total / size)),
    }
