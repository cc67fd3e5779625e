"""
Fulfillment al completar una cita: descuento del kit + devengo de comisión.

Todo ocurre dentro de la transacción del cambio de estado. Si algún
insumo no alcanza, se lanza InsufficientStockException con TODOS los
faltantes y el llamador hace rollback: ni stock, ni comisión, ni estado.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InsufficientStockException
from app.models.appointment import Appointment
from app.models.commission import CommissionEntry
from app.models.inventory import StockMovementReason
from app.services import commission_service, inventory_service, kit_service

logger = logging.getLogger(__name__)


def appointment_reference(appointment_id: UUID) -> str:
    return f"appointment:{appointment_id}"


async def fulfill_appointment(
    db: AsyncSession,
    appointment: Appointment,
    user_id: UUID | None = None,
) -> CommissionEntry:
    """
    1. Verifica el stock de todo el kit y reporta todos los faltantes juntos
    2. Descuenta cada insumo con decremento condicional (kardex PATIENT_USE)
    3. Inserta la comisión pendiente de la cita
    """
    kit = await kit_service.items_for(db, appointment.clinic_id, appointment.service_id)

    shortfalls = [
        (item.id, item.name, item.current_stock, quantity)
        for item, quantity in kit
        if item.current_stock < quantity
    ]
    if shortfalls:
        logger.warning(
            f"Cita {appointment.id} no se puede completar: "
            f"{len(shortfalls)} insumo(s) sin stock suficiente"
        )
        raise InsufficientStockException(shortfalls)

    reference = appointment_reference(appointment.id)
    for item, quantity in kit:
        # Un descuento concurrente entre la verificación y aquí también falla
        await inventory_service.decrement(
            db,
            appointment.clinic_id,
            item.id,
            quantity,
            reason=StockMovementReason.PATIENT_USE,
            reference=reference,
            user_id=user_id,
        )

    entry = await commission_service.accrue_for_appointment(db, appointment)

    logger.info(
        f"Cita {appointment.id} completada: {len(kit)} insumo(s) descontados, "
        f"comisión {entry.commission_amount}"
    )
    return entry
