"""
Modelo KitItem — Bill-of-materials de cada procedimiento.

Define qué insumos (y en qué cantidad) consume un procedimiento.
El stock no se reserva al agendar; se descuenta al completar la cita.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class KitItem(Base):
    __tablename__ = "kit_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id"), nullable=False
    )
    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("inventory_items.id"), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("1"),
        comment="Cantidad del insumo consumida por procedimiento (admite fracciones)"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relaciones ────────────────────────────────────
    service: Mapped["Service"] = relationship("Service")  # noqa: F821
    item: Mapped["InventoryItem"] = relationship("InventoryItem")  # noqa: F821

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_kit_quantity_positive"),
        UniqueConstraint(
            "clinic_id", "service_id", "item_id",
            name="uq_kit_item_clinic_service_item"
        ),
        Index("idx_kit_clinic_service", "clinic_id", "service_id"),
    )

    def __repr__(self) -> str:
        return f"<KitItem service={self.service_id} item={self.item_id} qty={self.quantity}>"
