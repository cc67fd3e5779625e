"""
Modelos de Inventario — Artículos y Kardex de movimientos.

El stock solo cambia a través de los incrementos/decrementos atómicos
del servicio de inventario; cada cambio deja un StockMovement.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


# ── Enums ─────────────────────────────────────────────


class ItemUnit(str, enum.Enum):
    """Unidad de medida del artículo."""
    UNIT = "unidad"
    BOX = "caja"
    ML = "mililitro"
    GRAM = "gramo"
    VIAL = "frasco"
    OTHER = "otro"


class StockMovementType(str, enum.Enum):
    """Tipo de movimiento de stock."""
    ENTRY = "entry"
    EXIT = "exit"


class StockMovementReason(str, enum.Enum):
    """Razón del movimiento de stock."""
    # Entradas
    PURCHASE = "purchase"
    RETURN_FROM_USE = "return"
    INITIAL_STOCK = "initial"
    # Salidas
    PATIENT_USE = "patient_use"
    EXPIRED = "expired"
    DAMAGED = "damaged"
    # Ambos sentidos (+1 / -1 rápidos)
    MANUAL_ADJUSTMENT = "manual_adjustment"


ENTRY_REASONS = {
    StockMovementReason.PURCHASE,
    StockMovementReason.RETURN_FROM_USE,
    StockMovementReason.INITIAL_STOCK,
    StockMovementReason.MANUAL_ADJUSTMENT,
}

EXIT_REASONS = {
    StockMovementReason.PATIENT_USE,
    StockMovementReason.EXPIRED,
    StockMovementReason.DAMAGED,
    StockMovementReason.MANUAL_ADJUSTMENT,
}


# ── InventoryItem ─────────────────────────────────────


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    code: Mapped[str] = mapped_column(
        String(50), nullable=False, comment="Código interno (SKU)"
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    unit: Mapped[ItemUnit] = mapped_column(
        Enum(ItemUnit, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=ItemUnit.UNIT
    )
    current_stock: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0"),
        comment="Stock actual"
    )
    min_stock: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0"),
        comment="Stock mínimo para alerta"
    )
    unit_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"),
        comment="Costo unitario"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement", back_populates="item"
    )

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_item_stock_non_negative"),
        UniqueConstraint("clinic_id", "code", name="uq_item_clinic_code"),
        Index("idx_item_clinic", "clinic_id"),
        Index("idx_item_stock", "clinic_id", "current_stock"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<InventoryItem [{self.code}] {self.name} stock={self.current_stock}>"


# ── StockMovement ─────────────────────────────────────


class StockMovement(Base):
    __tablename__ = "stock_movements"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("inventory_items.id"), nullable=False,
        comment="Artículo afectado"
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, comment="Usuario que registró el movimiento"
    )
    movement_type: Mapped[StockMovementType] = mapped_column(
        Enum(StockMovementType, values_callable=lambda e: [x.value for x in e]),
        nullable=False
    )
    reason: Mapped[StockMovementReason] = mapped_column(
        Enum(StockMovementReason, values_callable=lambda e: [x.value for x in e]),
        nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False,
        comment="Cantidad (siempre positiva)"
    )
    stock_before: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    stock_after: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    reference: Mapped[str | None] = mapped_column(
        String(200), comment="appointment:<id>, nro de factura, etc."
    )
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    item: Mapped["InventoryItem"] = relationship(
        "InventoryItem", back_populates="movements"
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        Index("idx_stock_mov_item", "item_id"),
        Index("idx_stock_mov_clinic_date", "clinic_id", "created_at"),
    )

    def __repr__(self) -> str:
        sign = "+" if self.movement_type == StockMovementType.ENTRY else "-"
        return f"<StockMovement {sign}{self.quantity} [{self.reason.value}]>"
