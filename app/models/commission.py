"""
Modelo CommissionEntry — Ledger de comisiones de profesionales.

Cada cita completada genera exactamente una entrada `accrual`.
El monto nunca se modifica: las correcciones son entradas `adjustment`
que apuntan a la misma cita.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class CommissionEntryStatus(str, enum.Enum):
    """Estado de una entrada de comisión."""
    PENDING = "pending"
    PAID = "paid"


class CommissionEntryType(str, enum.Enum):
    """Origen de la entrada."""
    ACCRUAL = "accrual"
    ADJUSTMENT = "adjustment"


class CommissionEntry(Base):
    __tablename__ = "commission_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("professionals.id"), nullable=False
    )
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("appointments.id"), nullable=False
    )
    entry_type: Mapped[CommissionEntryType] = mapped_column(
        Enum(CommissionEntryType, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=CommissionEntryType.ACCRUAL
    )

    service_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False,
        comment="Precio del procedimiento al momento de la cita"
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False,
        comment="Porcentaje aplicado"
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False,
        comment="Monto de comisión (negativo en ajustes que descuentan)"
    )
    status: Mapped[CommissionEntryStatus] = mapped_column(
        Enum(CommissionEntryStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=CommissionEntryStatus.PENDING
    )
    period: Mapped[str] = mapped_column(
        String(7), nullable=False,
        comment="Periodo YYYY-MM de la cita de origen"
    )
    notes: Mapped[str | None] = mapped_column(String(500))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_reference: Mapped[str | None] = mapped_column(
        String(200), comment="Referencia de pago (nro transferencia, etc.)"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Relationships ────────────────────
    professional: Mapped["Professional"] = relationship("Professional")  # noqa: F821
    appointment: Mapped["Appointment"] = relationship("Appointment")  # noqa: F821

    __table_args__ = (
        CheckConstraint(
            "(status = 'paid' AND paid_at IS NOT NULL) OR "
            "(status = 'pending' AND paid_at IS NULL)",
            name="ck_commission_paid_at_matches_status",
        ),
        Index(
            "uq_commission_accrual_per_appointment",
            "appointment_id",
            unique=True,
            postgresql_where=text("entry_type = 'accrual'"),
            sqlite_where=text("entry_type = 'accrual'"),
        ),
        Index("idx_commission_entry_professional", "professional_id", "period"),
        Index("idx_commission_entry_status", "clinic_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<CommissionEntry {self.id} amount={self.commission_amount} status={self.status}>"
