"""
Modelo Appointment — Citas con state machine de estados.

Estados válidos y transiciones:
    scheduled → confirmed → arrived → in_service → completed
    no_show y canceled son terminales, alcanzables desde cualquier
    estado no terminal (no_show no aplica una vez en servicio).
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class AppointmentStatus(str, enum.Enum):
    """Estados de una cita."""
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    ARRIVED = "arrived"
    IN_SERVICE = "in_service"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELED = "canceled"


# ── Transiciones válidas de la state machine ─────────
VALID_TRANSITIONS: dict[AppointmentStatus, list[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.ARRIVED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.ARRIVED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.ARRIVED: [
        AppointmentStatus.IN_SERVICE,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELED,
    ],
    AppointmentStatus.IN_SERVICE: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELED,
    ],
    # Estados terminales: no tienen transiciones
    AppointmentStatus.COMPLETED: [],
    AppointmentStatus.NO_SHOW: [],
    AppointmentStatus.CANCELED: [],
}

TERMINAL_STATUSES = frozenset(s for s, targets in VALID_TRANSITIONS.items() if not targets)

# Estados que ocupan el horario del profesional
BLOCKING_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.ARRIVED,
    AppointmentStatus.IN_SERVICE,
})

RESCHEDULABLE_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
})


def is_valid_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Verifica si una transición de estado es válida."""
    return new in VALID_TRANSITIONS.get(current, [])


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, nullable=False,
        comment="Referencia al directorio de pacientes (externo)"
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("professionals.id"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id"), nullable=False
    )

    # ── Datos de la cita ─────────────────────────────
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        comment="start_time + duración del procedimiento"
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    room: Mapped[str | None] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text)

    # ── Metadata de cierre ───────────────────────────
    cancellation_reason: Mapped[str | None] = mapped_column(String(500))
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    booked_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # ── Timestamps ───────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relaciones ───────────────────────────────────
    professional: Mapped["Professional"] = relationship("Professional")  # noqa: F821
    service: Mapped["Service"] = relationship("Service")  # noqa: F821

    # ── Índices para consultas frecuentes ────────────
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_appointment_interval"),
        Index("idx_appointment_clinic_date", "clinic_id", "start_time"),
        Index("idx_appointment_professional_date", "professional_id", "start_time"),
        Index("idx_appointment_patient", "patient_id", "start_time"),
        Index("idx_appointment_status", "clinic_id", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return f"<Appointment {self.id} [{self.status.value}] {self.start_time}>"
