"""
Modelo AvailabilityException — Bloqueos de agenda de un profesional.

Rango de fechas inclusivo. Si is_full_day es falso, solo se bloquea la
ventana [start_time, end_time) en cada día del rango. Las excepciones
vencidas (date_end < hoy) se conservan para auditoría pero ya no bloquean.
"""

import uuid
from datetime import date, datetime, time

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Time,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class AvailabilityException(Base):
    __tablename__ = "availability_exceptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("professionals.id"), nullable=False
    )

    # ── Rango de fechas ─────────────────────────────
    date_start: Mapped[date] = mapped_column(
        Date, nullable=False,
        comment="Fecha inicio (si es un solo día, start == end)"
    )
    date_end: Mapped[date] = mapped_column(Date, nullable=False)

    # ── Ventana bloqueada ───────────────────────────
    is_full_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    start_time: Mapped[time | None] = mapped_column(
        Time, comment="Solo para bloqueos parciales"
    )
    end_time: Mapped[time | None] = mapped_column(
        Time, comment="Solo para bloqueos parciales"
    )

    reason: Mapped[str | None] = mapped_column(String(500))

    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    professional: Mapped["Professional"] = relationship("Professional")  # noqa: F821

    __table_args__ = (
        CheckConstraint("date_start <= date_end", name="ck_exception_date_order"),
        CheckConstraint(
            "is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL "
            "AND start_time < end_time)",
            name="ck_exception_partial_window",
        ),
        Index("idx_exception_professional_dates", "professional_id", "date_start", "date_end"),
    )

    def blocks(self, on: date, start: time, end: time) -> bool:
        """¿Bloquea el intervalo [start, end) del día `on`?"""
        if not (self.date_start <= on <= self.date_end):
            return False
        if self.is_full_day:
            return True
        return start < self.end_time and self.start_time < end

    def __repr__(self) -> str:
        window = "día completo" if self.is_full_day else f"{self.start_time}-{self.end_time}"
        return f"<AvailabilityException {self.date_start}–{self.date_end} {window}>"
