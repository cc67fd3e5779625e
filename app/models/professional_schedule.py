"""
Modelo ProfessionalSchedule — Horario semanal base de cada profesional.

Un profesional puede tener varios bloques por día (mañana / tarde).
Las excepciones (AvailabilityException) se restan sobre esta plantilla.
"""

import uuid
from datetime import time

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    SmallInteger,
    Time,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class ProfessionalSchedule(Base):
    __tablename__ = "professional_schedules"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    clinic_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("professionals.id"), nullable=False
    )

    # ── Día de la semana (0=Lunes ... 6=Domingo) ─────
    day_of_week: Mapped[int] = mapped_column(
        SmallInteger, nullable=False,
        comment="0=Lunes, 1=Martes, 2=Miércoles, 3=Jueves, 4=Viernes, 5=Sábado, 6=Domingo"
    )

    # ── Bloque de horario (hora local de la clínica) ─
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    professional: Mapped["Professional"] = relationship("Professional")  # noqa: F821

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_schedule_block_order"),
        Index("idx_schedule_professional_day", "professional_id", "day_of_week"),
    )

    def __repr__(self) -> str:
        days = ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"]
        day_name = days[self.day_of_week] if 0 <= self.day_of_week <= 6 else "?"
        return f"<ProfessionalSchedule {day_name} {self.start_time}-{self.end_time}>"
