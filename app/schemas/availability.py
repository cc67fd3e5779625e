"""
Schemas para disponibilidad: horario semanal, excepciones y slots.
"""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


# ── Horario semanal ──────────────────────────────────

class ScheduleBlockCreate(BaseModel):
    professional_id: UUID
    day_of_week: int = Field(..., ge=0, le=6, description="0=Lunes ... 6=Domingo")
    start_time: time
    end_time: time

    @field_validator("end_time")
    @classmethod
    def end_after_start(cls, v: time, info) -> time:
        start = info.data.get("start_time")
        if start and v <= start:
            raise ValueError("end_time debe ser posterior a start_time")
        return v


class ScheduleBlockResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    professional_id: UUID
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool

    model_config = {"from_attributes": True}


# ── Excepciones ──────────────────────────────────────

class AvailabilityExceptionCreate(BaseModel):
    """Bloqueo de agenda de día completo o de una ventana horaria."""
    professional_id: UUID
    date_start: date
    date_end: date
    is_full_day: bool = True
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = Field(None, max_length=500)

    @field_validator("date_end")
    @classmethod
    def end_after_start(cls, v: date, info) -> date:
        start = info.data.get("date_start")
        if start and v < start:
            raise ValueError("date_end debe ser igual o posterior a date_start")
        return v

    @model_validator(mode="after")
    def partial_window(self) -> "AvailabilityExceptionCreate":
        if self.is_full_day:
            self.start_time = None
            self.end_time = None
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError("Un bloqueo parcial requiere start_time y end_time")
        if self.start_time >= self.end_time:
            raise ValueError("end_time debe ser posterior a start_time")
        return self


class AvailabilityExceptionResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    professional_id: UUID
    date_start: date
    date_end: date
    is_full_day: bool
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


# ── Consultas ────────────────────────────────────────

class AvailabilityCheckResponse(BaseModel):
    professional_id: UUID
    start_time: datetime
    end_time: datetime
    available: bool
    reason: str | None = None


class TimeSlot(BaseModel):
    start_time: datetime
    end_time: datetime
    available: bool


class FreeSlotsResponse(BaseModel):
    professional_id: UUID
    date: date
    slots: list[TimeSlot]
