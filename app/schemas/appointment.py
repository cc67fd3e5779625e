"""
Schemas para Appointment — reserva, reprogramación y cambios de estado.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.appointment import AppointmentStatus


class AppointmentCreate(BaseModel):
    """Reserva: el fin se calcula con la duración del procedimiento."""
    patient_id: UUID
    professional_id: UUID
    service_id: UUID
    start_time: datetime
    room: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=2000)


class AppointmentReschedule(BaseModel):
    start_time: datetime


class AppointmentStatusChange(BaseModel):
    """Schema para cambiar el estado de una cita."""
    status: AppointmentStatus
    cancellation_reason: str | None = Field(None, max_length=500)


class AppointmentCancel(BaseModel):
    reason: str | None = Field(None, max_length=500)


class AppointmentResponse(BaseModel):
    id: UUID
    clinic_id: UUID
    patient_id: UUID
    professional_id: UUID
    service_id: UUID
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    is_terminal: bool = False
    room: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    canceled_at: datetime | None = None
    completed_at: datetime | None = None
    booked_by: UUID | None = None

    # Datos de relaciones
    professional_name: str | None = None
    service_name: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Respuesta paginada de listado de citas."""
    items: list[AppointmentResponse]
    total: int
    page: int
    size: int
    pages: int
