"""
Modelos SQLAlchemy — exportar todos para que Alembic los detecte.
"""

from app.models.professional import Professional
from app.models.professional_schedule import ProfessionalSchedule
from app.models.availability_exception import AvailabilityException
from app.models.service import Service
from app.models.appointment import Appointment, AppointmentStatus
from app.models.inventory import InventoryItem, StockMovement
from app.models.kit_item import KitItem
from app.models.commission import CommissionEntry, CommissionEntryStatus, CommissionEntryType
from app.models.audit_log import AuditLog

__all__ = [
    "Professional",
    "ProfessionalSchedule",
    "AvailabilityException",
    "Service",
    "Appointment",
    "AppointmentStatus",
    "InventoryItem",
    "StockMovement",
    "KitItem",
    "CommissionEntry",
    "CommissionEntryStatus",
    "CommissionEntryType",
    "AuditLog",
]
