"""
Router principal de la API v1.
Agrupa todos los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from app.api.v1.appointments import router as appointments_router
from app.api.v1.availability import router as availability_router
from app.api.v1.commissions import router as commissions_router
from app.api.v1.inventory import router as inventory_router
from app.api.v1.kits import router as kits_router
from app.api.v1.professionals import router as professionals_router
from app.api.v1.services import router as services_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    professionals_router,
    prefix="/professionals",
    tags=["Profesionales"],
)

api_v1_router.include_router(
    services_router,
    prefix="/services",
    tags=["Procedimientos"],
)

api_v1_router.include_router(
    availability_router,
    prefix="/availability",
    tags=["Disponibilidad"],
)

api_v1_router.include_router(
    appointments_router,
    prefix="/appointments",
    tags=["Citas"],
)

api_v1_router.include_router(
    inventory_router,
    prefix="/inventory",
    tags=["Inventario"],
)

api_v1_router.include_router(
    kits_router,
    prefix="/kits",
    tags=["Kits de procedimiento"],
)

api_v1_router.include_router(
    commissions_router,
    prefix="/commissions",
    tags=["Comisiones"],
)
