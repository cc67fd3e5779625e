"""
Dependencies de FastAPI para el contexto de tenant.

La autenticación vive fuera de este servicio: el gateway reenvía la
clínica en `X-Clinic-ID` y, opcionalmente, el usuario en `X-User-ID`.
"""

from uuid import UUID

from fastapi import Header

from app.core.exceptions import TenantException


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise TenantException(f"Header {header} inválido")


async def get_clinic_id(
    x_clinic_id: str | None = Header(None, alias="X-Clinic-ID"),
) -> UUID:
    """Clínica del request; sin ella no se puede operar."""
    if not x_clinic_id:
        raise TenantException("Falta el header X-Clinic-ID")
    return _parse_uuid(x_clinic_id, "X-Clinic-ID")


async def get_user_id(
    x_user_id: str | None = Header(None, alias="X-User-ID"),
) -> UUID | None:
    if not x_user_id:
        return None
    return _parse_uuid(x_user_id, "X-User-ID")
