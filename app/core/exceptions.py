"""
Excepciones de dominio de la agenda y el ledger.
Son HTTPException para que la API las devuelva tal cual; los servicios
las lanzan y nunca las silencian.
"""

from decimal import Decimal
from uuid import UUID

from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    """Recurso no encontrado (404)."""

    def __init__(self, resource: str = "Recurso", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} no encontrado",
        )


class ConflictException(HTTPException):
    """Conflicto de datos (409) — ej: cita solapada o mapeo duplicado."""

    def __init__(self, detail: str = "El recurso ya existe"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class UnavailableException(ConflictException):
    """El profesional no atiende en el intervalo pedido (horario o excepción)."""

    def __init__(self, detail: str = "El profesional no está disponible en ese horario"):
        super().__init__(detail=detail)


class InvalidTransitionException(HTTPException):
    """Transición de estado no permitida por la state machine (409)."""

    def __init__(self, current: str, requested: str, allowed: list[str] | None = None):
        self.current = current
        self.requested = requested
        detail = f"No se puede pasar de '{current}' a '{requested}'"
        if allowed is not None:
            detail += f". Transiciones válidas: {', '.join(allowed) or 'ninguna'}"
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class InsufficientStockException(HTTPException):
    """Uno o más insumos no alcanzan para el descuento pedido (409)."""

    def __init__(self, shortfalls: list[tuple[UUID, str, Decimal, Decimal]]):
        # (item_id, nombre, disponible, requerido)
        self.shortfalls = shortfalls
        parts = [
            f"{name}: disponible {available}, requerido {required}"
            for _, name, available, required in shortfalls
        ]
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Stock insuficiente — {'; '.join(parts)}",
        )


class ValidationException(HTTPException):
    """Error de validación de negocio (422)."""

    def __init__(self, detail: str = "Error de validación"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class TenantException(HTTPException):
    """Error de contexto multi-tenant (400)."""

    def __init__(self, detail: str = "Contexto de clínica no disponible"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )
