"""
Serialización por clave (profesional, ledger de comisiones).

Dentro del proceso se usa un asyncio.Lock por clave; en PostgreSQL además
se toma `pg_advisory_xact_lock`, que se libera solo al cerrar la transacción,
así varias réplicas del API tampoco intercalan check-then-write.
El bloque protegido debe hacer commit antes de salir del context manager.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import ConflictException

logger = logging.getLogger(__name__)

# Un registro por event loop: un asyncio.Lock no se puede compartir entre loops
_registry: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def _local_lock(key: str) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    locks = _registry.setdefault(loop, {})
    lock = locks.get(key)
    if lock is None:
        lock = locks[key] = asyncio.Lock()
    return lock


def professional_key(clinic_id: UUID, professional_id: UUID) -> str:
    return f"professional:{clinic_id}:{professional_id}"


def commission_key(clinic_id: UUID, professional_id: UUID) -> str:
    return f"commission:{clinic_id}:{professional_id}"


@asynccontextmanager
async def serialized(
    db: AsyncSession,
    key: str,
    timeout: float | None = None,
) -> AsyncIterator[None]:
    """Ejecuta el bloque con exclusión mutua sobre `key`."""
    if timeout is None:
        timeout = get_settings().LOCK_TIMEOUT_SECONDS

    lock = _local_lock(key)
    try:
        await asyncio.wait_for(lock.acquire(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Timeout esperando lock {key}")
        raise ConflictException(
            "Otra operación sobre el mismo recurso está en curso, reintente"
        )

    try:
        if db.get_bind().dialect.name == "postgresql":
            await db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": key},
            )
        yield
    finally:
        lock.release()
