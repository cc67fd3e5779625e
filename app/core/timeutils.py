"""
Helpers de fechas: todo instante se persiste en UTC y los horarios
semanales se comparan en la zona horaria de la clínica.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.config import get_settings


def as_utc(value: datetime) -> datetime:
    """Normaliza a UTC. Los datetime naive (SQLite) se asumen UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clinic_tz() -> ZoneInfo:
    return get_settings().clinic_tz


def to_local(value: datetime) -> datetime:
    return as_utc(value).astimezone(clinic_tz())


def local_today() -> date:
    return utcnow().astimezone(clinic_tz()).date()


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """[00:00 del día, 00:00 del día siguiente) en hora local, expresado en UTC."""
    tz = clinic_tz()
    start = datetime.combine(day, time.min).replace(tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min).replace(tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def period_bounds(period_start: date, period_end: date) -> tuple[datetime, datetime]:
    """Rango inclusivo de fechas locales → [inicio, fin) en UTC."""
    start, _ = local_day_bounds(period_start)
    _, end = local_day_bounds(period_end)
    return start, end


def split_by_local_day(start: datetime, end: datetime) -> list[tuple[date, time, time]]:
    """
    Parte [start, end) en tramos por día local.

    El recorrido avanza sobre instantes UTC: dos horas locales de la misma
    zona se comparan por reloj de pared e ignoran `fold`, así que la hora
    repetida del cambio de horario no se puede recorrer en hora local.
    Si un tramo cruza un cambio de horario se devuelve la envolvente de las
    horas de pared que toca. El fin de un tramo que llega a medianoche se
    representa con time.max.
    """
    tz = clinic_tz()
    cursor, end = as_utc(start), as_utc(end)
    pieces: list[tuple[date, time, time]] = []

    while cursor < end:
        local_start = cursor.astimezone(tz)
        day = local_start.date()
        next_midnight = (
            datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz).astimezone(timezone.utc)
        )
        piece_end = min(end, next_midnight)

        wall_start = local_start.replace(tzinfo=None)
        wall_end = piece_end.astimezone(tz).replace(tzinfo=None)
        low = min(wall_start, wall_end)
        high = max(wall_start + (piece_end - cursor), wall_end)

        start_t = low.time() if low.date() == day else time.min
        end_t = time.max if piece_end == next_midnight or high.date() > day else high.time()
        pieces.append((day, start_t, end_t))
        cursor = piece_end

    return pieces
