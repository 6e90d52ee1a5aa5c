from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from minglz.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache(maxsize=8)
def _zone(name: str):
    # Windows may not ship the IANA database without the tzdata package.
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        return timezone.utc


def local_tz():
    return _zone(settings.APP_TIMEZONE)


def as_aware_utc(dt: datetime) -> datetime:
    """
    SQLite hands back naive datetimes even for timezone=True columns.
    Treat naive values as UTC so arithmetic is consistent across backends.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime) -> datetime:
    return as_aware_utc(dt).astimezone(local_tz())
