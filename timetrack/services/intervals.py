from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetrack.errors import InvalidIntervalError
from timetrack.models import Company
from timetrack.services.shift_calc import parse_clock_minutes
from timetrack.settings import get_settings

logger = logging.getLogger("timetrack.intervals")


@dataclass(frozen=True)
class Segment:
    """One calendar-day-bounded part of a work interval.

    ``start_utc``/``end_utc`` never straddle a local midnight of the zone the
    segment was produced for; ``local_date`` is the local date of ``start_utc``.
    """

    start_utc: datetime
    end_utc: datetime
    local_date: date


def normalize_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def load_zone(name: str | None) -> ZoneInfo:
    fallback = get_settings().default_timezone
    raw_name = (name or "").strip() or fallback
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("unknown_timezone_fallback", extra={"timezone": raw_name, "fallback": fallback})
        return ZoneInfo(fallback)


def resolve_tenant_zone(db: Session, tenant_id: str) -> ZoneInfo:
    company = db.scalar(select(Company).where(Company.tenant_id == tenant_id))
    return load_zone(company.timezone if company is not None else None)


def split_by_local_midnight(start_utc: datetime, end_utc: datetime, zone: ZoneInfo) -> list[Segment]:
    start = normalize_utc(start_utc)
    end = normalize_utc(end_utc)
    if end <= start:
        raise InvalidIntervalError()

    # Cursor and bounds are all UTC.
    segments: list[Segment] = []
    cursor = start
    while cursor < end:
        local_day = cursor.astimezone(zone).date()
        next_midnight = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=zone).astimezone(timezone.utc)
        segment_end = min(next_midnight, end)
        segments.append(Segment(start_utc=cursor, end_utc=segment_end, local_date=local_day))
        cursor = segment_end

    return segments


def local_clock_interval(
    local_date: date,
    start_clock: str,
    end_clock: str,
    zone: ZoneInfo,
) -> tuple[datetime, datetime]:
    start_minutes = parse_clock_minutes(start_clock)
    end_minutes = parse_clock_minutes(end_clock)

    start_local = datetime.combine(local_date, time(start_minutes // 60, start_minutes % 60), tzinfo=zone)
    end_day = local_date if end_minutes > start_minutes else local_date + timedelta(days=1)
    end_local = datetime.combine(end_day, time(end_minutes // 60, end_minutes % 60), tzinfo=zone)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)
