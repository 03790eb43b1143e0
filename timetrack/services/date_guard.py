from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from timetrack.errors import BackdateLimitExceededError, FutureDateNotAllowedError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_today(zone: ZoneInfo, now_utc: datetime | None = None) -> date:
    now = now_utc or _utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(zone).date()


def validate_entry_date(
    local_date: date,
    backdate_limit_days: int,
    zone: ZoneInfo,
    *,
    now_utc: datetime | None = None,
) -> None:
    today = local_today(zone, now_utc)
    if local_date > today:
        raise FutureDateNotAllowedError()

    days_back = (today - local_date).days
    if days_back > backdate_limit_days:
        raise BackdateLimitExceededError(f"Cannot create entries older than {backdate_limit_days} days.")


def validate_entry_dates(
    local_dates: list[date],
    backdate_limit_days: int,
    zone: ZoneInfo,
    *,
    now_utc: datetime | None = None,
) -> None:
    now = now_utc or _utcnow()
    for local_date in local_dates:
        validate_entry_date(local_date, backdate_limit_days, zone, now_utc=now)
