from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from timetrack.errors import ApiError
from timetrack.models import EntryStatus, TimeEntrySplit
from timetrack.services.shift_calc import ZERO_HOURS


class HoursRow(Protocol):
    total_hours: Decimal
    evening_hours: Decimal
    night_hours: Decimal


@dataclass(frozen=True)
class ReportTotals:
    total_hours: Decimal = ZERO_HOURS
    evening_hours: Decimal = ZERO_HOURS
    night_hours: Decimal = ZERO_HOURS

    def as_dict(self) -> dict[str, Decimal]:
        return {
            "total_hours": self.total_hours,
            "evening_hours": self.evening_hours,
            "night_hours": self.night_hours,
        }


@dataclass(frozen=True)
class HoursReport:
    tenant_id: str
    start_date: date
    end_date: date
    user_id: int | None
    totals: ReportTotals
    rows: list[TimeEntrySplit] = field(default_factory=list)


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def aggregate_report(items: Iterable[HoursRow | dict[str, Any]]) -> ReportTotals:
    total = evening = night = ZERO_HOURS
    for item in items:
        if isinstance(item, dict):
            total += _as_decimal(item.get("total_hours"))
            evening += _as_decimal(item.get("evening_hours"))
            night += _as_decimal(item.get("night_hours"))
        else:
            total += _as_decimal(item.total_hours)
            evening += _as_decimal(item.evening_hours)
            night += _as_decimal(item.night_hours)
    return ReportTotals(total_hours=total, evening_hours=evening, night_hours=night)


def build_report(
    db: Session,
    *,
    tenant_id: str,
    start_date: date,
    end_date: date,
    user_id: int | None = None,
) -> HoursReport:
    if end_date < start_date:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )

    stmt = (
        select(TimeEntrySplit)
        .options(
            selectinload(TimeEntrySplit.user),
            selectinload(TimeEntrySplit.project),
            selectinload(TimeEntrySplit.time_entry),
        )
        .where(
            TimeEntrySplit.tenant_id == tenant_id,
            TimeEntrySplit.status == EntryStatus.APPROVED,
            TimeEntrySplit.local_date >= start_date,
            TimeEntrySplit.local_date <= end_date,
        )
        .order_by(TimeEntrySplit.local_date.desc(), TimeEntrySplit.start_time.desc(), TimeEntrySplit.id.desc())
    )
    if user_id is not None:
        stmt = stmt.where(TimeEntrySplit.user_id == user_id)

    rows = list(db.scalars(stmt).all())
    return HoursReport(
        tenant_id=tenant_id,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
        totals=aggregate_report(rows),
        rows=rows,
    )
