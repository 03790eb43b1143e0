from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetrack.errors import (
    CrossTenantError,
    ForbiddenError,
    ProjectNotFoundError,
    UserNotFoundError,
    WorkspaceMismatchError,
    WorkspaceNotFoundError,
)
from timetrack.models import (
    EntryStatus,
    Project,
    RecordStatus,
    TimeEntry,
    TimeEntrySplit,
    User,
    UserRole,
    UserStatus,
    Workspace,
)
from timetrack.security import can_submit_for
from timetrack.services.date_guard import validate_entry_dates
from timetrack.services.intervals import Segment, normalize_utc, resolve_tenant_zone, split_by_local_midnight
from timetrack.services.policies import resolve_shift_windows
from timetrack.services.shift_calc import SegmentSummary, sum_hours, summarize_segment
from timetrack.settings import get_settings

logger = logging.getLogger("timetrack.time_entries")


@dataclass(frozen=True)
class CreatedTimeEntry:
    entry: TimeEntry
    splits: list[TimeEntrySplit]


def _resolve_target_user(db: Session, *, tenant_id: str, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None or user.status != UserStatus.ACTIVE:
        raise UserNotFoundError()
    if not user.tenant_id or user.tenant_id != tenant_id:
        raise CrossTenantError("User does not belong to this tenant.")
    return user


def _resolve_active_project(db: Session, *, tenant_id: str, project_id: int) -> Project:
    project = db.scalar(
        select(Project).where(
            Project.id == project_id,
            Project.tenant_id == tenant_id,
        )
    )
    if project is None or project.status != RecordStatus.ACTIVE:
        raise ProjectNotFoundError()
    return project


def _resolve_workspace_id(
    db: Session,
    *,
    tenant_id: str,
    project: Project,
    workspace_id: int | None,
) -> int | None:
    if workspace_id is not None and project.workspace_id is not None and workspace_id != project.workspace_id:
        raise WorkspaceMismatchError()

    resolved = workspace_id if workspace_id is not None else project.workspace_id
    if resolved is None:
        return None

    workspace = db.scalar(
        select(Workspace).where(
            Workspace.id == resolved,
            Workspace.tenant_id == tenant_id,
        )
    )
    if workspace is None or workspace.status != RecordStatus.ACTIVE:
        raise WorkspaceNotFoundError()
    return workspace.id


def _backdate_limit_days(user: User) -> int:
    if user.backdate_limit_days is None:
        return get_settings().default_backdate_limit_days
    return int(user.backdate_limit_days)


def create_time_entry(
    db: Session,
    *,
    tenant_id: str,
    actor_id: int,
    actor_role: UserRole,
    user_id: int,
    project_id: int,
    start_utc: datetime,
    end_utc: datetime,
    workspace_id: int | None = None,
    notes: str | None = None,
    now_utc: datetime | None = None,
) -> CreatedTimeEntry:
    user = _resolve_target_user(db, tenant_id=tenant_id, user_id=user_id)
    project = _resolve_active_project(db, tenant_id=tenant_id, project_id=project_id)
    if not can_submit_for(actor_id=actor_id, actor_role=actor_role, user_id=user_id):
        raise ForbiddenError("Employees can only create their own entries.")
    resolved_workspace_id = _resolve_workspace_id(
        db,
        tenant_id=tenant_id,
        project=project,
        workspace_id=workspace_id,
    )
    windows = resolve_shift_windows(db, tenant_id)

    zone = resolve_tenant_zone(db, tenant_id)
    segments = split_by_local_midnight(start_utc, end_utc, zone)
    validate_entry_dates(
        [segment.local_date for segment in segments],
        _backdate_limit_days(user),
        zone,
        now_utc=now_utc,
    )

    summaries: list[tuple[Segment, SegmentSummary]] = [
        (segment, summarize_segment(segment, windows, zone)) for segment in segments
    ]

    # Parent totals add the already-rounded per-day figures.
    entry = TimeEntry(
        tenant_id=tenant_id,
        user_id=user.id,
        created_by_id=actor_id,
        project_id=project.id,
        workspace_id=resolved_workspace_id,
        start_time=normalize_utc(start_utc),
        end_time=normalize_utc(end_utc),
        total_hours=sum_hours(summary.total_hours for _, summary in summaries),
        evening_hours=sum_hours(summary.evening_hours for _, summary in summaries),
        night_hours=sum_hours(summary.night_hours for _, summary in summaries),
        status=EntryStatus.PENDING,
        notes=notes,
    )
    splits = [
        TimeEntrySplit(
            tenant_id=tenant_id,
            user_id=user.id,
            project_id=project.id,
            local_date=segment.local_date,
            start_time=segment.start_utc,
            end_time=segment.end_utc,
            total_hours=summary.total_hours,
            evening_hours=summary.evening_hours,
            night_hours=summary.night_hours,
            status=EntryStatus.PENDING,
            notes=notes,
        )
        for segment, summary in summaries
    ]

    # Splits cascade from the parent in chronological list order.
    entry.splits = splits
    try:
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "time_entry_created",
        extra={
            "tenant_id": tenant_id,
            "time_entry_id": entry.id,
            "user_id": user.id,
            "actor_id": actor_id,
            "split_count": len(splits),
            "total_hours": entry.total_hours,
            "evening_hours": entry.evening_hours,
            "night_hours": entry.night_hours,
        },
    )
    return CreatedTimeEntry(entry=entry, splits=splits)


def list_time_entry_splits(
    db: Session,
    *,
    tenant_id: str,
    user_id: int | None = None,
    status: EntryStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[TimeEntrySplit]:
    stmt = (
        select(TimeEntrySplit)
        .where(TimeEntrySplit.tenant_id == tenant_id)
        .order_by(TimeEntrySplit.local_date.desc(), TimeEntrySplit.start_time.desc(), TimeEntrySplit.id.desc())
    )
    if user_id is not None:
        stmt = stmt.where(TimeEntrySplit.user_id == user_id)
    if status is not None:
        stmt = stmt.where(TimeEntrySplit.status == status)
    if start_date is not None:
        stmt = stmt.where(TimeEntrySplit.local_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(TimeEntrySplit.local_date <= end_date)
    return list(db.scalars(stmt).all())


def local_start_is_future(start_utc: datetime, *, now_utc: datetime | None = None) -> bool:
    now = now_utc or datetime.now(timezone.utc)
    return normalize_utc(start_utc) > normalize_utc(now)
