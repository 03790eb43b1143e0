from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetrack.errors import ImmutableApprovedEntryError, NotFoundError
from timetrack.models import EntryStatus, TimeEntry, TimeEntrySplit

logger = logging.getLogger("timetrack.approvals")

DEFAULT_REJECTION_REASON = "Rejected"


@dataclass(frozen=True)
class SplitStatusChange:
    split: TimeEntrySplit
    changed: bool


def derive_parent_status(statuses: Iterable[EntryStatus]) -> EntryStatus:
    collected = list(statuses)
    if all(status == EntryStatus.APPROVED for status in collected):
        return EntryStatus.APPROVED
    if any(status == EntryStatus.REJECTED for status in collected):
        return EntryStatus.REJECTED
    return EntryStatus.PENDING


def _resolve_split(db: Session, *, split_id: int, tenant_id: str | None) -> TimeEntrySplit:
    split = db.get(TimeEntrySplit, split_id)
    if split is None or (tenant_id is not None and split.tenant_id != tenant_id):
        raise NotFoundError("Time entry not found.")
    return split


def _apply_split_status(
    split: TimeEntrySplit,
    *,
    new_status: EntryStatus,
    actor_id: int,
    reason: str | None,
    now_utc: datetime,
) -> None:
    split.status = new_status
    if new_status == EntryStatus.APPROVED:
        split.approved_by_id = actor_id
        split.approved_at = now_utc
        split.rejection_reason = None
    elif new_status == EntryStatus.REJECTED:
        split.approved_by_id = None
        split.approved_at = None
        split.rejection_reason = reason if reason is not None else DEFAULT_REJECTION_REASON
    else:
        split.approved_by_id = None
        split.approved_at = None
        split.rejection_reason = None


def refresh_parent_status(
    db: Session,
    *,
    time_entry_id: int,
    reason: str | None,
    now_utc: datetime,
) -> TimeEntry:
    """Re-derive the parent's status from the current state of every sibling.

    The parent is always recomputed from scratch, so concurrent approvals of
    different splits converge on the same result whatever order they commit in.
    """
    entry = db.get(TimeEntry, time_entry_id)
    if entry is None:
        raise NotFoundError("Time entry not found.")

    statuses = db.scalars(
        select(TimeEntrySplit.status).where(TimeEntrySplit.time_entry_id == time_entry_id)
    ).all()
    parent_status = derive_parent_status(statuses)

    entry.status = parent_status
    entry.locked_at = now_utc if parent_status == EntryStatus.APPROVED else None
    entry.rejection_reason = None
    if parent_status == EntryStatus.REJECTED:
        entry.rejection_reason = reason if reason is not None else DEFAULT_REJECTION_REASON
    return entry


def set_split_status(
    db: Session,
    *,
    split_id: int,
    new_status: EntryStatus,
    actor_id: int,
    reason: str | None = None,
    tenant_id: str | None = None,
    now_utc: datetime | None = None,
) -> SplitStatusChange:
    split = _resolve_split(db, split_id=split_id, tenant_id=tenant_id)
    previous_status = split.status
    if previous_status == EntryStatus.APPROVED:
        if new_status != EntryStatus.APPROVED:
            raise ImmutableApprovedEntryError()
        return SplitStatusChange(split=split, changed=False)

    now = now_utc or datetime.now(timezone.utc)
    try:
        _apply_split_status(split, new_status=new_status, actor_id=actor_id, reason=reason, now_utc=now)
        db.flush()
        entry = refresh_parent_status(db, time_entry_id=split.time_entry_id, reason=reason, now_utc=now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "time_entry_split_status_changed",
        extra={
            "tenant_id": split.tenant_id,
            "split_id": split.id,
            "time_entry_id": split.time_entry_id,
            "actor_id": actor_id,
            "previous_status": previous_status.value,
            "new_status": new_status.value,
            "parent_status": entry.status.value,
        },
    )
    return SplitStatusChange(split=split, changed=True)
