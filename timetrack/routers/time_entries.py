from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from timetrack.audit import log_audit
from timetrack.db import get_db
from timetrack.errors import FutureDateNotAllowedError
from timetrack.models import EntryStatus, UserRole
from timetrack.routers.common import audit_context
from timetrack.schemas import (
    SplitStatusUpdateRequest,
    TimeEntryCreateRequest,
    TimeEntryCreateResponse,
    TimeEntryRead,
    TimeEntrySplitRead,
)
from timetrack.security import AuthPrincipal, get_current_principal, require_admin_role, resolve_tenant
from timetrack.services.approvals import set_split_status
from timetrack.services.intervals import local_clock_interval, resolve_tenant_zone
from timetrack.services.time_entries import create_time_entry, list_time_entry_splits, local_start_is_future

router = APIRouter(tags=["time-entries"])
STATUS_AUDIT_ACTIONS = {
    EntryStatus.APPROVED: "TIME_ENTRY_APPROVE",
    EntryStatus.REJECTED: "TIME_ENTRY_REJECT",
    EntryStatus.PENDING: "TIME_ENTRY_REOPEN",
}


@router.get("/api/time-entries", response_model=list[TimeEntrySplitRead])
def list_time_entries(
    tenant_id: str | None = Query(default=None),
    user_id: int | None = Query(default=None, ge=1),
    status_filter: EntryStatus | None = Query(default=None, alias="status"),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[TimeEntrySplitRead]:
    resolved_tenant_id = resolve_tenant(principal, tenant_id)
    effective_user_id = principal.user_id if principal.role == UserRole.EMPLOYEE else user_id
    splits = list_time_entry_splits(
        db,
        tenant_id=resolved_tenant_id,
        user_id=effective_user_id,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
    )
    return [TimeEntrySplitRead.model_validate(split) for split in splits]


@router.post(
    "/api/time-entries",
    response_model=TimeEntryCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_time_entry_endpoint(
    payload: TimeEntryCreateRequest,
    request: Request,
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TimeEntryCreateResponse:
    tenant_id = resolve_tenant(principal, payload.tenant_id)
    if principal.role == UserRole.EMPLOYEE:
        user_id = principal.user_id
    else:
        user_id = payload.user_id or principal.user_id

    if payload.uses_local_clock:
        start_utc, end_utc = local_clock_interval(
            payload.local_date,
            payload.start_clock,
            payload.end_clock,
            resolve_tenant_zone(db, tenant_id),
        )
        if local_start_is_future(start_utc):
            raise FutureDateNotAllowedError("Cannot add time entries for future dates/times.")
    else:
        start_utc, end_utc = payload.start_time, payload.end_time

    created = create_time_entry(
        db,
        tenant_id=tenant_id,
        actor_id=principal.user_id,
        actor_role=principal.role,
        user_id=user_id,
        project_id=payload.project_id,
        workspace_id=payload.workspace_id,
        start_utc=start_utc,
        end_utc=end_utc,
        notes=payload.notes,
    )
    request.state.entry_id = created.entry.id

    log_audit(
        db,
        tenant_id=tenant_id,
        user_id=principal.user_id,
        action="TIME_ENTRY_CREATE",
        entity="TimeEntry",
        entity_id=str(created.entry.id),
        details={
            "user_id": user_id,
            "split_count": len(created.splits),
            "start_time": created.entry.start_time.isoformat(),
            "end_time": created.entry.end_time.isoformat(),
        },
        context=audit_context(request),
    )
    return TimeEntryCreateResponse(
        entry=TimeEntryRead.model_validate(created.entry),
        splits=[TimeEntrySplitRead.model_validate(split) for split in created.splits],
    )


@router.patch("/api/time-entries/{split_id}/status", response_model=TimeEntrySplitRead)
def update_time_entry_status(
    split_id: int,
    payload: SplitStatusUpdateRequest,
    request: Request,
    principal: AuthPrincipal = Depends(require_admin_role),
    db: Session = Depends(get_db),
) -> TimeEntrySplitRead:
    # Company admins only see their own tenant; super admins act on any split.
    scope_tenant_id = None if principal.role == UserRole.SUPER_ADMIN else resolve_tenant(principal)
    change = set_split_status(
        db,
        split_id=split_id,
        new_status=payload.status,
        actor_id=principal.user_id,
        reason=payload.reason,
        tenant_id=scope_tenant_id,
    )

    if change.changed:
        log_audit(
            db,
            tenant_id=change.split.tenant_id,
            user_id=principal.user_id,
            action=STATUS_AUDIT_ACTIONS[payload.status],
            entity="TimeEntrySplit",
            entity_id=str(change.split.id),
            details={"status": payload.status.value, "reason": payload.reason},
            context=audit_context(request),
        )
    return TimeEntrySplitRead.model_validate(change.split)
