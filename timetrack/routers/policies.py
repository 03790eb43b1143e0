from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from timetrack.audit import log_audit
from timetrack.db import get_db
from timetrack.routers.common import audit_context
from timetrack.schemas import ShiftPolicyRead, ShiftPolicyUpdateRequest
from timetrack.security import AuthPrincipal, get_current_principal, require_admin_role, resolve_tenant
from timetrack.services.policies import get_active_policy, replace_active_policy
from timetrack.services.shift_calc import ShiftWindows

router = APIRouter(tags=["policies"])


@router.get("/api/policies", response_model=ShiftPolicyRead | None)
def read_active_policy(
    tenant_id: str | None = Query(default=None),
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ShiftPolicyRead | None:
    policy = get_active_policy(db, resolve_tenant(principal, tenant_id))
    if policy is None:
        return None
    return ShiftPolicyRead.model_validate(policy)


@router.put("/api/policies", response_model=ShiftPolicyRead)
def update_policy(
    payload: ShiftPolicyUpdateRequest,
    request: Request,
    principal: AuthPrincipal = Depends(require_admin_role),
    db: Session = Depends(get_db),
) -> ShiftPolicyRead:
    tenant_id = resolve_tenant(principal, payload.tenant_id)
    policy = replace_active_policy(
        db,
        tenant_id=tenant_id,
        windows=ShiftWindows(
            evening_start=payload.evening_start,
            evening_end=payload.evening_end,
            night_start=payload.night_start,
            night_end=payload.night_end,
        ),
    )

    log_audit(
        db,
        tenant_id=tenant_id,
        user_id=principal.user_id,
        action="POLICY_UPDATE",
        entity="ShiftPolicy",
        entity_id=str(policy.id),
        details={
            "evening_start": policy.evening_start,
            "evening_end": policy.evening_end,
            "night_start": policy.night_start,
            "night_end": policy.night_end,
        },
        context=audit_context(request),
    )
    return ShiftPolicyRead.model_validate(policy)
