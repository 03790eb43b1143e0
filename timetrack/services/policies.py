from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from timetrack.models import ShiftPolicy
from timetrack.services.shift_calc import DEFAULT_SHIFT_WINDOWS, ShiftWindows

logger = logging.getLogger("timetrack.policies")


def get_active_policy(db: Session, tenant_id: str) -> ShiftPolicy | None:
    return db.scalar(
        select(ShiftPolicy)
        .where(
            ShiftPolicy.tenant_id == tenant_id,
            ShiftPolicy.is_active.is_(True),
        )
        .order_by(ShiftPolicy.effective_from.desc(), ShiftPolicy.id.desc())
    )


def windows_from_policy(policy: ShiftPolicy) -> ShiftWindows:
    return ShiftWindows(
        evening_start=policy.evening_start,
        evening_end=policy.evening_end,
        night_start=policy.night_start,
        night_end=policy.night_end,
    )


def resolve_shift_windows(db: Session, tenant_id: str) -> ShiftWindows:
    policy = get_active_policy(db, tenant_id)
    if policy is None:
        # Bootstrap tenants have no policy row yet.
        logger.info("shift_policy_fallback_used", extra={"tenant_id": tenant_id})
        return DEFAULT_SHIFT_WINDOWS
    return windows_from_policy(policy)


def replace_active_policy(
    db: Session,
    *,
    tenant_id: str,
    windows: ShiftWindows,
    now_utc: datetime | None = None,
) -> ShiftPolicy:
    windows.validate()
    effective_from = now_utc or datetime.now(timezone.utc)

    try:
        db.execute(
            update(ShiftPolicy)
            .where(
                ShiftPolicy.tenant_id == tenant_id,
                ShiftPolicy.is_active.is_(True),
            )
            .values(is_active=False)
        )
        policy = ShiftPolicy(
            tenant_id=tenant_id,
            evening_start=windows.evening_start,
            evening_end=windows.evening_end,
            night_start=windows.night_start,
            night_end=windows.night_end,
            effective_from=effective_from,
            is_active=True,
        )
        db.add(policy)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(policy)
    logger.info(
        "shift_policy_replaced",
        extra={
            "tenant_id": tenant_id,
            "policy_id": policy.id,
            "evening": f"{policy.evening_start}-{policy.evening_end}",
            "night": f"{policy.night_start}-{policy.night_end}",
        },
    )
    return policy
