from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from timetrack.models import AuditLog

logger = logging.getLogger("timetrack.audit")


@dataclass(frozen=True)
class AuditContext:
    ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None


def log_audit(
    db: Session,
    *,
    tenant_id: str | None,
    user_id: int | None,
    action: str,
    entity: str,
    entity_id: str | None = None,
    details: dict[str, Any] | None = None,
    context: AuditContext | None = None,
) -> AuditLog | None:
    """Persist one audit row in its own commit.

    Called after the audited change is already committed, so a failed audit
    write is rolled back and logged instead of failing the request.
    """
    ctx = context or AuditContext()
    record = AuditLog(
        ts_utc=datetime.now(timezone.utc),
        tenant_id=tenant_id,
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        ip=ctx.ip,
        user_agent=ctx.user_agent,
        details=dict(details or {}),
    )
    fields = {
        "request_id": ctx.request_id,
        "tenant_id": tenant_id,
        "user_id": user_id,
        "action": action,
        "entity": entity,
        "entity_id": entity_id,
    }

    db.add(record)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("audit_log_write_failed", extra=fields)
        return None

    logger.info("audit_event", extra={**fields, "ip": ctx.ip, "details": record.details})
    return record
