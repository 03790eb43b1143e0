from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from timetrack.db import get_db
from timetrack.models import TimeEntrySplit, UserRole
from timetrack.schemas import ReportResponse, ReportRowRead, ReportTotalsRead, TimeEntrySplitRead
from timetrack.security import AuthPrincipal, get_current_principal, resolve_tenant
from timetrack.services.exports import build_report_xlsx_bytes
from timetrack.services.intervals import resolve_tenant_zone
from timetrack.services.reporting import HoursReport, build_report

router = APIRouter(tags=["reports"])
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _to_report_row(split: TimeEntrySplit) -> ReportRowRead:
    base = TimeEntrySplitRead.model_validate(split)
    return ReportRowRead(
        **base.model_dump(),
        user_name=split.user.name if split.user is not None else None,
        project_name=split.project.name if split.project is not None else None,
        project_color=split.project.color if split.project is not None else None,
    )


def _load_report(
    db: Session,
    principal: AuthPrincipal,
    *,
    tenant_id: str | None,
    start_date: date,
    end_date: date,
    user_id: int | None,
) -> HoursReport:
    resolved_tenant_id = resolve_tenant(principal, tenant_id)
    effective_user_id = principal.user_id if principal.role == UserRole.EMPLOYEE else user_id
    return build_report(
        db,
        tenant_id=resolved_tenant_id,
        start_date=start_date,
        end_date=end_date,
        user_id=effective_user_id,
    )


@router.get("/api/reports", response_model=ReportResponse)
def read_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    tenant_id: str | None = Query(default=None),
    user_id: int | None = Query(default=None, ge=1),
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ReportResponse:
    report = _load_report(
        db,
        principal,
        tenant_id=tenant_id,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
    )
    return ReportResponse(
        tenant_id=report.tenant_id,
        start_date=report.start_date,
        end_date=report.end_date,
        user_id=report.user_id,
        totals=ReportTotalsRead(**{key: float(value) for key, value in report.totals.as_dict().items()}),
        rows=[_to_report_row(split) for split in report.rows],
    )


@router.get("/api/reports/export.xlsx")
def export_report(
    start_date: date = Query(...),
    end_date: date = Query(...),
    tenant_id: str | None = Query(default=None),
    user_id: int | None = Query(default=None, ge=1),
    principal: AuthPrincipal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Response:
    report = _load_report(
        db,
        principal,
        tenant_id=tenant_id,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
    )
    content = build_report_xlsx_bytes(report, zone=resolve_tenant_zone(db, report.tenant_id))
    filename = f"hours-{report.tenant_id}-{start_date.isoformat()}-{end_date.isoformat()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
