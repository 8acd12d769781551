import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from appraisal.api.assignments import to_out as assignment_to_out
from appraisal.api.cycles import to_out as cycle_to_out
from appraisal.api.disputes import to_out as dispute_to_out
from appraisal.api.records import to_out as record_to_out
from appraisal.core.rbac import HR_ROLES, require_roles
from appraisal.db.session import get_db
from appraisal.schemas.reports import (
    CycleReport,
    CycleReportStats,
    DashboardStats,
    DepartmentProgress,
    DepartmentReport,
    ExportRow,
)
from appraisal.services.reports import ReportService, render_csv

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
    dependencies=[Depends(require_roles(*HR_ROLES))],
)


@router.get("/dashboard", response_model=DashboardStats)
def dashboard(
    department_id: uuid.UUID | None = Query(default=None, description="Restrict to one department"),
    db: Session = Depends(get_db),
):
    return DashboardStats(**ReportService(db).dashboard_stats(department_id))


@router.get("/department-progress", response_model=list[DepartmentProgress])
def department_progress(
    cycle_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
):
    """Per-department assignment counts, least complete first."""
    return [DepartmentProgress(**row) for row in ReportService(db).department_progress(cycle_id)]


@router.get("/cycles/{cycle_id}", response_model=CycleReport)
def cycle_report(cycle_id: uuid.UUID, db: Session = Depends(get_db)):
    rep = ReportService(db).cycle_report(cycle_id)
    return CycleReport(
        cycle=cycle_to_out(rep["cycle"]),
        stats=CycleReportStats(**rep["stats"]),
        assignments=[assignment_to_out(a) for a in rep["assignments"]],
        records=[record_to_out(r) for r in rep["records"]],
        disputes=[dispute_to_out(d) for d in rep["disputes"]],
    )


@router.get("/departments/{department_id}", response_model=DepartmentReport)
def department_report(
    department_id: uuid.UUID,
    cycle_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
):
    rep = ReportService(db).department_report(department_id, cycle_id)
    return DepartmentReport(
        **{k: v for k, v in rep.items() if k not in ("assignments", "records")},
        assignments=[assignment_to_out(a) for a in rep["assignments"]],
        records=[record_to_out(r) for r in rep["records"]],
    )


@router.get("/export")
def export_records(
    cycle_id: uuid.UUID | None = Query(default=None),
    format: Literal["json", "csv"] = Query(default="json"),
    db: Session = Depends(get_db),
):
    rows = ReportService(db).export_rows(cycle_id)
    if format == "csv":
        return Response(
            content=render_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="appraisal_records.csv"'},
        )
    return [ExportRow(**row) for row in rows]
