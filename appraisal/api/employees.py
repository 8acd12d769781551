import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from appraisal.api.records import to_out as record_to_out
from appraisal.core.access import Principal, get_principal
from appraisal.db.session import get_db
from appraisal.schemas.record import RecordOut
from appraisal.schemas.reports import EmployeeTrends, HistoryPoint
from appraisal.services.reports import ReportService

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("/{employee_id}/appraisal-history", response_model=list[RecordOut])
def appraisal_history(
    employee_id: uuid.UUID,
    limit: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Published appraisal records for the employee, most recent first."""
    rows = ReportService(db).employee_history(employee_id, principal, limit=limit)
    return [record_to_out(r) for r in rows]


@router.get("/{employee_id}/appraisal-trends", response_model=EmployeeTrends)
def appraisal_trends(
    employee_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    data = ReportService(db).employee_trends(employee_id, principal)
    return EmployeeTrends(
        employee_id=data["employee_id"],
        points=[HistoryPoint(**p) for p in data["points"]],
        average_score=data["average_score"],
    )
