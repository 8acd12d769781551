import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, get_principal
from appraisal.core.rbac import HR_ROLES, require_roles
from appraisal.db.session import get_db
from appraisal.models.enums import RecordStatus
from appraisal.models.record import AppraisalRecord
from appraisal.schemas.pagination import paginate
from appraisal.schemas.record import RecordAcknowledge, RecordOut, RecordPublish, RecordSubmit
from appraisal.services.records import RecordService

router = APIRouter(prefix="/records", tags=["appraisal-records"])


def to_out(r: AppraisalRecord) -> RecordOut:
    return RecordOut(
        id=str(r.id),
        assignment_id=str(r.assignment_id),
        cycle_id=str(r.cycle_id),
        template_id=str(r.template_id),
        employee_profile_id=str(r.employee_profile_id),
        manager_profile_id=str(r.manager_profile_id),
        ratings=r.ratings,
        total_score=r.total_score,
        status=r.status,
        manager_submitted_at=r.manager_submitted_at,
        hr_published_at=r.hr_published_at,
        published_by_employee_id=str(r.published_by_employee_id) if r.published_by_employee_id else None,
        employee_acknowledged_at=r.employee_acknowledged_at,
        employee_acknowledgement_comment=r.employee_acknowledgement_comment,
    )


@router.get("", dependencies=[Depends(require_roles(*HR_ROLES))])
def list_records(
    cycle_id: uuid.UUID | None = Query(default=None, description="Filter by cycle ID"),
    status: RecordStatus | None = Query(default=None, description="Filter by status"),
    employee_id: uuid.UUID | None = Query(default=None, description="Filter by appraised employee"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    rows, total = RecordService(db).list(
        cycle_id=cycle_id,
        status=status.value if status else None,
        employee_id=employee_id,
        limit=limit,
        offset=offset,
    )
    return paginate([to_out(r) for r in rows], total, limit, offset, include_pagination)


@router.post("", response_model=RecordOut, status_code=status.HTTP_201_CREATED)
def submit_record(
    payload: RecordSubmit,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Manager submits the ratings for an assignment."""
    return to_out(RecordService(db).submit(payload, principal))


@router.get("/{record_id}", response_model=RecordOut)
def get_record(
    record_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(RecordService(db).get(record_id, principal))


@router.post(
    "/{record_id}/publish",
    response_model=RecordOut,
    dependencies=[Depends(require_roles(*HR_ROLES))],
)
def publish_record(
    record_id: uuid.UUID,
    payload: RecordPublish | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    published_by = payload.hr_published_by_id if payload else None
    return to_out(RecordService(db).publish(record_id, principal, published_by_id=published_by))


@router.post("/{record_id}/acknowledge", response_model=RecordOut)
def acknowledge_record(
    record_id: uuid.UUID,
    payload: RecordAcknowledge,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(
        RecordService(db).acknowledge(record_id, payload.employee_id, principal, comment=payload.comment)
    )
