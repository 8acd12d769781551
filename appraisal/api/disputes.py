import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, get_principal
from appraisal.core.rbac import HR_ROLES, require_roles
from appraisal.db.session import get_db
from appraisal.models.dispute import AppraisalDispute
from appraisal.models.enums import DisputeStatus
from appraisal.schemas.dispute import DisputeCreate, DisputeOut, DisputeResolve
from appraisal.schemas.pagination import paginate
from appraisal.services.disputes import DisputeService

router = APIRouter(prefix="/disputes", tags=["appraisal-disputes"])


def to_out(d: AppraisalDispute) -> DisputeOut:
    return DisputeOut(
        id=str(d.id),
        appraisal_id=str(d.appraisal_id),
        assignment_id=str(d.assignment_id),
        cycle_id=str(d.cycle_id),
        raised_by_employee_id=str(d.raised_by_employee_id),
        reason=d.reason,
        details=d.details,
        status=d.status,
        resolved_by_employee_id=str(d.resolved_by_employee_id) if d.resolved_by_employee_id else None,
        resolution_summary=d.resolution_summary,
        submitted_at=d.submitted_at,
        resolved_at=d.resolved_at,
    )


@router.get("", dependencies=[Depends(require_roles(*HR_ROLES))])
def list_disputes(
    status: DisputeStatus | None = Query(default=None, description="Filter by status"),
    cycle_id: uuid.UUID | None = Query(default=None),
    appraisal_id: uuid.UUID | None = Query(default=None),
    raised_by_employee_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    rows, total = DisputeService(db).list(
        status=status.value if status else None,
        cycle_id=cycle_id,
        appraisal_id=appraisal_id,
        raised_by_employee_id=raised_by_employee_id,
        limit=limit,
        offset=offset,
    )
    return paginate([to_out(d) for d in rows], total, limit, offset, include_pagination)


@router.post("", response_model=DisputeOut, status_code=status.HTTP_201_CREATED)
def raise_dispute(
    payload: DisputeCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(DisputeService(db).raise_dispute(payload, principal))


@router.get("/{dispute_id}", response_model=DisputeOut)
def get_dispute(
    dispute_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(DisputeService(db).get(dispute_id, principal))


@router.post(
    "/{dispute_id}/review",
    response_model=DisputeOut,
    dependencies=[Depends(require_roles(*HR_ROLES))],
)
def review_dispute(
    dispute_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(DisputeService(db).review(dispute_id, principal))


@router.post(
    "/{dispute_id}/resolve",
    response_model=DisputeOut,
    dependencies=[Depends(require_roles(*HR_ROLES))],
)
def resolve_dispute(
    dispute_id: uuid.UUID,
    payload: DisputeResolve,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(DisputeService(db).resolve(dispute_id, payload, principal))
