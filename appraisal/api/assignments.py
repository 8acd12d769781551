import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, get_principal
from appraisal.core.rbac import HR_ROLES, require_roles
from appraisal.db.session import get_db
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.enums import AssignmentStatus
from appraisal.schemas.assignment import AssignmentOut, BulkAssignRequest
from appraisal.services.assignments import AssignmentResolver

router = APIRouter(prefix="/assignments", tags=["appraisal-assignments"])


def to_out(a: AppraisalAssignment) -> AssignmentOut:
    return AssignmentOut(
        id=str(a.id),
        cycle_id=str(a.cycle_id),
        template_id=str(a.template_id),
        employee_profile_id=str(a.employee_profile_id),
        manager_profile_id=str(a.manager_profile_id) if a.manager_profile_id else None,
        department_id=str(a.department_id),
        position_id=str(a.position_id) if a.position_id else None,
        status=a.status,
        due_date=a.due_date,
        submitted_at=a.submitted_at,
        published_at=a.published_at,
        latest_appraisal_id=str(a.latest_appraisal_id) if a.latest_appraisal_id else None,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


@router.post(
    "/bulk",
    response_model=list[AssignmentOut],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles(*HR_ROLES))],
)
def bulk_assign(
    payload: BulkAssignRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """
    Create assignments for a batch of employees. The batch is all-or-nothing:
    any unresolved reference or conflict rejects every item.
    """
    return [to_out(a) for a in AssignmentResolver(db).bulk_assign(payload.items, actor=principal)]


@router.get("/manager/{manager_id}", response_model=list[AssignmentOut])
def assignments_for_manager(
    manager_id: uuid.UUID,
    cycle_id: uuid.UUID | None = Query(default=None, description="Filter by cycle ID"),
    status: AssignmentStatus | None = Query(default=None, description="Filter by status"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    rows = AssignmentResolver(db).for_manager(
        manager_id, principal, cycle_id=cycle_id, status=status.value if status else None
    )
    return [to_out(a) for a in rows]


@router.get("/employee/{employee_id}", response_model=list[AssignmentOut])
def assignments_for_employee(
    employee_id: uuid.UUID,
    cycle_id: uuid.UUID | None = Query(default=None, description="Filter by cycle ID"),
    status: AssignmentStatus | None = Query(default=None, description="Filter by status"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    rows = AssignmentResolver(db).for_employee(
        employee_id, principal, cycle_id=cycle_id, status=status.value if status else None
    )
    return [to_out(a) for a in rows]


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(
    assignment_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(AssignmentResolver(db).get(assignment_id, principal))


@router.post("/{assignment_id}/start", response_model=AssignmentOut)
def start_assignment(
    assignment_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(AssignmentResolver(db).start(assignment_id, principal))
