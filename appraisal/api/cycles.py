import uuid
from collections import OrderedDict

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, get_principal
from appraisal.core.rbac import HR_ROLES, require_roles
from appraisal.db.session import get_db
from appraisal.models.cycle import AppraisalCycle
from appraisal.models.enums import CycleStatus
from appraisal.schemas.cycle import CycleCreate, CycleOut, ReminderOut, TemplateAssignmentOut
from appraisal.schemas.pagination import paginate
from appraisal.services.cycles import CycleScheduler
from appraisal.services.reports import ReportService

router = APIRouter(
    prefix="/cycles",
    tags=["appraisal-cycles"],
    dependencies=[Depends(require_roles(*HR_ROLES))],
)


def to_out(c: AppraisalCycle) -> CycleOut:
    grouped: OrderedDict[uuid.UUID, list[str]] = OrderedDict()
    for b in c.bindings:
        grouped.setdefault(b.template_id, []).append(str(b.department_id))

    return CycleOut(
        id=str(c.id),
        name=c.name,
        description=c.description,
        cycle_type=c.cycle_type,
        start_date=c.start_date,
        end_date=c.end_date,
        status=c.status,
        template_assignments=[
            TemplateAssignmentOut(template_id=str(tid), department_ids=deps) for tid, deps in grouped.items()
        ],
        manager_due_date=c.manager_due_date,
        employee_acknowledgement_due_date=c.employee_acknowledgement_due_date,
        closed_at=c.closed_at,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


@router.get("")
def list_cycles(
    search: str | None = Query(default=None, description="Search by name"),
    status: CycleStatus | None = Query(default=None, description="Filter by status (PLANNED, ACTIVE, CLOSED)"),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    rows, total = CycleScheduler(db).list(
        search=search, status=status.value if status else None, limit=limit, offset=offset
    )
    return paginate([to_out(c) for c in rows], total, limit, offset, include_pagination)


@router.post("", response_model=CycleOut, status_code=status.HTTP_201_CREATED)
def create_cycle(
    payload: CycleCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(CycleScheduler(db).create(payload, actor=principal))


@router.get("/{cycle_id}", response_model=CycleOut)
def get_cycle(cycle_id: uuid.UUID, db: Session = Depends(get_db)):
    return to_out(CycleScheduler(db).get(cycle_id))


@router.post("/{cycle_id}/activate", response_model=CycleOut)
def activate_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(CycleScheduler(db).activate(cycle_id, actor=principal))


@router.post("/{cycle_id}/close", response_model=CycleOut)
def close_cycle(
    cycle_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(CycleScheduler(db).close(cycle_id, actor=principal))


@router.get("/{cycle_id}/reminders", response_model=list[ReminderOut])
def cycle_reminders(cycle_id: uuid.UUID, db: Session = Depends(get_db)):
    """Assignments in the cycle that managers have not submitted yet."""
    return [ReminderOut(**row) for row in ReportService(db).pending_reminders(cycle_id)]
