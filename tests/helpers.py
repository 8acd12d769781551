from datetime import date, timedelta

from sqlalchemy.orm import Session

from appraisal.core.access import Principal, get_employee_for_user
from appraisal.core.rbac import get_user_role_names
from appraisal.core.timeutil import utcnow
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.cycle import AppraisalCycle, CycleTemplateBinding
from appraisal.models.employee import Employee
from appraisal.models.org import Department, Position
from appraisal.models.rbac import Role, UserRole
from appraisal.models.record import AppraisalRecord
from appraisal.models.template import AppraisalTemplate
from appraisal.models.user import User


def ensure_role(db, name: str) -> Role:
    r = db.query(Role).filter(Role.name == name).one_or_none()
    if r:
        return r
    r = Role(name=name)
    db.add(r)
    db.commit()
    return r

def create_user(db, email: str, full_name="User") -> User:
    u = User(email=email, full_name=full_name, is_active=True)
    db.add(u)
    db.commit()
    return u

def grant_role(db, user: User, role_name: str):
    role = ensure_role(db, role_name)
    exists = db.query(UserRole).filter(UserRole.user_id == user.id, UserRole.role_id == role.id).one_or_none()
    if not exists:
        db.add(UserRole(user_id=user.id, role_id=role.id))
        db.commit()

def principal(db, user: User) -> Principal:
    emp = get_employee_for_user(db, user)
    return Principal(
        employee_id=emp.id if emp else None,
        roles=frozenset(get_user_role_names(db, user)),
        user_id=user.id,
    )

def headers(user: User) -> dict:
    return {"X-User-Email": user.email}


def create_department(db, code: str, name: str) -> Department:
    d = Department(code=code, name=name, is_active=True)
    db.add(d)
    db.commit()
    return d

def create_position(db, department: Department, title: str, reports_to: Position | None = None) -> Position:
    p = Position(
        title=title,
        department_id=department.id,
        reports_to_position_id=reports_to.id if reports_to else None,
        is_active=True,
    )
    db.add(p)
    db.commit()
    return p

def set_department_head(db, department: Department, position: Position | None):
    department.head_position_id = position.id if position else None
    db.commit()

def create_employee(
    db,
    employee_number: str,
    display_name: str,
    user: User | None = None,
    department: Department | None = None,
    position: Position | None = None,
    supervisor_position: Position | None = None,
) -> Employee:
    e = Employee(
        employee_number=employee_number,
        display_name=display_name,
        user_id=(user.id if user else None),
        department_id=(department.id if department else None),
        position_id=(position.id if position else None),
        supervisor_position_id=(supervisor_position.id if supervisor_position else None),
    )
    db.add(e)
    db.commit()
    return e


def create_template(
    db: Session,
    *,
    name: str = "Annual Review",
    departments: list[Department],
    positions: list[Position],
    scale_min: float = 1,
    scale_max: float = 5,
    criteria: list[dict] | None = None,
    template_type: str = "ANNUAL",
    is_active: bool = True,
) -> AppraisalTemplate:
    t = AppraisalTemplate(
        name=name,
        template_type=template_type,
        rating_scale={"type": "FIVE_POINT", "min": scale_min, "max": scale_max},
        criteria=criteria if criteria is not None else [],
        applicable_department_ids=[str(d.id) for d in departments],
        applicable_position_ids=[str(p.id) for p in positions],
        is_active=is_active,
    )
    db.add(t)
    db.commit()
    return t


def create_cycle(
    db: Session,
    *,
    template: AppraisalTemplate | None,
    departments: list[Department],
    name: str = "FY26 Annual",
    start: date = date(2026, 1, 1),
    end: date = date(2026, 12, 31),
    status: str = "ACTIVE",
    manager_due_date: date | None = None,
) -> AppraisalCycle:
    c = AppraisalCycle(
        name=name,
        cycle_type="ANNUAL",
        start_date=start,
        end_date=end,
        status=status,
        manager_due_date=manager_due_date,
        closed_at=utcnow() if status == "CLOSED" else None,
    )
    if template is not None:
        for i, d in enumerate(departments):
            c.bindings.append(CycleTemplateBinding(template_id=template.id, department_id=d.id, position=i))
    db.add(c)
    db.commit()
    return c


def create_assignment(
    db: Session,
    *,
    cycle: AppraisalCycle,
    template: AppraisalTemplate,
    employee: Employee,
    manager: Employee,
    status: str = "NOT_STARTED",
) -> AppraisalAssignment:
    a = AppraisalAssignment(
        cycle_id=cycle.id,
        template_id=template.id,
        employee_profile_id=employee.id,
        manager_profile_id=manager.id,
        department_id=employee.department_id,
        position_id=employee.position_id,
        status=status,
    )
    db.add(a)
    db.commit()
    return a


def create_record(
    db: Session,
    *,
    assignment: AppraisalAssignment,
    total_score: float = 8.0,
    published_days_ago: float | None = 0,
) -> AppraisalRecord:
    """
    A record inserted directly, bypassing the services. Published
    `published_days_ago` days ago, or left MANAGER_SUBMITTED when that is None.
    """
    now = utcnow()
    published = None if published_days_ago is None else now - timedelta(days=published_days_ago)
    r = AppraisalRecord(
        assignment_id=assignment.id,
        cycle_id=assignment.cycle_id,
        template_id=assignment.template_id,
        employee_profile_id=assignment.employee_profile_id,
        manager_profile_id=assignment.manager_profile_id,
        ratings=[{"key": "overall", "title": "Overall", "rating_value": total_score}],
        total_score=total_score,
        status="HR_PUBLISHED" if published else "MANAGER_SUBMITTED",
        manager_submitted_at=(published or now) - timedelta(hours=1),
        hr_published_at=published,
    )
    db.add(r)
    db.flush()
    assignment.status = "PUBLISHED" if published else "SUBMITTED"
    assignment.submitted_at = r.manager_submitted_at
    assignment.published_at = published
    assignment.latest_appraisal_id = r.id
    db.commit()
    return r
