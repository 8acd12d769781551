# seed_dev.py
from sqlalchemy.orm import Session

from appraisal.core.rbac import DEPARTMENT_EMPLOYEE, DEPARTMENT_HEAD, HR_MANAGER
from appraisal.db.session import SessionLocal
from appraisal.models.employee import Employee
from appraisal.models.org import Department, Position
from appraisal.models.rbac import Role, UserRole
from appraisal.models.template import AppraisalTemplate
from appraisal.models.user import User


# ---------- helpers: RBAC ----------

def get_or_create_role(db: Session, name: str) -> Role:
    r = db.query(Role).filter(Role.name == name).one_or_none()
    if r:
        return r
    r = Role(name=name)
    db.add(r)
    db.commit()
    return r


def get_or_create_user(db: Session, email: str, full_name: str) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u:
        if not u.is_active:
            u.is_active = True
            db.commit()
        return u
    u = User(email=email, full_name=full_name, is_active=True)
    db.add(u)
    db.commit()
    return u


def ensure_user_role(db: Session, user: User, role_name: str):
    role = get_or_create_role(db, role_name)
    ur = (
        db.query(UserRole)
        .filter(UserRole.user_id == user.id, UserRole.role_id == role.id)
        .one_or_none()
    )
    if not ur:
        db.add(UserRole(user_id=user.id, role_id=role.id))
        db.commit()


# ---------- helpers: org structure ----------

def get_or_create_department(db: Session, code: str, name: str) -> Department:
    d = db.query(Department).filter(Department.code == code).one_or_none()
    if d:
        return d
    d = Department(code=code, name=name, is_active=True)
    db.add(d)
    db.commit()
    return d


def get_or_create_position(db: Session, dept: Department, title: str, reports_to: Position | None = None) -> Position:
    p = (
        db.query(Position)
        .filter(Position.department_id == dept.id, Position.title == title)
        .one_or_none()
    )
    if p:
        return p
    p = Position(
        title=title,
        department_id=dept.id,
        reports_to_position_id=reports_to.id if reports_to else None,
        is_active=True,
    )
    db.add(p)
    db.commit()
    return p


def get_or_create_employee(
    db: Session,
    number: str,
    name: str,
    user: User | None,
    dept: Department,
    position: Position,
    supervisor_position: Position | None = None,
) -> Employee:
    e = db.query(Employee).filter(Employee.employee_number == number).one_or_none()
    if e:
        return e
    e = Employee(
        employee_number=number,
        display_name=name,
        user_id=user.id if user else None,
        department_id=dept.id,
        position_id=position.id,
        supervisor_position_id=supervisor_position.id if supervisor_position else None,
    )
    db.add(e)
    db.commit()
    return e


def main():
    db = SessionLocal()
    try:
        hr = get_or_create_department(db, "HR", "Human Resources")
        eng = get_or_create_department(db, "ENG", "Engineering")

        hr_lead = get_or_create_position(db, hr, "HR Manager")
        eng_head = get_or_create_position(db, eng, "Head of Engineering")
        eng_dev = get_or_create_position(db, eng, "Software Engineer", reports_to=eng_head)

        eng.head_position_id = eng_head.id
        hr.head_position_id = hr_lead.id
        db.commit()

        hr_user = get_or_create_user(db, "hr.manager@local.test", "Hana HR")
        head_user = get_or_create_user(db, "eng.head@local.test", "Omar Head")
        dev_user = get_or_create_user(db, "dev@local.test", "Dina Dev")

        ensure_user_role(db, hr_user, HR_MANAGER)
        ensure_user_role(db, head_user, DEPARTMENT_HEAD)
        ensure_user_role(db, dev_user, DEPARTMENT_EMPLOYEE)

        get_or_create_employee(db, "E-0001", "Hana HR", hr_user, hr, hr_lead)
        get_or_create_employee(db, "E-0100", "Omar Head", head_user, eng, eng_head)
        get_or_create_employee(db, "E-0101", "Dina Dev", dev_user, eng, eng_dev, supervisor_position=eng_head)

        if not db.query(AppraisalTemplate).filter(AppraisalTemplate.name == "Annual Review").one_or_none():
            db.add(
                AppraisalTemplate(
                    name="Annual Review",
                    description="Yearly performance review",
                    template_type="ANNUAL",
                    rating_scale={"type": "FIVE_POINT", "min": 1, "max": 5, "step": 1},
                    criteria=[
                        {"key": "quality", "title": "Quality of work", "weight": 50, "required": True},
                        {"key": "teamwork", "title": "Teamwork", "weight": 50, "required": True},
                    ],
                    applicable_department_ids=[str(eng.id)],
                    applicable_position_ids=[str(eng_head.id), str(eng_dev.id)],
                    is_active=True,
                )
            )
            db.commit()

        print("Dev data seeded. Try X-User-Email: hr.manager@local.test")
    finally:
        db.close()


if __name__ == "__main__":
    main()
