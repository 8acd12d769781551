import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from appraisal.core.rbac import DEPARTMENT_EMPLOYEE, DEPARTMENT_HEAD, HR_EMPLOYEE, HR_MANAGER
from appraisal.db.base import Base
from appraisal.db.session import get_db
from appraisal.main import app
from tests import helpers as h


@pytest.fixture()
def db_session():
    """
    A fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive so the schema survives across
    the app's commits.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(autouse=True)
def override_get_db(db_session):
    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def org(db_session):
    """
    Engineering department with a head, a manager and two engineers, plus an
    HR manager and an HR clerk in a separate HR department.
    """
    db = db_session

    hr_dept = h.create_department(db, "HR", "Human Resources")
    eng = h.create_department(db, "ENG", "Engineering")

    hr_pos = h.create_position(db, hr_dept, "HR Manager")
    head_pos = h.create_position(db, eng, "Head of Engineering")
    lead_pos = h.create_position(db, eng, "Team Lead", reports_to=head_pos)
    dev_pos = h.create_position(db, eng, "Engineer", reports_to=lead_pos)
    h.set_department_head(db, eng, head_pos)

    hr_user = h.create_user(db, "hr@test.com", "Hana HR")
    h.grant_role(db, hr_user, HR_MANAGER)
    clerk_user = h.create_user(db, "clerk@test.com", "Cleo Clerk")
    h.grant_role(db, clerk_user, HR_EMPLOYEE)
    head_user = h.create_user(db, "head@test.com", "Omar Head")
    h.grant_role(db, head_user, DEPARTMENT_HEAD)
    lead_user = h.create_user(db, "lead@test.com", "Lina Lead")
    h.grant_role(db, lead_user, DEPARTMENT_EMPLOYEE)
    dev_user = h.create_user(db, "dev@test.com", "Dina Dev")
    h.grant_role(db, dev_user, DEPARTMENT_EMPLOYEE)
    dev2_user = h.create_user(db, "dev2@test.com", "Dan Dev")
    h.grant_role(db, dev2_user, DEPARTMENT_EMPLOYEE)

    hr_emp = h.create_employee(db, "E-001", "Hana HR", user=hr_user, department=hr_dept, position=hr_pos)
    clerk_emp = h.create_employee(db, "E-002", "Cleo Clerk", user=clerk_user, department=hr_dept, position=hr_pos)
    head = h.create_employee(db, "E-100", "Omar Head", user=head_user, department=eng, position=head_pos)
    lead = h.create_employee(
        db, "E-101", "Lina Lead", user=lead_user, department=eng, position=lead_pos, supervisor_position=head_pos
    )
    dev = h.create_employee(
        db, "E-102", "Dina Dev", user=dev_user, department=eng, position=dev_pos, supervisor_position=lead_pos
    )
    dev2 = h.create_employee(
        db, "E-103", "Dan Dev", user=dev2_user, department=eng, position=dev_pos, supervisor_position=lead_pos
    )

    return SimpleNamespace(
        hr_dept=hr_dept,
        eng=eng,
        hr_pos=hr_pos,
        head_pos=head_pos,
        lead_pos=lead_pos,
        dev_pos=dev_pos,
        hr_user=hr_user,
        clerk_user=clerk_user,
        head_user=head_user,
        lead_user=lead_user,
        dev_user=dev_user,
        dev2_user=dev2_user,
        hr_emp=hr_emp,
        clerk_emp=clerk_emp,
        head=head,
        lead=lead,
        dev=dev,
        dev2=dev2,
        hr=h.principal(db, hr_user),
        clerk=h.principal(db, clerk_user),
        lead_p=h.principal(db, lead_user),
        dev_p=h.principal(db, dev_user),
        dev2_p=h.principal(db, dev2_user),
    )
