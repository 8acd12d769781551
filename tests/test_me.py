import uuid

import pytest
from fastapi.testclient import TestClient

from appraisal.core.access import Principal, assert_can_act_on, can_act_on
from appraisal.core.errors import ForbiddenError
from appraisal.core.rbac import HR_EMPLOYEE, HR_MANAGER
from appraisal.main import app
from tests.helpers import create_user, headers

client = TestClient(app)


def test_me_requires_header(db_session):
    r = client.get("/me")
    assert r.status_code == 401


def test_me_returns_roles_and_employee(org):
    r = client.get("/me", headers=headers(org.hr_user))
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "hr@test.com"
    assert body["roles"] == [HR_MANAGER]
    assert body["employee_id"] == str(org.hr_emp.id)


def test_me_without_employee_profile(db_session):
    u = create_user(db_session, "contractor@test.com", "Contractor")
    r = client.get("/me", headers=headers(u))
    assert r.status_code == 200
    assert r.json()["employee_id"] is None
    assert r.json()["roles"] == []


def test_can_act_on_self_or_elevated():
    me, other = uuid.uuid4(), uuid.uuid4()

    plain = Principal(employee_id=me)
    assert can_act_on(plain, me)
    assert not can_act_on(plain, other)
    assert not can_act_on(plain, None)

    hr = Principal(employee_id=None, roles=frozenset({HR_MANAGER}))
    assert hr.is_elevated
    assert can_act_on(hr, other)

    clerk = Principal(employee_id=me, roles=frozenset({HR_EMPLOYEE}))
    assert not clerk.is_elevated
    assert clerk.is_hr
    assert not plain.is_hr
    assert not can_act_on(clerk, other)


def test_assert_can_act_on_any_target():
    me, other = uuid.uuid4(), uuid.uuid4()
    p = Principal(employee_id=me)

    assert_can_act_on(p, other, me)
    with pytest.raises(ForbiddenError):
        assert_can_act_on(p, other)

    # no linked profile means no self scope
    with pytest.raises(ForbiddenError):
        assert_can_act_on(Principal(employee_id=None), None)
