import csv
import io
import uuid
from datetime import date
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from appraisal.core.errors import ForbiddenError, NotFoundError
from appraisal.main import app
from appraisal.schemas.dispute import DisputeCreate
from appraisal.services.disputes import DisputeService
from appraisal.services.reports import EXPORT_COLUMNS, ReportService
from tests.helpers import create_assignment, create_cycle, create_record, create_template, headers

client = TestClient(app)


@pytest.fixture()
def data(db_session, org):
    """
    ENG: dev published (8), dev2 submitted (7), lead not started.
    HR: clerk published (6) and acknowledged.
    """
    template = create_template(db_session, departments=[org.eng, org.hr_dept], positions=[org.dev_pos])
    cycle = create_cycle(db_session, template=template, departments=[org.eng, org.hr_dept], status="ACTIVE")

    a_dev = create_assignment(db_session, cycle=cycle, template=template, employee=org.dev, manager=org.lead)
    a_dev2 = create_assignment(db_session, cycle=cycle, template=template, employee=org.dev2, manager=org.lead)
    a_lead = create_assignment(db_session, cycle=cycle, template=template, employee=org.lead, manager=org.head)
    a_clerk = create_assignment(db_session, cycle=cycle, template=template, employee=org.clerk_emp, manager=org.hr_emp)

    r_dev = create_record(db_session, assignment=a_dev, total_score=8, published_days_ago=2)
    r_dev2 = create_record(db_session, assignment=a_dev2, total_score=7, published_days_ago=None)
    r_clerk = create_record(db_session, assignment=a_clerk, total_score=6, published_days_ago=3)
    a_clerk.status = "ACKNOWLEDGED"
    db_session.commit()

    return SimpleNamespace(
        template=template,
        cycle=cycle,
        a_dev=a_dev,
        a_dev2=a_dev2,
        a_lead=a_lead,
        a_clerk=a_clerk,
        r_dev=r_dev,
        r_dev2=r_dev2,
        r_clerk=r_clerk,
    )


def test_dashboard_stats(db_session, org, data):
    DisputeService(db_session).raise_dispute(
        DisputeCreate(
            appraisal_id=data.r_dev.id,
            assignment_id=data.a_dev.id,
            raised_by_employee_id=org.dev.id,
            reason="Too low",
        ),
        org.dev_p,
    )
    stats = ReportService(db_session).dashboard_stats()
    assert stats == {
        "total_cycles": 1,
        "active_cycles": 1,
        "total_assignments": 4,
        "submitted_records": 1,
        "published_records": 2,
        "open_disputes": 1,
        "completion_rate": 50.0,
    }

    eng = ReportService(db_session).dashboard_stats(org.eng.id)
    assert eng["total_assignments"] == 3
    assert eng["published_records"] == 1
    assert eng["completion_rate"] == 33.33

    hr = ReportService(db_session).dashboard_stats(org.hr_dept.id)
    assert hr["open_disputes"] == 0


def test_cycle_report(db_session, org, data):
    rep = ReportService(db_session).cycle_report(data.cycle.id)
    assert rep["cycle"].id == data.cycle.id
    assert rep["stats"] == {
        "total_assignments": 4,
        "completed_records": 2,
        "pending_submissions": 1,
        "total_disputes": 0,
        "open_disputes": 0,
    }
    assert len(rep["records"]) == 3

    with pytest.raises(NotFoundError):
        ReportService(db_session).cycle_report(uuid.uuid4())


def test_department_report(db_session, org, data):
    rep = ReportService(db_session).department_report(org.eng.id)
    assert rep["total_employees"] == 3
    assert rep["completed_appraisals"] == 1
    assert rep["completion_rate"] == 33.33
    assert rep["average_score"] == 7.5
    assert len(rep["records"]) == 2

    other_cycle = ReportService(db_session).department_report(org.eng.id, cycle_id=uuid.uuid4())
    assert other_cycle["total_employees"] == 0
    assert other_cycle["average_score"] == 0.0

    with pytest.raises(NotFoundError):
        ReportService(db_session).department_report(uuid.uuid4())


def test_department_progress_sorted_ascending(db_session, org, data):
    rows = ReportService(db_session).department_progress()
    assert [r["department_id"] for r in rows] == [str(org.eng.id), str(org.hr_dept.id)]

    eng, hr = rows
    assert eng["total"] == 3
    assert (eng["not_started"], eng["submitted"], eng["published"]) == (1, 1, 1)
    assert eng["completion_rate"] == 33.33
    assert hr["acknowledged"] == 1
    assert hr["completion_rate"] == 100.0
    assert hr["department_name"] == "Human Resources"


def test_employee_history_and_trends(db_session, org, data):
    older = create_cycle(
        db_session,
        template=data.template,
        departments=[org.eng],
        name="FY25",
        start=date(2025, 1, 1),
        end=date(2025, 12, 31),
        status="CLOSED",
    )
    a_old = create_assignment(db_session, cycle=older, template=data.template, employee=org.dev, manager=org.lead)
    create_record(db_session, assignment=a_old, total_score=6, published_days_ago=300)
    service = ReportService(db_session)

    history = service.employee_history(org.dev.id, org.dev_p)
    assert [r.total_score for r in history] == [8, 6]
    assert len(service.employee_history(org.dev.id, org.hr, limit=1)) == 1

    # unpublished records are not history
    assert service.employee_history(org.dev2.id, org.dev2_p) == []

    trends = service.employee_trends(org.dev.id, org.dev_p)
    assert [p["total_score"] for p in trends["points"]] == [6, 8]
    assert trends["average_score"] == 7.0

    with pytest.raises(ForbiddenError):
        service.employee_history(org.dev.id, org.dev2_p)


def test_pending_reminders(db_session, org, data):
    rows = ReportService(db_session).pending_reminders(data.cycle.id)
    assert [r["assignment_id"] for r in rows] == [str(data.a_lead.id)]
    assert rows[0]["manager_name"] == "Omar Head"
    assert rows[0]["employee_name"] == "Lina Lead"

    with pytest.raises(NotFoundError):
        ReportService(db_session).pending_reminders(uuid.uuid4())


def test_api_reports(org, data):
    h = headers(org.hr_user)

    r = client.get("/reports/dashboard", headers=h)
    assert r.status_code == 200 and r.json()["total_assignments"] == 4

    r = client.get(f"/reports/cycles/{data.cycle.id}", headers=h)
    assert r.status_code == 200
    assert r.json()["stats"]["completed_records"] == 2

    r = client.get(f"/reports/departments/{org.eng.id}", headers=h)
    assert r.status_code == 200 and r.json()["average_score"] == 7.5

    r = client.get("/reports/department-progress", params={"cycle_id": str(data.cycle.id)}, headers=h)
    assert [row["department_id"] for row in r.json()] == [str(org.eng.id), str(org.hr_dept.id)]

    r = client.get(f"/cycles/{data.cycle.id}/reminders", headers=h)
    assert len(r.json()) == 1

    r = client.get("/reports/dashboard", headers=headers(org.dev_user))
    assert r.status_code == 403


def test_api_export(org, data):
    h = headers(org.hr_user)

    r = client.get("/reports/export", params={"cycle_id": str(data.cycle.id)}, headers=h)
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 3
    assert {row["employee_name"] for row in rows} == {"Dina Dev", "Dan Dev", "Cleo Clerk"}

    r = client.get("/reports/export", params={"format": "csv"}, headers=h)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    parsed = list(csv.DictReader(io.StringIO(r.text)))
    assert list(parsed[0].keys()) == EXPORT_COLUMNS
    assert len(parsed) == 3


def test_api_employee_history(org, data):
    r = client.get(f"/employees/{org.dev.id}/appraisal-history", headers=headers(org.dev_user))
    assert r.status_code == 200
    assert [rec["id"] for rec in r.json()] == [str(data.r_dev.id)]

    r = client.get(f"/employees/{org.dev.id}/appraisal-trends", headers=headers(org.hr_user))
    assert r.json()["average_score"] == 8.0

    r = client.get(f"/employees/{org.dev.id}/appraisal-history", headers=headers(org.dev2_user))
    assert r.status_code == 403
