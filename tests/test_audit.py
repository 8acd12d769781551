"""
Audit trail written by the services and exposed on /audit.
"""

from fastapi.testclient import TestClient

from appraisal.main import app
from appraisal.models.audit_event import AuditEvent
from tests.helpers import create_template, headers

client = TestClient(app)


def _create_cycle(org, template) -> dict:
    r = client.post(
        "/cycles",
        json={
            "name": "FY26",
            "cycle_type": "ANNUAL",
            "start_date": "2026-01-01",
            "end_date": "2026-12-31",
            "template_assignments": [{"template_id": str(template.id), "department_ids": [str(org.eng.id)]}],
        },
        headers=headers(org.hr_user),
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_cycle_lifecycle_is_audited(db_session, org):
    template = create_template(db_session, departments=[org.eng], positions=[org.dev_pos])
    cycle = _create_cycle(org, template)
    assert client.post(f"/cycles/{cycle['id']}/activate", headers=headers(org.hr_user)).status_code == 200

    events = (
        db_session.query(AuditEvent)
        .filter(AuditEvent.entity_type == "appraisal_cycle")
        .all()
    )
    assert {e.action for e in events} == {"CYCLE_CREATED", "CYCLE_ACTIVATED"}
    assert all(e.actor_user_id == org.hr_user.id for e in events)


def test_list_audit_events_filtered(db_session, org):
    template = create_template(db_session, departments=[org.eng], positions=[org.dev_pos])
    cycle = _create_cycle(org, template)

    r = client.get(
        "/audit",
        params={"entity_type": "appraisal_cycle", "entity_id": cycle["id"]},
        headers=headers(org.hr_user),
    )
    assert r.status_code == 200
    events = r.json()
    assert len(events) == 1
    assert events[0]["action"] == "CYCLE_CREATED"
    assert events[0]["actor_user_id"] == str(org.hr_user.id)

    r = client.get("/audit", params={"action": "CYCLE_CLOSED"}, headers=headers(org.hr_user))
    assert r.json() == []


def test_failed_operation_leaves_no_audit_row(db_session, org):
    template = create_template(db_session, departments=[org.eng], positions=[org.dev_pos])
    _create_cycle(org, template)
    before = db_session.query(AuditEvent).count()

    # same department, overlapping dates
    r = client.post(
        "/cycles",
        json={
            "name": "Overlap",
            "cycle_type": "ANNUAL",
            "start_date": "2026-06-01",
            "end_date": "2027-05-31",
            "template_assignments": [{"template_id": str(template.id), "department_ids": [str(org.eng.id)]}],
        },
        headers=headers(org.hr_user),
    )
    assert r.status_code == 409
    db_session.rollback()
    assert db_session.query(AuditEvent).count() == before


def test_list_audit_events_requires_hr(org):
    r = client.get("/audit", headers=headers(org.dev_user))
    assert r.status_code == 403
