import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from appraisal.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from appraisal.core.timeutil import utcnow
from appraisal.main import app
from appraisal.models.dispute import AppraisalDispute
from appraisal.schemas.dispute import DisputeCreate, DisputeResolve
from appraisal.services.disputes import DisputeService
from tests.helpers import create_assignment, create_cycle, create_record, create_template, headers

client = TestClient(app)


@pytest.fixture()
def setup(db_session, org):
    template = create_template(db_session, departments=[org.eng], positions=[org.dev_pos])
    cycle = create_cycle(db_session, template=template, departments=[org.eng], status="ACTIVE")
    assignment = create_assignment(db_session, cycle=cycle, template=template, employee=org.dev, manager=org.lead)
    return template, cycle, assignment


def _raise(record, employee, reason="Scores ignore my Q3 delivery", assignment_id=None) -> DisputeCreate:
    return DisputeCreate(
        appraisal_id=record.id,
        assignment_id=assignment_id or record.assignment_id,
        raised_by_employee_id=employee.id,
        reason=reason,
    )


def test_raise_within_window(db_session, org, setup):
    _, cycle, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=7)

    d = DisputeService(db_session).raise_dispute(_raise(record, org.dev), org.dev_p)
    assert d.status == "OPEN"
    assert d.cycle_id == cycle.id
    assert d.submitted_at is not None


def test_raise_after_window_rejected(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=8)

    with pytest.raises(ValidationError) as exc:
        DisputeService(db_session).raise_dispute(_raise(record, org.dev), org.dev_p)
    assert exc.value.details["days_since_publish"] == 8


def test_window_is_configurable(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=3)

    with pytest.raises(ValidationError):
        DisputeService(db_session, window_days=2).raise_dispute(_raise(record, org.dev), org.dev_p)


def test_one_active_dispute_per_record(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    service = DisputeService(db_session)

    first = service.raise_dispute(_raise(record, org.dev), org.dev_p)
    with pytest.raises(ConflictError):
        service.raise_dispute(_raise(record, org.dev), org.dev_p)

    service.review(first.id, org.hr)
    with pytest.raises(ConflictError):
        service.raise_dispute(_raise(record, org.dev), org.dev_p)

    service.resolve(first.id, DisputeResolve(status="REJECTED", resolution_summary="Scores stand"), org.hr)
    second = service.raise_dispute(_raise(record, org.dev, reason="New evidence"), org.dev_p)
    assert second.status == "OPEN"


def test_partial_unique_index_rejects_second_active_row(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)

    def _row(status):
        return AppraisalDispute(
            appraisal_id=record.id,
            assignment_id=assignment.id,
            cycle_id=assignment.cycle_id,
            raised_by_employee_id=org.dev.id,
            reason="r",
            status=status,
            submitted_at=utcnow(),
            resolved_at=utcnow() if status in ("RESOLVED", "REJECTED") else None,
        )

    db_session.add_all([_row("RESOLVED"), _row("REJECTED"), _row("OPEN")])
    db_session.commit()

    db_session.add(_row("UNDER_REVIEW"))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_requires_publication(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=None)
    with pytest.raises(ValidationError):
        DisputeService(db_session).raise_dispute(_raise(record, org.dev), org.dev_p)


def test_acknowledged_record_cannot_be_disputed(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    record.employee_acknowledged_at = utcnow()
    db_session.commit()

    with pytest.raises(ConflictError):
        DisputeService(db_session).raise_dispute(_raise(record, org.dev), org.dev_p)


def test_raiser_scope_and_ownership(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    service = DisputeService(db_session)

    with pytest.raises(ForbiddenError):
        service.raise_dispute(_raise(record, org.dev), org.dev2_p)
    with pytest.raises(ValidationError):
        service.raise_dispute(_raise(record, org.dev2), org.dev2_p)


def test_assignment_must_match_record(db_session, org, setup):
    template, cycle, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    other = create_assignment(db_session, cycle=cycle, template=template, employee=org.dev2, manager=org.lead)

    with pytest.raises(ValidationError):
        DisputeService(db_session).raise_dispute(_raise(record, org.dev, assignment_id=other.id), org.dev_p)

    with pytest.raises(ValidationError):
        DisputeService(db_session).raise_dispute(
            _raise(record, org.dev, assignment_id=uuid.uuid4()), org.dev_p
        )


def test_blank_reason_rejected(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    with pytest.raises(ValidationError):
        DisputeService(db_session).raise_dispute(_raise(record, org.dev, reason="   "), org.dev_p)


def test_review_then_resolve(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    service = DisputeService(db_session)
    d = service.raise_dispute(_raise(record, org.dev), org.dev_p)

    assert service.review(d.id, org.hr).status == "UNDER_REVIEW"
    with pytest.raises(ConflictError):
        service.review(d.id, org.hr)

    out = service.resolve(d.id, DisputeResolve(status="RESOLVED", resolution_summary="Adjusted"), org.hr)
    assert out.status == "RESOLVED"
    assert out.resolved_by_employee_id == org.hr_emp.id
    assert out.resolved_at is not None

    with pytest.raises(ConflictError):
        service.resolve(d.id, DisputeResolve(status="REJECTED"), org.hr)


def test_resolve_validation(db_session, org, setup):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    service = DisputeService(db_session)
    d = service.raise_dispute(_raise(record, org.dev), org.dev_p)

    with pytest.raises(ValidationError):
        service.resolve(d.id, DisputeResolve(status="UNDER_REVIEW"), org.hr)
    with pytest.raises(ValidationError):
        service.resolve(d.id, DisputeResolve(status="RESOLVED", resolved_by_employee_id=uuid.uuid4()), org.hr)
    with pytest.raises(NotFoundError):
        service.resolve(uuid.uuid4(), DisputeResolve(status="RESOLVED"), org.hr)

    out = service.resolve(
        d.id, DisputeResolve(status="REJECTED", resolved_by_employee_id=org.clerk_emp.id), org.hr
    )
    assert out.resolved_by_employee_id == org.clerk_emp.id


def test_list_filters(db_session, org, setup):
    _, cycle, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=1)
    service = DisputeService(db_session)
    service.raise_dispute(_raise(record, org.dev), org.dev_p)

    rows, total = service.list(status="OPEN", cycle_id=cycle.id)
    assert total == 1
    rows, total = service.list(raised_by_employee_id=org.dev2.id)
    assert total == 0


def test_api_dispute_flow(org, setup, db_session):
    _, _, assignment = setup
    record = create_record(db_session, assignment=assignment, published_days_ago=2)
    body = {
        "appraisal_id": str(record.id),
        "assignment_id": str(assignment.id),
        "raised_by_employee_id": str(org.dev.id),
        "reason": "Missing context",
    }
    r = client.post("/disputes", json=body, headers=headers(org.dev_user))
    assert r.status_code == 201, r.text
    dispute_id = r.json()["id"]

    r = client.post("/disputes", json=body, headers=headers(org.dev_user))
    assert r.status_code == 409

    r = client.get(f"/disputes/{dispute_id}", headers=headers(org.dev2_user))
    assert r.status_code == 403

    r = client.get(f"/disputes/{dispute_id}", headers=headers(org.clerk_user))
    assert r.status_code == 200

    r = client.post(f"/disputes/{dispute_id}/review", headers=headers(org.dev_user))
    assert r.status_code == 403

    r = client.post(f"/disputes/{dispute_id}/review", headers=headers(org.clerk_user))
    assert r.status_code == 200 and r.json()["status"] == "UNDER_REVIEW"

    r = client.post(
        f"/disputes/{dispute_id}/resolve",
        json={"status": "RESOLVED", "resolution_summary": "Score revised"},
        headers=headers(org.hr_user),
    )
    assert r.status_code == 200
    assert r.json()["resolved_by_employee_id"] == str(org.hr_emp.id)

    r = client.get("/disputes", params={"status": "RESOLVED"}, headers=headers(org.hr_user))
    assert [d["id"] for d in r.json()] == [dispute_id]
