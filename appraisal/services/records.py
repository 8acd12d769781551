"""
Record & Scoring Engine.

A manager submits one record per assignment. Each rating's effective value is
its weighted score when given, else its raw rating value, and must fall within
the template's rating scale. The record total is the sum of effective values.
"""

import math
import uuid
from collections import Counter

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, assert_can_act_on
from appraisal.core.audit import log_event
from appraisal.core.directory import EmployeeDirectory, HistoryEntry
from appraisal.core.errors import ConflictError, NotFoundError, ValidationError
from appraisal.core.logging import log_operation
from appraisal.core.timeutil import utcnow
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.cycle import AppraisalCycle
from appraisal.models.dispute import AppraisalDispute
from appraisal.models.enums import (
    ACTIVE_DISPUTE_STATUSES,
    AssignmentStatus,
    CycleStatus,
    RecordStatus,
)
from appraisal.models.record import AppraisalRecord
from appraisal.models.template import AppraisalTemplate
from appraisal.schemas.record import RatingIn, RecordSubmit

OPEN_ASSIGNMENT_STATUSES = (AssignmentStatus.NOT_STARTED.value, AssignmentStatus.IN_PROGRESS.value)


def effective_value(rating: RatingIn) -> float:
    return rating.weighted_score if rating.weighted_score is not None else rating.rating_value


def score_ratings(template: AppraisalTemplate, ratings: list[RatingIn]) -> float:
    """Validate ratings against the template and return the total score."""
    criteria = template.criteria or []
    if criteria:
        known = {c["key"] for c in criteria}
        unknown = sorted({r.key for r in ratings} - known)
        if unknown:
            raise ValidationError("Unknown rating criteria", {"keys": unknown})

        counts = Counter(r.key for r in ratings)
        duplicated = sorted(k for k, n in counts.items() if n > 1)
        if duplicated:
            raise ValidationError("Duplicate rating criteria", {"keys": duplicated})

        given = {r.key for r in ratings}
        missing = sorted(c["key"] for c in criteria if c.get("required", True) and c["key"] not in given)
        if missing:
            raise ValidationError("Missing required criteria", {"keys": missing})

    scale = template.rating_scale or {}
    lo, hi = scale.get("min"), scale.get("max")

    total = 0.0
    for r in ratings:
        value = effective_value(r)
        # NaN compares false against both bounds
        if not math.isfinite(value):
            raise ValidationError(f"Rating for '{r.key}' is not a finite number", {"key": r.key, "value": str(value)})
        if (lo is not None and value < lo) or (hi is not None and value > hi):
            raise ValidationError(
                f"Rating for '{r.key}' is outside the scale",
                {"key": r.key, "value": value, "min": lo, "max": hi},
            )
        total += value
    return total


class RecordService:
    def __init__(self, db: Session, directory: EmployeeDirectory | None = None):
        self.db = db
        self.directory = directory or EmployeeDirectory(db)

    def _lock_record_or_404(self, record_id: uuid.UUID) -> AppraisalRecord:
        r = (
            self.db.query(AppraisalRecord)
            .filter(AppraisalRecord.id == record_id)
            .with_for_update()
            .one_or_none()
        )
        if not r:
            raise NotFoundError("Appraisal record not found")
        return r

    def _record_for_assignment(self, assignment_id: uuid.UUID) -> uuid.UUID | None:
        row = (
            self.db.query(AppraisalRecord.id)
            .filter(AppraisalRecord.assignment_id == assignment_id)
            .first()
        )
        return row[0] if row else None

    def _has_active_dispute(self, record_id: uuid.UUID) -> bool:
        row = (
            self.db.query(AppraisalDispute.id)
            .filter(
                AppraisalDispute.appraisal_id == record_id,
                AppraisalDispute.status.in_(ACTIVE_DISPUTE_STATUSES),
            )
            .first()
        )
        return row is not None

    @log_operation("record.submit")
    def submit(self, payload: RecordSubmit, actor: Principal) -> AppraisalRecord:
        if not payload.ratings:
            raise ValidationError("At least one rating is required")
        for r in payload.ratings:
            if r.rating_value is None and r.weighted_score is None:
                raise ValidationError(f"Rating '{r.key}' needs a rating value or weighted score")

        a = (
            self.db.query(AppraisalAssignment)
            .filter(AppraisalAssignment.id == payload.assignment_id)
            .with_for_update()
            .one_or_none()
        )
        if not a:
            raise ValidationError("Assignment not found")
        assert_can_act_on(actor, a.manager_profile_id)

        if a.status not in OPEN_ASSIGNMENT_STATUSES:
            raise ConflictError(f"Cannot submit a record for an assignment in {a.status} status")

        template = self.db.get(AppraisalTemplate, a.template_id)
        if not template:
            raise ValidationError("Template not found")

        total = score_ratings(template, payload.ratings)

        manager_id = a.manager_profile_id or actor.employee_id
        if manager_id is None:
            raise ValidationError("Assignment has no manager")

        now = utcnow()
        record = AppraisalRecord(
            assignment_id=a.id,
            cycle_id=a.cycle_id,
            template_id=a.template_id,
            employee_profile_id=a.employee_profile_id,
            manager_profile_id=manager_id,
            ratings=[r.model_dump(mode="json") for r in payload.ratings],
            total_score=total,
            status=RecordStatus.MANAGER_SUBMITTED.value,
            manager_submitted_at=now,
        )
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            if self._record_for_assignment(payload.assignment_id) is not None:
                raise ConflictError("A record already exists for this assignment") from e
            raise

        prev = a.status
        a.status = AssignmentStatus.SUBMITTED.value
        a.submitted_at = now
        a.latest_appraisal_id = record.id

        log_event(
            db=self.db,
            actor=actor,
            action="RECORD_SUBMITTED",
            entity_type="appraisal_record",
            entity_id=record.id,
            metadata={
                "assignment_id": str(a.id),
                "total_score": total,
                "assignment_status": {"from": prev, "to": a.status},
            },
        )
        self.db.commit()
        return record

    def get(self, record_id: uuid.UUID, actor: Principal) -> AppraisalRecord:
        r = self.db.get(AppraisalRecord, record_id)
        if not r:
            raise NotFoundError("Appraisal record not found")
        # HR reviewers read any record they can list and publish
        if not actor.is_hr:
            assert_can_act_on(actor, r.employee_profile_id, r.manager_profile_id)
        return r

    def list(
        self,
        cycle_id: uuid.UUID | None = None,
        status: str | None = None,
        employee_id: uuid.UUID | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AppraisalRecord], int]:
        q = self.db.query(AppraisalRecord)
        if cycle_id:
            q = q.filter(AppraisalRecord.cycle_id == cycle_id)
        if status:
            q = q.filter(AppraisalRecord.status == status)
        if employee_id:
            q = q.filter(AppraisalRecord.employee_profile_id == employee_id)
        total = q.count()
        rows = q.order_by(AppraisalRecord.manager_submitted_at.desc()).offset(offset).limit(limit).all()
        return rows, total

    @log_operation("record.publish")
    def publish(
        self,
        record_id: uuid.UUID,
        actor: Principal,
        published_by_id: uuid.UUID | None = None,
    ) -> AppraisalRecord:
        r = self._lock_record_or_404(record_id)
        if r.status != RecordStatus.MANAGER_SUBMITTED.value or r.hr_published_at is not None:
            raise ConflictError("Record has already been published")

        cycle = self.db.get(AppraisalCycle, r.cycle_id)
        if cycle is not None and cycle.status == CycleStatus.CLOSED.value:
            raise ConflictError("Cannot publish for a closed cycle")

        if published_by_id is not None and self.directory.resolve_employee(published_by_id) is None:
            raise ValidationError(f"Employee {published_by_id} not found")
        publisher_id = published_by_id or actor.employee_id

        template = self.db.get(AppraisalTemplate, r.template_id)

        now = utcnow()
        r.status = RecordStatus.HR_PUBLISHED.value
        r.hr_published_at = now
        r.published_by_employee_id = publisher_id

        self.directory.append_appraisal_history(
            r.employee_profile_id,
            HistoryEntry(
                record_id=r.id,
                cycle_id=r.cycle_id,
                template_id=r.template_id,
                appraisal_date=now,
                total_score=r.total_score,
                template_type=template.template_type if template else None,
                rating_scale_type=(template.rating_scale or {}).get("type") if template else None,
            ),
        )

        a = self.db.get(AppraisalAssignment, r.assignment_id)
        if a is not None:
            a.status = AssignmentStatus.PUBLISHED.value
            a.published_at = now

        log_event(
            db=self.db,
            actor=actor,
            action="RECORD_PUBLISHED",
            entity_type="appraisal_record",
            entity_id=r.id,
            metadata={
                "from": RecordStatus.MANAGER_SUBMITTED.value,
                "to": r.status,
                "published_by_employee_id": str(publisher_id) if publisher_id else None,
            },
        )
        self.db.commit()
        return r

    @log_operation("record.acknowledge")
    def acknowledge(
        self,
        record_id: uuid.UUID,
        employee_id: uuid.UUID,
        actor: Principal,
        comment: str | None = None,
    ) -> AppraisalRecord:
        assert_can_act_on(actor, employee_id)

        r = self._lock_record_or_404(record_id)
        if r.status != RecordStatus.HR_PUBLISHED.value:
            raise ConflictError("Record has not been published")
        if r.employee_acknowledged_at is not None:
            raise ConflictError("Record has already been acknowledged")
        if r.employee_profile_id != employee_id:
            raise ValidationError("Record does not belong to this employee")
        if self._has_active_dispute(r.id):
            raise ConflictError("Record has an open dispute")

        now = utcnow()
        r.employee_acknowledged_at = now
        r.employee_acknowledgement_comment = comment

        a = self.db.get(AppraisalAssignment, r.assignment_id)
        if a is not None:
            a.status = AssignmentStatus.ACKNOWLEDGED.value

        log_event(
            db=self.db,
            actor=actor,
            action="RECORD_ACKNOWLEDGED",
            entity_type="appraisal_record",
            entity_id=r.id,
            metadata={"employee_id": str(employee_id), "has_comment": bool(comment)},
        )
        self.db.commit()
        return r
