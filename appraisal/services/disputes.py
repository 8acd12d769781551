"""Dispute Adjudicator."""

import uuid
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, assert_can_act_on
from appraisal.core.audit import log_event
from appraisal.core.config import settings
from appraisal.core.directory import EmployeeDirectory
from appraisal.core.errors import ConflictError, NotFoundError, ValidationError
from appraisal.core.logging import log_operation
from appraisal.core.timeutil import as_utc, utcnow
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.cycle import AppraisalCycle
from appraisal.models.dispute import AppraisalDispute
from appraisal.models.enums import ACTIVE_DISPUTE_STATUSES, DisputeStatus, RecordStatus
from appraisal.models.record import AppraisalRecord
from appraisal.schemas.dispute import DisputeCreate, DisputeResolve

TERMINAL_STATUSES = (DisputeStatus.RESOLVED, DisputeStatus.REJECTED)


class DisputeService:
    def __init__(
        self,
        db: Session,
        directory: EmployeeDirectory | None = None,
        window_days: int | None = None,
    ):
        self.db = db
        self.directory = directory or EmployeeDirectory(db)
        self.window_days = settings.DISPUTE_WINDOW_DAYS if window_days is None else window_days

    def _lock_dispute_or_404(self, dispute_id: uuid.UUID) -> AppraisalDispute:
        d = (
            self.db.query(AppraisalDispute)
            .filter(AppraisalDispute.id == dispute_id)
            .with_for_update()
            .one_or_none()
        )
        if not d:
            raise NotFoundError("Dispute not found")
        return d

    @log_operation("dispute.raise")
    def raise_dispute(self, payload: DisputeCreate, actor: Principal) -> AppraisalDispute:
        assert_can_act_on(actor, payload.raised_by_employee_id)

        record = self.db.get(AppraisalRecord, payload.appraisal_id)
        if not record:
            raise ValidationError("Appraisal record not found")
        assignment = self.db.get(AppraisalAssignment, payload.assignment_id)
        if not assignment:
            raise ValidationError("Assignment not found")
        cycle = self.db.get(AppraisalCycle, record.cycle_id)
        if not cycle:
            raise ValidationError("Cycle not found")

        if record.employee_profile_id != payload.raised_by_employee_id:
            raise ValidationError("Appraisal record does not belong to this employee")
        if record.assignment_id != assignment.id:
            raise ValidationError("Appraisal record does not belong to this assignment")

        if record.status != RecordStatus.HR_PUBLISHED.value or record.hr_published_at is None:
            raise ValidationError("Appraisal has not been published")
        if record.employee_acknowledged_at is not None:
            raise ConflictError("Appraisal has already been acknowledged")

        now = utcnow()
        days_since_publish = (now - as_utc(record.hr_published_at)) // timedelta(days=1)
        if days_since_publish > self.window_days:
            raise ValidationError(
                f"Disputes must be raised within {self.window_days} days of publication",
                {"days_since_publish": days_since_publish},
            )

        active = (
            self.db.query(AppraisalDispute.id)
            .filter(
                AppraisalDispute.appraisal_id == record.id,
                AppraisalDispute.status.in_(ACTIVE_DISPUTE_STATUSES),
            )
            .first()
        )
        if active:
            raise ConflictError("An open dispute already exists for this appraisal")

        if not payload.reason or not payload.reason.strip():
            raise ValidationError("Dispute reason is required")

        d = AppraisalDispute(
            appraisal_id=record.id,
            assignment_id=assignment.id,
            cycle_id=cycle.id,
            raised_by_employee_id=payload.raised_by_employee_id,
            reason=payload.reason.strip(),
            details=payload.details,
            status=DisputeStatus.OPEN.value,
            submitted_at=now,
        )
        self.db.add(d)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("An open dispute already exists for this appraisal") from e

        log_event(
            db=self.db,
            actor=actor,
            action="DISPUTE_RAISED",
            entity_type="appraisal_dispute",
            entity_id=d.id,
            metadata={"appraisal_id": str(record.id), "days_since_publish": days_since_publish},
        )
        self.db.commit()
        return d

    @log_operation("dispute.review")
    def review(self, dispute_id: uuid.UUID, actor: Principal) -> AppraisalDispute:
        d = self._lock_dispute_or_404(dispute_id)
        if d.status != DisputeStatus.OPEN.value:
            raise ConflictError(f"Cannot review a dispute in {d.status} status")

        prev = d.status
        d.status = DisputeStatus.UNDER_REVIEW.value

        log_event(
            db=self.db,
            actor=actor,
            action="DISPUTE_UNDER_REVIEW",
            entity_type="appraisal_dispute",
            entity_id=d.id,
            metadata={"from": prev, "to": d.status},
        )
        self.db.commit()
        return d

    @log_operation("dispute.resolve")
    def resolve(self, dispute_id: uuid.UUID, payload: DisputeResolve, actor: Principal) -> AppraisalDispute:
        d = self._lock_dispute_or_404(dispute_id)
        if d.status not in ACTIVE_DISPUTE_STATUSES:
            raise ConflictError("Dispute has already been resolved")
        if payload.status not in TERMINAL_STATUSES:
            raise ValidationError("Resolution status must be RESOLVED or REJECTED")

        resolver_id = payload.resolved_by_employee_id
        if resolver_id is not None and self.directory.resolve_employee(resolver_id) is None:
            raise ValidationError(f"Employee {resolver_id} not found")

        prev = d.status
        d.status = payload.status.value
        d.resolution_summary = payload.resolution_summary
        d.resolved_by_employee_id = resolver_id or actor.employee_id
        d.resolved_at = utcnow()

        log_event(
            db=self.db,
            actor=actor,
            action="DISPUTE_RESOLVED",
            entity_type="appraisal_dispute",
            entity_id=d.id,
            metadata={"from": prev, "to": d.status},
        )
        self.db.commit()
        return d

    def get(self, dispute_id: uuid.UUID, actor: Principal) -> AppraisalDispute:
        d = self.db.get(AppraisalDispute, dispute_id)
        if not d:
            raise NotFoundError("Dispute not found")
        if not actor.is_hr:
            assert_can_act_on(actor, d.raised_by_employee_id)
        return d

    def list(
        self,
        status: str | None = None,
        cycle_id: uuid.UUID | None = None,
        appraisal_id: uuid.UUID | None = None,
        raised_by_employee_id: uuid.UUID | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AppraisalDispute], int]:
        q = self.db.query(AppraisalDispute)
        if status:
            q = q.filter(AppraisalDispute.status == status)
        if cycle_id:
            q = q.filter(AppraisalDispute.cycle_id == cycle_id)
        if appraisal_id:
            q = q.filter(AppraisalDispute.appraisal_id == appraisal_id)
        if raised_by_employee_id:
            q = q.filter(AppraisalDispute.raised_by_employee_id == raised_by_employee_id)
        total = q.count()
        rows = q.order_by(AppraisalDispute.submitted_at.desc()).offset(offset).limit(limit).all()
        return rows, total
