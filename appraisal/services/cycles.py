"""
Cycle Scheduler.

A cycle binds templates to departments for a date range. A department may
take part in at most one live cycle at a time: any other cycle binding the
same department conflicts when it is ACTIVE, whatever its dates, or when its
date range overlaps (bounds inclusive), whatever its status.
"""

import uuid
from datetime import date

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from appraisal.core.access import Principal
from appraisal.core.audit import log_event
from appraisal.core.directory import OrgStructure
from appraisal.core.errors import ConflictError, NotFoundError, ValidationError
from appraisal.core.logging import log_operation
from appraisal.core.timeutil import utcnow
from appraisal.models.cycle import AppraisalCycle, CycleTemplateBinding
from appraisal.models.enums import CycleStatus
from appraisal.models.template import AppraisalTemplate
from appraisal.schemas.cycle import CycleCreate


class CycleScheduler:
    def __init__(self, db: Session, org: OrgStructure | None = None):
        self.db = db
        self.org = org or OrgStructure(db)

    def _lock_cycle_or_404(self, cycle_id: uuid.UUID) -> AppraisalCycle:
        c = (
            self.db.query(AppraisalCycle)
            .filter(AppraisalCycle.id == cycle_id)
            .with_for_update()
            .one_or_none()
        )
        if not c:
            raise NotFoundError("Cycle not found")
        return c

    def _conflicting_department(
        self,
        department_ids: set[uuid.UUID],
        start_date: date | None = None,
        end_date: date | None = None,
        exclude_cycle_id: uuid.UUID | None = None,
    ) -> uuid.UUID | None:
        """First department already held by another cycle, if any."""
        if not department_ids:
            return None

        clash = AppraisalCycle.status == CycleStatus.ACTIVE.value
        if start_date is not None and end_date is not None:
            clash = or_(
                clash,
                and_(AppraisalCycle.start_date <= end_date, AppraisalCycle.end_date >= start_date),
            )

        q = (
            self.db.query(CycleTemplateBinding.department_id)
            .join(AppraisalCycle, AppraisalCycle.id == CycleTemplateBinding.cycle_id)
            .filter(CycleTemplateBinding.department_id.in_(list(department_ids)))
            .filter(clash)
        )
        if exclude_cycle_id is not None:
            q = q.filter(AppraisalCycle.id != exclude_cycle_id)

        row = q.order_by(CycleTemplateBinding.department_id).first()
        return row[0] if row else None

    @log_operation("cycle.create")
    def create(self, payload: CycleCreate, actor: Principal | None = None) -> AppraisalCycle:
        department_ids: set[uuid.UUID] = set()
        for ta in payload.template_assignments:
            tmpl = self.db.get(AppraisalTemplate, ta.template_id)
            if not tmpl or not tmpl.is_active:
                raise ValidationError(f"Template {ta.template_id} not found or inactive")
            for dep_id in ta.department_ids:
                if self.org.resolve_department(dep_id) is None:
                    raise ValidationError(f"Department {dep_id} not found")
                department_ids.add(dep_id)

        if payload.start_date >= payload.end_date:
            raise ValidationError("Cycle start date must be before end date")

        clash = self._conflicting_department(department_ids, payload.start_date, payload.end_date)
        if clash is not None:
            raise ConflictError(f"Overlapping cycle for department {clash}")

        c = AppraisalCycle(
            name=payload.name,
            description=payload.description,
            cycle_type=payload.cycle_type.value,
            start_date=payload.start_date,
            end_date=payload.end_date,
            status=CycleStatus.PLANNED.value,
            manager_due_date=payload.manager_due_date,
            employee_acknowledgement_due_date=payload.employee_acknowledgement_due_date,
        )
        seen: set[tuple[uuid.UUID, uuid.UUID]] = set()
        pos = 0
        for ta in payload.template_assignments:
            for dep_id in ta.department_ids:
                if (ta.template_id, dep_id) in seen:
                    continue
                seen.add((ta.template_id, dep_id))
                c.bindings.append(
                    CycleTemplateBinding(template_id=ta.template_id, department_id=dep_id, position=pos)
                )
                pos += 1

        self.db.add(c)
        self.db.flush()

        log_event(
            db=self.db,
            actor=actor,
            action="CYCLE_CREATED",
            entity_type="appraisal_cycle",
            entity_id=c.id,
            metadata={
                "name": c.name,
                "start_date": str(c.start_date),
                "end_date": str(c.end_date),
                "departments": sorted(str(d) for d in department_ids),
                "status": c.status,
            },
        )
        self.db.commit()
        return c

    @log_operation("cycle.activate")
    def activate(self, cycle_id: uuid.UUID, actor: Principal | None = None) -> AppraisalCycle:
        c = self._lock_cycle_or_404(cycle_id)
        if c.status != CycleStatus.PLANNED.value:
            raise ConflictError("Only PLANNED cycles can be activated")
        if not c.bindings:
            raise ValidationError("Cycle has no template assignments")

        held = (
            self.db.query(CycleTemplateBinding.department_id)
            .join(AppraisalCycle, AppraisalCycle.id == CycleTemplateBinding.cycle_id)
            .filter(
                CycleTemplateBinding.department_id.in_([b.department_id for b in c.bindings]),
                AppraisalCycle.status == CycleStatus.ACTIVE.value,
                AppraisalCycle.id != c.id,
            )
            .first()
        )
        if held:
            raise ConflictError(f"Another active cycle already covers department {held[0]}")

        prev = c.status
        c.status = CycleStatus.ACTIVE.value

        log_event(
            db=self.db,
            actor=actor,
            action="CYCLE_ACTIVATED",
            entity_type="appraisal_cycle",
            entity_id=c.id,
            metadata={"from": prev, "to": c.status},
        )
        self.db.commit()
        return c

    @log_operation("cycle.close")
    def close(self, cycle_id: uuid.UUID, actor: Principal | None = None) -> AppraisalCycle:
        c = self._lock_cycle_or_404(cycle_id)
        if c.status != CycleStatus.ACTIVE.value:
            raise ConflictError("Only ACTIVE cycles can be closed")

        prev = c.status
        c.status = CycleStatus.CLOSED.value
        c.closed_at = utcnow()

        log_event(
            db=self.db,
            actor=actor,
            action="CYCLE_CLOSED",
            entity_type="appraisal_cycle",
            entity_id=c.id,
            metadata={"from": prev, "to": c.status},
        )
        self.db.commit()
        return c

    def get(self, cycle_id: uuid.UUID) -> AppraisalCycle:
        c = self.db.get(AppraisalCycle, cycle_id)
        if not c:
            raise NotFoundError("Cycle not found")
        return c

    def list(
        self,
        search: str | None = None,
        status: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AppraisalCycle], int]:
        q = self.db.query(AppraisalCycle)
        if search:
            q = q.filter(AppraisalCycle.name.ilike(f"%{search.lower()}%"))
        if status:
            q = q.filter(AppraisalCycle.status == status)

        total = q.count()
        rows = q.order_by(AppraisalCycle.created_at.desc()).offset(offset).limit(limit).all()
        return rows, total
