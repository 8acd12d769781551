"""Assignment Resolver: one evaluation task per (employee, cycle, template)."""

import uuid
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, assert_can_act_on, can_act_on
from appraisal.core.audit import log_event
from appraisal.core.directory import EmployeeDirectory, OrgStructure
from appraisal.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from appraisal.core.logging import log_operation
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.cycle import AppraisalCycle
from appraisal.models.employee import Employee
from appraisal.models.enums import AssignmentStatus, CycleStatus
from appraisal.models.org import Department
from appraisal.models.template import AppraisalTemplate
from appraisal.schemas.assignment import AssignmentItem


@dataclass
class _Resolved:
    item: AssignmentItem
    cycle: AppraisalCycle
    employee: Employee
    department: Department
    manager: Employee
    template: AppraisalTemplate


class AssignmentResolver:
    def __init__(
        self,
        db: Session,
        directory: EmployeeDirectory | None = None,
        org: OrgStructure | None = None,
    ):
        self.db = db
        self.directory = directory or EmployeeDirectory(db)
        self.org = org or OrgStructure(db)

    def resolve_manager(self, employee: Employee, department: Department) -> Employee | None:
        """Supervisor-position holder first, then the department head."""
        manager = self.directory.find_by_position(employee.supervisor_position_id)
        if manager is None:
            manager = self.directory.find_by_position(department.head_position_id)
        return manager

    def _resolve(self, idx: int, item: AssignmentItem) -> _Resolved:
        cycle = self.db.get(AppraisalCycle, item.cycle_id)
        if not cycle:
            raise ValidationError(f"Item {idx}: cycle {item.cycle_id} not found")

        employee = self.directory.resolve_employee(item.employee_profile_id)
        if not employee:
            raise ValidationError(f"Item {idx}: employee {item.employee_profile_id} not found")

        department = self.org.resolve_department(item.department_id)
        if not department:
            raise ValidationError(f"Item {idx}: department {item.department_id} not found")

        if item.manager_profile_id is not None:
            manager = self.directory.resolve_employee(item.manager_profile_id)
            if not manager:
                raise ValidationError(f"Item {idx}: manager {item.manager_profile_id} not found")
        else:
            manager = self.resolve_manager(employee, department)
            if not manager:
                raise ValidationError(
                    f"Item {idx}: no manager could be resolved for employee {employee.id}"
                )

        if item.position_id is not None and self.org.resolve_position(item.position_id) is None:
            raise ValidationError(f"Item {idx}: position {item.position_id} not found")

        template = self.db.get(AppraisalTemplate, item.template_id)
        if not template:
            raise ValidationError(f"Item {idx}: template {item.template_id} not found")

        return _Resolved(item, cycle, employee, department, manager, template)

    def _cross_check(self, idx: int, r: _Resolved) -> None:
        item = r.item
        if r.cycle.status == CycleStatus.CLOSED.value:
            raise ConflictError(f"Item {idx}: cannot assign to a closed cycle")
        if r.employee.department_id != item.department_id:
            raise ConflictError(f"Item {idx}: employee does not belong to department {item.department_id}")
        if str(item.department_id) not in (r.template.applicable_department_ids or []):
            raise ConflictError(f"Item {idx}: template does not apply to department {item.department_id}")
        if item.position_id is not None and str(item.position_id) not in (r.template.applicable_position_ids or []):
            raise ConflictError(f"Item {idx}: template does not apply to position {item.position_id}")

        existing = (
            self.db.query(AppraisalAssignment.id)
            .filter(
                AppraisalAssignment.employee_profile_id == item.employee_profile_id,
                AppraisalAssignment.cycle_id == item.cycle_id,
                AppraisalAssignment.template_id == item.template_id,
            )
            .first()
        )
        if existing:
            raise ConflictError(f"Item {idx}: employee is already assigned this template in the cycle")

    @log_operation("assignment.bulk_assign")
    def bulk_assign(self, items: list[AssignmentItem], actor: Principal | None = None) -> list[AppraisalAssignment]:
        if not items:
            raise ValidationError("No assignments provided")

        resolved = [self._resolve(idx, item) for idx, item in enumerate(items)]

        seen: set[tuple[uuid.UUID, uuid.UUID, uuid.UUID]] = set()
        for idx, r in enumerate(resolved):
            self._cross_check(idx, r)
            key = (r.item.employee_profile_id, r.item.cycle_id, r.item.template_id)
            if key in seen:
                raise ConflictError(f"Item {idx}: duplicate assignment in batch")
            seen.add(key)

        created: list[AppraisalAssignment] = []
        for r in resolved:
            a = AppraisalAssignment(
                cycle_id=r.cycle.id,
                template_id=r.template.id,
                employee_profile_id=r.employee.id,
                manager_profile_id=r.manager.id,
                department_id=r.department.id,
                position_id=r.item.position_id,
                status=(r.item.status or AssignmentStatus.NOT_STARTED).value,
                due_date=r.item.due_date or r.cycle.manager_due_date,
            )
            self.db.add(a)
            created.append(a)

        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("Duplicate assignment(s) detected for this cycle") from e

        for a in created:
            log_event(
                db=self.db,
                actor=actor,
                action="ASSIGNMENT_CREATED",
                entity_type="appraisal_assignment",
                entity_id=a.id,
                metadata={
                    "cycle_id": str(a.cycle_id),
                    "template_id": str(a.template_id),
                    "employee_profile_id": str(a.employee_profile_id),
                    "manager_profile_id": str(a.manager_profile_id),
                },
            )

        self.db.commit()
        return created

    def _scoped_query(self, column, target_id: uuid.UUID, actor: Principal, cycle_id=None, status=None):
        if not can_act_on(actor, target_id):
            raise ForbiddenError("Not allowed to view these assignments")
        q = self.db.query(AppraisalAssignment).filter(column == target_id)
        if cycle_id:
            q = q.filter(AppraisalAssignment.cycle_id == cycle_id)
        if status:
            q = q.filter(AppraisalAssignment.status == status)
        return q.order_by(AppraisalAssignment.created_at.desc())

    def for_manager(
        self, manager_id: uuid.UUID, actor: Principal, cycle_id: uuid.UUID | None = None, status: str | None = None
    ) -> list[AppraisalAssignment]:
        return self._scoped_query(AppraisalAssignment.manager_profile_id, manager_id, actor, cycle_id, status).all()

    def for_employee(
        self, employee_id: uuid.UUID, actor: Principal, cycle_id: uuid.UUID | None = None, status: str | None = None
    ) -> list[AppraisalAssignment]:
        return self._scoped_query(AppraisalAssignment.employee_profile_id, employee_id, actor, cycle_id, status).all()

    def get(self, assignment_id: uuid.UUID, actor: Principal) -> AppraisalAssignment:
        a = self.db.get(AppraisalAssignment, assignment_id)
        if not a:
            raise NotFoundError("Assignment not found")
        assert_can_act_on(actor, a.employee_profile_id, a.manager_profile_id)
        return a

    @log_operation("assignment.start")
    def start(self, assignment_id: uuid.UUID, actor: Principal) -> AppraisalAssignment:
        a = (
            self.db.query(AppraisalAssignment)
            .filter(AppraisalAssignment.id == assignment_id)
            .with_for_update()
            .one_or_none()
        )
        if not a:
            raise NotFoundError("Assignment not found")
        assert_can_act_on(actor, a.manager_profile_id)

        # Idempotent success: already opened
        if a.status == AssignmentStatus.IN_PROGRESS.value:
            return a
        if a.status != AssignmentStatus.NOT_STARTED.value:
            raise ConflictError(f"Cannot start an assignment in {a.status} status")

        prev = a.status
        a.status = AssignmentStatus.IN_PROGRESS.value

        log_event(
            db=self.db,
            actor=actor,
            action="ASSIGNMENT_STARTED",
            entity_type="appraisal_assignment",
            entity_id=a.id,
            metadata={"from": prev, "to": a.status},
        )
        self.db.commit()
        return a
