"""Read-only rollups over cycles, assignments, records and disputes."""

import csv
import io
import uuid
from collections import OrderedDict

from sqlalchemy import func
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, assert_can_act_on
from appraisal.core.directory import OrgStructure
from appraisal.core.errors import NotFoundError
from appraisal.models.assignment import AppraisalAssignment
from appraisal.models.cycle import AppraisalCycle
from appraisal.models.dispute import AppraisalDispute
from appraisal.models.employee import Employee
from appraisal.models.enums import AssignmentStatus, CycleStatus, DisputeStatus, RecordStatus
from appraisal.models.org import Department
from appraisal.models.record import AppraisalRecord
from appraisal.models.template import AppraisalTemplate

PENDING_STATUSES = (AssignmentStatus.NOT_STARTED.value, AssignmentStatus.IN_PROGRESS.value)

EXPORT_COLUMNS = [
    "record_id",
    "employee_profile_id",
    "employee_name",
    "manager_profile_id",
    "manager_name",
    "cycle_id",
    "cycle_name",
    "template_id",
    "template_name",
    "total_score",
    "status",
    "manager_submitted_at",
    "hr_published_at",
]


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


class ReportService:
    def __init__(self, db: Session, org: OrgStructure | None = None):
        self.db = db
        self.org = org or OrgStructure(db)

    def _employee_names(self, ids) -> dict[uuid.UUID, str]:
        ids = {i for i in ids if i is not None}
        if not ids:
            return {}
        rows = self.db.query(Employee.id, Employee.display_name).filter(Employee.id.in_(list(ids))).all()
        return {r[0]: r[1] for r in rows}

    def dashboard_stats(self, department_id: uuid.UUID | None = None) -> dict:
        total_cycles = self.db.query(func.count(AppraisalCycle.id)).scalar()
        active_cycles = (
            self.db.query(func.count(AppraisalCycle.id))
            .filter(AppraisalCycle.status == CycleStatus.ACTIVE.value)
            .scalar()
        )

        assignments = self.db.query(func.count(AppraisalAssignment.id))
        records = self.db.query(AppraisalRecord.status, func.count(AppraisalRecord.id)).join(
            AppraisalAssignment, AppraisalAssignment.id == AppraisalRecord.assignment_id
        )
        disputes = self.db.query(func.count(AppraisalDispute.id)).join(
            AppraisalAssignment, AppraisalAssignment.id == AppraisalDispute.assignment_id
        )
        if department_id:
            assignments = assignments.filter(AppraisalAssignment.department_id == department_id)
            records = records.filter(AppraisalAssignment.department_id == department_id)
            disputes = disputes.filter(AppraisalAssignment.department_id == department_id)

        total_assignments = assignments.scalar()
        by_status = dict(records.group_by(AppraisalRecord.status).all())
        submitted = by_status.get(RecordStatus.MANAGER_SUBMITTED.value, 0)
        published = by_status.get(RecordStatus.HR_PUBLISHED.value, 0)
        open_disputes = disputes.filter(AppraisalDispute.status == DisputeStatus.OPEN.value).scalar()

        return {
            "total_cycles": total_cycles,
            "active_cycles": active_cycles,
            "total_assignments": total_assignments,
            "submitted_records": submitted,
            "published_records": published,
            "open_disputes": open_disputes,
            "completion_rate": _rate(published, total_assignments),
        }

    def cycle_report(self, cycle_id: uuid.UUID) -> dict:
        cycle = self.db.get(AppraisalCycle, cycle_id)
        if not cycle:
            raise NotFoundError("Cycle not found")

        assignments = (
            self.db.query(AppraisalAssignment)
            .filter(AppraisalAssignment.cycle_id == cycle.id)
            .order_by(AppraisalAssignment.created_at.asc())
            .all()
        )
        records = (
            self.db.query(AppraisalRecord)
            .filter(AppraisalRecord.cycle_id == cycle.id)
            .order_by(AppraisalRecord.manager_submitted_at.asc())
            .all()
        )
        disputes = (
            self.db.query(AppraisalDispute)
            .filter(AppraisalDispute.cycle_id == cycle.id)
            .order_by(AppraisalDispute.submitted_at.asc())
            .all()
        )

        stats = {
            "total_assignments": len(assignments),
            "completed_records": sum(1 for r in records if r.status == RecordStatus.HR_PUBLISHED.value),
            "pending_submissions": sum(1 for a in assignments if a.status in PENDING_STATUSES),
            "total_disputes": len(disputes),
            "open_disputes": sum(1 for d in disputes if d.status == DisputeStatus.OPEN.value),
        }
        return {
            "cycle": cycle,
            "stats": stats,
            "assignments": assignments,
            "records": records,
            "disputes": disputes,
        }

    def department_report(self, department_id: uuid.UUID, cycle_id: uuid.UUID | None = None) -> dict:
        department = self.org.resolve_department(department_id)
        if not department:
            raise NotFoundError("Department not found")

        q = self.db.query(AppraisalAssignment).filter(AppraisalAssignment.department_id == department.id)
        if cycle_id:
            q = q.filter(AppraisalAssignment.cycle_id == cycle_id)
        assignments = q.order_by(AppraisalAssignment.created_at.asc()).all()

        records: list[AppraisalRecord] = []
        if assignments:
            records = (
                self.db.query(AppraisalRecord)
                .filter(AppraisalRecord.assignment_id.in_([a.id for a in assignments]))
                .order_by(AppraisalRecord.manager_submitted_at.asc())
                .all()
            )

        completed = sum(1 for r in records if r.status == RecordStatus.HR_PUBLISHED.value)
        average = round(sum(r.total_score for r in records) / len(records), 2) if records else 0.0

        return {
            "department_id": str(department.id),
            "department_name": department.name,
            "cycle_id": str(cycle_id) if cycle_id else None,
            "total_employees": len(assignments),
            "completed_appraisals": completed,
            "completion_rate": _rate(completed, len(assignments)),
            "average_score": average,
            "assignments": assignments,
            "records": records,
        }

    def department_progress(self, cycle_id: uuid.UUID | None = None) -> list[dict]:
        q = self.db.query(AppraisalAssignment.department_id, AppraisalAssignment.status)
        if cycle_id:
            q = q.filter(AppraisalAssignment.cycle_id == cycle_id)

        buckets: OrderedDict[uuid.UUID, dict] = OrderedDict()
        for dep_id, status in q.order_by(AppraisalAssignment.created_at.asc()).all():
            row = buckets.setdefault(
                dep_id,
                {s.value.lower(): 0 for s in AssignmentStatus} | {"total": 0},
            )
            row["total"] += 1
            row[status.lower()] += 1

        names = {}
        if buckets:
            names = dict(
                self.db.query(Department.id, Department.name).filter(Department.id.in_(list(buckets))).all()
            )

        out = []
        for dep_id, row in buckets.items():
            done = row[AssignmentStatus.PUBLISHED.value.lower()] + row[AssignmentStatus.ACKNOWLEDGED.value.lower()]
            out.append(
                {
                    "department_id": str(dep_id),
                    "department_name": names.get(dep_id),
                    **row,
                    "completion_rate": _rate(done, row["total"]),
                }
            )
        out.sort(key=lambda r: r["completion_rate"])
        return out

    def employee_history(
        self, employee_id: uuid.UUID, actor: Principal, limit: int | None = None
    ) -> list[AppraisalRecord]:
        assert_can_act_on(actor, employee_id)
        q = (
            self.db.query(AppraisalRecord)
            .filter(
                AppraisalRecord.employee_profile_id == employee_id,
                AppraisalRecord.status == RecordStatus.HR_PUBLISHED.value,
            )
            .order_by(AppraisalRecord.hr_published_at.desc())
        )
        if limit:
            q = q.limit(limit)
        return q.all()

    def employee_trends(self, employee_id: uuid.UUID, actor: Principal) -> dict:
        history = list(reversed(self.employee_history(employee_id, actor)))
        points = [
            {
                "record_id": str(r.id),
                "cycle_id": str(r.cycle_id),
                "template_id": str(r.template_id),
                "total_score": r.total_score,
                "hr_published_at": r.hr_published_at,
            }
            for r in history
        ]
        average = round(sum(r.total_score for r in history) / len(history), 2) if history else None
        return {"employee_id": str(employee_id), "points": points, "average_score": average}

    def pending_reminders(self, cycle_id: uuid.UUID) -> list[dict]:
        if not self.db.get(AppraisalCycle, cycle_id):
            raise NotFoundError("Cycle not found")

        rows = (
            self.db.query(AppraisalAssignment)
            .filter(
                AppraisalAssignment.cycle_id == cycle_id,
                AppraisalAssignment.status.in_(PENDING_STATUSES),
            )
            .order_by(AppraisalAssignment.due_date.asc(), AppraisalAssignment.created_at.asc())
            .all()
        )
        names = self._employee_names(
            [a.employee_profile_id for a in rows] + [a.manager_profile_id for a in rows]
        )
        return [
            {
                "assignment_id": str(a.id),
                "employee_profile_id": str(a.employee_profile_id),
                "employee_name": names.get(a.employee_profile_id),
                "manager_profile_id": str(a.manager_profile_id) if a.manager_profile_id else None,
                "manager_name": names.get(a.manager_profile_id),
                "status": a.status,
                "due_date": a.due_date,
            }
            for a in rows
        ]

    def export_rows(self, cycle_id: uuid.UUID | None = None) -> list[dict]:
        q = (
            self.db.query(AppraisalRecord, AppraisalCycle.name, AppraisalTemplate.name)
            .join(AppraisalCycle, AppraisalCycle.id == AppraisalRecord.cycle_id)
            .join(AppraisalTemplate, AppraisalTemplate.id == AppraisalRecord.template_id)
        )
        if cycle_id:
            q = q.filter(AppraisalRecord.cycle_id == cycle_id)
        rows = q.order_by(AppraisalRecord.manager_submitted_at.asc()).all()

        names = self._employee_names(
            [r.employee_profile_id for r, _, _ in rows] + [r.manager_profile_id for r, _, _ in rows]
        )
        return [
            {
                "record_id": str(r.id),
                "employee_profile_id": str(r.employee_profile_id),
                "employee_name": names.get(r.employee_profile_id),
                "manager_profile_id": str(r.manager_profile_id),
                "manager_name": names.get(r.manager_profile_id),
                "cycle_id": str(r.cycle_id),
                "cycle_name": cycle_name,
                "template_id": str(r.template_id),
                "template_name": template_name,
                "total_score": r.total_score,
                "status": r.status,
                "manager_submitted_at": r.manager_submitted_at,
                "hr_published_at": r.hr_published_at,
            }
            for r, cycle_name, template_name in rows
        ]


def render_csv(rows: list[dict]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if row.get(k) is None else row.get(k)) for k in EXPORT_COLUMNS})
    return buf.getvalue()
