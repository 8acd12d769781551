"""
Read access to the employee master data and the organization structure.

Both stores are owned by other parts of the HR system. The appraisal services
only read them, except for appending published results to an employee's
appraisal history.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from appraisal.models.appraisal_history import AppraisalHistoryEntry
from appraisal.models.employee import Employee
from appraisal.models.org import Department, Position


@dataclass
class HistoryEntry:
    record_id: uuid.UUID
    cycle_id: uuid.UUID
    template_id: uuid.UUID
    appraisal_date: datetime
    total_score: float
    template_type: str | None = None
    rating_scale_type: str | None = None


class EmployeeDirectory:
    def __init__(self, db: Session):
        self.db = db

    def resolve_employee(self, employee_id: uuid.UUID | None) -> Employee | None:
        if employee_id is None:
            return None
        return self.db.get(Employee, employee_id)

    def find_by_position(self, position_id: uuid.UUID | None) -> Employee | None:
        """The employee currently holding `position_id`, if any."""
        if position_id is None:
            return None
        return (
            self.db.query(Employee)
            .filter(Employee.position_id == position_id)
            .order_by(Employee.employee_number.asc())
            .first()
        )

    def append_appraisal_history(self, employee_id: uuid.UUID, entry: HistoryEntry) -> AppraisalHistoryEntry:
        row = AppraisalHistoryEntry(
            employee_id=employee_id,
            record_id=entry.record_id,
            cycle_id=entry.cycle_id,
            template_id=entry.template_id,
            appraisal_date=entry.appraisal_date,
            template_type=entry.template_type,
            rating_scale_type=entry.rating_scale_type,
            total_score=entry.total_score,
        )
        self.db.add(row)
        return row


class OrgStructure:
    def __init__(self, db: Session):
        self.db = db

    def resolve_department(self, department_id: uuid.UUID | None) -> Department | None:
        if department_id is None:
            return None
        return self.db.get(Department, department_id)

    def resolve_position(self, position_id: uuid.UUID | None) -> Position | None:
        if position_id is None:
            return None
        return self.db.get(Position, position_id)
