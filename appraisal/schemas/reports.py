from datetime import datetime

from pydantic import BaseModel

from appraisal.schemas.assignment import AssignmentOut
from appraisal.schemas.cycle import CycleOut
from appraisal.schemas.dispute import DisputeOut
from appraisal.schemas.record import RecordOut


class DashboardStats(BaseModel):
    total_cycles: int
    active_cycles: int
    total_assignments: int
    submitted_records: int
    published_records: int
    open_disputes: int
    completion_rate: float


class CycleReportStats(BaseModel):
    total_assignments: int
    completed_records: int
    pending_submissions: int
    total_disputes: int
    open_disputes: int


class CycleReport(BaseModel):
    cycle: CycleOut
    stats: CycleReportStats
    assignments: list[AssignmentOut]
    records: list[RecordOut]
    disputes: list[DisputeOut]


class DepartmentReport(BaseModel):
    department_id: str
    department_name: str
    cycle_id: str | None
    total_employees: int
    completed_appraisals: int
    completion_rate: float
    average_score: float
    assignments: list[AssignmentOut]
    records: list[RecordOut]


class DepartmentProgress(BaseModel):
    department_id: str
    department_name: str | None
    total: int
    not_started: int
    in_progress: int
    submitted: int
    published: int
    acknowledged: int
    completion_rate: float


class HistoryPoint(BaseModel):
    record_id: str
    cycle_id: str
    template_id: str
    total_score: float
    hr_published_at: datetime | None


class EmployeeTrends(BaseModel):
    employee_id: str
    points: list[HistoryPoint]
    average_score: float | None


class ExportRow(BaseModel):
    record_id: str
    employee_profile_id: str
    employee_name: str | None
    manager_profile_id: str
    manager_name: str | None
    cycle_id: str
    cycle_name: str | None
    template_id: str
    template_name: str | None
    total_score: float
    status: str
    manager_submitted_at: datetime
    hr_published_at: datetime | None
