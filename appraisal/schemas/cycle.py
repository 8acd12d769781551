import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from appraisal.models.enums import TemplateType


class TemplateAssignment(BaseModel):
    template_id: uuid.UUID
    department_ids: list[uuid.UUID] = Field(min_length=1)


class CycleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    cycle_type: TemplateType
    start_date: date
    end_date: date
    template_assignments: list[TemplateAssignment] = Field(default_factory=list)
    manager_due_date: date | None = None
    employee_acknowledgement_due_date: date | None = None


class TemplateAssignmentOut(BaseModel):
    template_id: str
    department_ids: list[str]


class CycleOut(BaseModel):
    id: str
    name: str
    description: str | None
    cycle_type: str
    start_date: date
    end_date: date
    status: str
    template_assignments: list[TemplateAssignmentOut]
    manager_due_date: date | None
    employee_acknowledgement_due_date: date | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ReminderOut(BaseModel):
    assignment_id: str
    employee_profile_id: str
    employee_name: str | None
    manager_profile_id: str | None
    manager_name: str | None
    status: str
    due_date: date | None
