import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from appraisal.models.enums import AssignmentStatus


class AssignmentItem(BaseModel):
    cycle_id: uuid.UUID
    template_id: uuid.UUID
    employee_profile_id: uuid.UUID
    department_id: uuid.UUID
    manager_profile_id: uuid.UUID | None = None
    position_id: uuid.UUID | None = None
    due_date: date | None = None
    status: AssignmentStatus | None = None


class BulkAssignRequest(BaseModel):
    # empty batches reach the resolver and are rejected there
    items: list[AssignmentItem] = Field(default_factory=list)


class AssignmentOut(BaseModel):
    id: str
    cycle_id: str
    template_id: str
    employee_profile_id: str
    manager_profile_id: str | None
    department_id: str
    position_id: str | None
    status: str
    due_date: date | None
    submitted_at: datetime | None
    published_at: datetime | None
    latest_appraisal_id: str | None
    created_at: datetime
    updated_at: datetime
