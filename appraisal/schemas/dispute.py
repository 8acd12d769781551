import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from appraisal.models.enums import DisputeStatus


class DisputeCreate(BaseModel):
    appraisal_id: uuid.UUID
    assignment_id: uuid.UUID
    raised_by_employee_id: uuid.UUID
    # blank reasons are rejected by the adjudicator, not here
    reason: str = Field(max_length=500)
    details: str | None = None


class DisputeResolve(BaseModel):
    status: DisputeStatus
    resolution_summary: str | None = None
    resolved_by_employee_id: uuid.UUID | None = None


class DisputeOut(BaseModel):
    id: str
    appraisal_id: str
    assignment_id: str
    cycle_id: str
    raised_by_employee_id: str
    reason: str
    details: str | None
    status: str
    resolved_by_employee_id: str | None
    resolution_summary: str | None
    submitted_at: datetime
    resolved_at: datetime | None
