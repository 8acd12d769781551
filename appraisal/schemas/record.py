import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class RatingIn(BaseModel):
    key: str = Field(min_length=1, max_length=100)
    title: str = Field(default="", max_length=200)
    rating_value: float | None = Field(default=None, allow_inf_nan=False)
    rating_label: str | None = None
    weighted_score: float | None = Field(default=None, allow_inf_nan=False)
    comments: str | None = None


class RecordSubmit(BaseModel):
    assignment_id: uuid.UUID
    ratings: list[RatingIn] = Field(default_factory=list)


class RecordPublish(BaseModel):
    hr_published_by_id: uuid.UUID | None = None


class RecordAcknowledge(BaseModel):
    employee_id: uuid.UUID
    comment: str | None = Field(default=None, max_length=2000)


class RecordOut(BaseModel):
    id: str
    assignment_id: str
    cycle_id: str
    template_id: str
    employee_profile_id: str
    manager_profile_id: str
    ratings: list[dict]
    total_score: float
    status: str
    manager_submitted_at: datetime
    hr_published_at: datetime | None
    published_by_employee_id: str | None
    employee_acknowledged_at: datetime | None
    employee_acknowledgement_comment: str | None
