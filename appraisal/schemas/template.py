import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from appraisal.models.enums import RatingScaleType, TemplateType


class RatingScale(BaseModel):
    type: RatingScaleType
    min: float
    max: float
    step: float | None = None
    labels: list[str] | None = None


class Criterion(BaseModel):
    key: str = Field(min_length=1, max_length=100)
    title: str = Field(min_length=1, max_length=200)
    details: str | None = None
    weight: float | None = Field(default=None, ge=0)
    max_score: float | None = None
    required: bool = True


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    template_type: TemplateType
    rating_scale: RatingScale
    criteria: list[Criterion] = Field(default_factory=list)
    instructions: str | None = None
    applicable_department_ids: list[uuid.UUID] = Field(default_factory=list)
    applicable_position_ids: list[uuid.UUID] = Field(default_factory=list)


class TemplateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    template_type: TemplateType | None = None
    rating_scale: RatingScale | None = None
    criteria: list[Criterion] | None = None
    instructions: str | None = None
    applicable_department_ids: list[uuid.UUID] | None = None
    applicable_position_ids: list[uuid.UUID] | None = None


class TemplateOut(BaseModel):
    id: str
    name: str
    description: str | None
    template_type: str
    rating_scale: dict
    criteria: list[dict]
    instructions: str | None
    applicable_department_ids: list[str]
    applicable_position_ids: list[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
