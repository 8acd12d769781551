import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import Boolean, CheckConstraint, DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from appraisal.core.timeutil import utcnow
from appraisal.db.base import Base
from appraisal.db.types import JSONType
from appraisal.models.enums import TemplateType, sql_in


class AppraisalTemplate(Base):
    __tablename__ = "appraisal_templates"
    __table_args__ = (
        UniqueConstraint("name", name="uq_appraisal_templates_name"),
        CheckConstraint(
            f"template_type IN ({sql_in(TemplateType)})",
            name="ck_appraisal_templates_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    template_type: Mapped[str] = mapped_column(String(30), nullable=False)

    # {"type": "FIVE_POINT", "min": 1, "max": 5, "step": 1, "labels": [...]}
    rating_scale: Mapped[dict] = mapped_column(JSONType, nullable=False)
    # [{"key": "quality", "title": "...", "weight": 40, "required": true}, ...]
    criteria: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    # weak references into the org-structure store, kept as string UUIDs
    applicable_department_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    applicable_position_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
