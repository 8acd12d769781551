import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from appraisal.db.base import Base
from appraisal.db.types import JSONType
from appraisal.models.enums import RecordStatus, sql_in


class AppraisalRecord(Base):
    __tablename__ = "appraisal_records"
    __table_args__ = (
        UniqueConstraint("assignment_id", name="uq_appraisal_records_assignment"),
        CheckConstraint(
            f"status IN ({sql_in(RecordStatus)})",
            name="ck_appraisal_records_status",
        ),
        # HR_PUBLISHED => publication stamped
        CheckConstraint(
            "(status <> 'HR_PUBLISHED') OR (hr_published_at IS NOT NULL)",
            name="ck_record_ts_published",
        ),
        # acknowledgement only after publication
        CheckConstraint(
            "(employee_acknowledged_at IS NULL) OR (status = 'HR_PUBLISHED')",
            name="ck_record_ts_acknowledged",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    assignment_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_assignments.id", ondelete="RESTRICT"), nullable=False
    )
    cycle_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_cycles.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_templates.id", ondelete="RESTRICT"), nullable=False
    )
    employee_profile_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    manager_profile_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False
    )

    # [{"key", "title", "rating_value", "rating_label", "weighted_score", "comments"}]
    ratings: Mapped[list[dict]] = mapped_column(JSONType, nullable=False)
    total_score: Mapped[float] = mapped_column(Float, nullable=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False, default=RecordStatus.MANAGER_SUBMITTED.value)

    manager_submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    hr_published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by_employee_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)

    employee_acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    employee_acknowledgement_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
