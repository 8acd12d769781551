import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from appraisal.db.base import Base
from appraisal.models.enums import DisputeStatus, sql_in

_ACTIVE = sa.text("status IN ('OPEN','UNDER_REVIEW')")


class AppraisalDispute(Base):
    __tablename__ = "appraisal_disputes"
    __table_args__ = (
        CheckConstraint(
            f"status IN ({sql_in(DisputeStatus)})",
            name="ck_appraisal_disputes_status",
        ),
        # terminal states carry the resolution stamp
        CheckConstraint(
            "(status IN ('OPEN','UNDER_REVIEW')) OR (resolved_at IS NOT NULL)",
            name="ck_dispute_ts_resolved",
        ),
        # at most one open/under-review dispute per record
        Index(
            "uq_disputes_active_per_appraisal",
            "appraisal_id",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    appraisal_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_records.id", ondelete="RESTRICT"), nullable=False
    )
    assignment_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_assignments.id", ondelete="RESTRICT"), nullable=False
    )
    cycle_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_cycles.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    raised_by_employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False
    )

    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=DisputeStatus.OPEN.value)

    resolved_by_employee_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)
    resolution_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
