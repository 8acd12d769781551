import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from appraisal.core.timeutil import utcnow
from appraisal.db.base import Base
from appraisal.models.enums import AssignmentStatus, sql_in


class AppraisalAssignment(Base):
    __tablename__ = "appraisal_assignments"
    __table_args__ = (
        UniqueConstraint(
            "employee_profile_id", "cycle_id", "template_id",
            name="uq_assignment_employee_cycle_template",
        ),
        CheckConstraint(
            f"status IN ({sql_in(AssignmentStatus)})",
            name="ck_appraisal_assignments_status",
        ),
        Index("ix_assignments_manager", "manager_profile_id"),
        Index("ix_assignments_cycle_department", "cycle_id", "department_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    cycle_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_cycles.id", ondelete="RESTRICT"), nullable=False
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_templates.id", ondelete="RESTRICT"), nullable=False
    )

    employee_profile_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    manager_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    department_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    position_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AssignmentStatus.NOT_STARTED.value)

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    latest_appraisal_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
