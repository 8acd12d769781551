import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appraisal.core.timeutil import utcnow
from appraisal.db.base import Base
from appraisal.models.enums import CycleStatus, TemplateType, sql_in


class AppraisalCycle(Base):
    __tablename__ = "appraisal_cycles"
    __table_args__ = (
        CheckConstraint(
            f"status IN ({sql_in(CycleStatus)})",
            name="ck_appraisal_cycles_status",
        ),
        CheckConstraint(
            f"cycle_type IN ({sql_in(TemplateType)})",
            name="ck_appraisal_cycles_type",
        ),
        CheckConstraint("start_date < end_date", name="ck_appraisal_cycles_dates"),
        # CLOSED => closed_at stamped
        CheckConstraint(
            "(status <> 'CLOSED') OR (closed_at IS NOT NULL)",
            name="ck_appraisal_cycles_closed_ts",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    cycle_type: Mapped[str] = mapped_column(String(30), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CycleStatus.PLANNED.value)

    manager_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    employee_acknowledgement_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    bindings = relationship(
        "CycleTemplateBinding",
        back_populates="cycle",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CycleTemplateBinding.position",
    )


class CycleTemplateBinding(Base):
    """One (template, department) pair bound to a cycle."""

    __tablename__ = "cycle_template_bindings"
    __table_args__ = (
        UniqueConstraint("cycle_id", "template_id", "department_id", name="uq_cycle_template_department"),
        Index("ix_cycle_bindings_department", "department_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    cycle_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_cycles.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("appraisal_templates.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    department_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)

    # preserves the order the template assignments were given in
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    cycle = relationship("AppraisalCycle", back_populates="bindings")
