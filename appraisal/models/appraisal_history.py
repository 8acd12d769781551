import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import DateTime, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from appraisal.db.base import Base


class AppraisalHistoryEntry(Base):
    """
    An employee profile's appraisal history: one row per published record with
    the appraisal date, method (template type), rating scale and score.
    """

    __tablename__ = "employee_appraisal_history"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    employee_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False, unique=True)
    cycle_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    template_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)

    appraisal_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    template_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    rating_scale_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    total_score: Mapped[float] = mapped_column(Float, nullable=False)
