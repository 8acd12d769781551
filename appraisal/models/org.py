import uuid

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from appraisal.db.base import Base


# Organization-structure records. Owned by the org-structure service; the
# appraisal engine only reads them.
class Department(Base):
    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # no FK: positions reference departments, so this would be a cycle
    head_position_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, nullable=True)


class Position(Base):
    __tablename__ = "positions"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)

    department_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False
    )
    reports_to_position_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, ForeignKey("positions.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
