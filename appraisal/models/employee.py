import uuid
import sqlalchemy as sa
from sqlalchemy import String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appraisal.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    employee_number: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Optional link to system user (not all employees will be users)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    department_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True
    )
    position_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, ForeignKey("positions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # reporting line: whoever holds this position supervises the employee
    supervisor_position_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, ForeignKey("positions.id", ondelete="SET NULL"), nullable=True
    )

    user = relationship("User")
