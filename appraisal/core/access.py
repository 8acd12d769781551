import uuid
from dataclasses import dataclass, field

from fastapi import Depends
from sqlalchemy.orm import Session

from appraisal.core.errors import ForbiddenError
from appraisal.core.rbac import ELEVATED_ROLES, HR_ROLES, get_user_role_names
from appraisal.core.security import get_current_user
from appraisal.db.session import get_db
from appraisal.models.employee import Employee
from appraisal.models.user import User


@dataclass(frozen=True)
class Principal:
    """The acting user as the appraisal services see it."""

    employee_id: uuid.UUID | None
    roles: frozenset[str] = field(default_factory=frozenset)
    user_id: uuid.UUID | None = None

    @property
    def elevated_roles(self) -> frozenset[str]:
        return self.roles & ELEVATED_ROLES

    @property
    def is_elevated(self) -> bool:
        return bool(self.elevated_roles)

    @property
    def is_hr(self) -> bool:
        """Holds a role that reaches the HR-only endpoints."""
        return bool(self.roles & frozenset(HR_ROLES))


def get_employee_for_user(db: Session, user: User) -> Employee | None:
    return db.query(Employee).filter(Employee.user_id == user.id).one_or_none()


def get_principal(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Principal:
    emp = get_employee_for_user(db, user)
    return Principal(
        employee_id=emp.id if emp else None,
        roles=frozenset(get_user_role_names(db, user)),
        user_id=user.id,
    )


def can_act_on(principal: Principal, target_employee_id: uuid.UUID | None) -> bool:
    """Self-or-elevated: the principal is the target, or holds an elevated role."""
    if principal.is_elevated:
        return True
    return principal.employee_id is not None and principal.employee_id == target_employee_id


def assert_can_act_on(principal: Principal, *target_employee_ids: uuid.UUID | None) -> None:
    """Passes when the principal may act on at least one of the targets."""
    if any(can_act_on(principal, t) for t in target_employee_ids):
        return
    raise ForbiddenError("Not allowed to act on this employee's appraisal data")
