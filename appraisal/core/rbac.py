from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from appraisal.core.security import get_current_user
from appraisal.db.session import get_db
from appraisal.models.rbac import Role, UserRole
from appraisal.models.user import User

HR_MANAGER = "HR_MANAGER"
HR_ADMIN = "HR_ADMIN"
HR_EMPLOYEE = "HR_EMPLOYEE"
SYSTEM_ADMIN = "SYSTEM_ADMIN"
DEPARTMENT_HEAD = "DEPARTMENT_HEAD"
DEPARTMENT_EMPLOYEE = "DEPARTMENT_EMPLOYEE"

ALL_ROLES = (HR_MANAGER, HR_ADMIN, HR_EMPLOYEE, SYSTEM_ADMIN, DEPARTMENT_HEAD, DEPARTMENT_EMPLOYEE)

# may act on any employee's appraisal data
ELEVATED_ROLES = frozenset({HR_MANAGER, HR_ADMIN, SYSTEM_ADMIN})
# may reach the HR-only endpoints
HR_ROLES = (HR_MANAGER, HR_ADMIN, HR_EMPLOYEE, SYSTEM_ADMIN)


def get_user_role_names(db: Session, user: User) -> set[str]:
    rows = (
        db.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user.id)
        .all()
    )
    return {r[0] for r in rows}


def require_roles(*required: str):
    """
    Usage:
      Depends(require_roles(HR_MANAGER))
      Depends(require_roles(*HR_ROLES))  # any-of
    """
    required_set = set(required)

    def _dep(
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
    ) -> User:
        role_names = get_user_role_names(db, user)
        if not (role_names & required_set):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden. Requires one of: {sorted(required_set)}",
            )
        return user

    return _dep
