from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from appraisal.core.access import get_employee_for_user
from appraisal.core.rbac import get_user_role_names
from appraisal.core.security import get_current_user
from appraisal.db.session import get_db
from appraisal.models.user import User
from appraisal.schemas.me import MeOut

router = APIRouter(tags=["auth"])


@router.get("/me", response_model=MeOut)
def me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current user, their roles and linked employee profile"""
    employee = get_employee_for_user(db, current_user)
    return MeOut(
        user_id=str(current_user.id),
        email=current_user.email,
        full_name=current_user.full_name,
        roles=sorted(get_user_role_names(db, current_user)),
        employee_id=str(employee.id) if employee else None,
    )
