import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appraisal.core.access import Principal, get_principal
from appraisal.core.rbac import HR_ROLES, require_roles
from appraisal.db.session import get_db
from appraisal.models.enums import TemplateType
from appraisal.models.template import AppraisalTemplate
from appraisal.schemas.pagination import paginate
from appraisal.schemas.template import TemplateCreate, TemplateOut, TemplateUpdate
from appraisal.services.templates import TemplateCatalog

router = APIRouter(
    prefix="/templates",
    tags=["appraisal-templates"],
    dependencies=[Depends(require_roles(*HR_ROLES))],
)


def to_out(t: AppraisalTemplate) -> TemplateOut:
    return TemplateOut(
        id=str(t.id),
        name=t.name,
        description=t.description,
        template_type=t.template_type,
        rating_scale=t.rating_scale,
        criteria=t.criteria or [],
        instructions=t.instructions,
        applicable_department_ids=t.applicable_department_ids or [],
        applicable_position_ids=t.applicable_position_ids or [],
        is_active=t.is_active,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


@router.get("")
def list_templates(
    search: str | None = Query(default=None, description="Search by name"),
    is_active: bool | None = Query(default=None, description="Filter by active status"),
    template_type: TemplateType | None = Query(default=None, description="Filter by template type"),
    limit: int = Query(default=100, ge=1, le=500, description="Maximum number of results"),
    offset: int = Query(default=0, ge=0, description="Number of results to skip"),
    include_pagination: bool = Query(default=False, description="Include pagination metadata"),
    db: Session = Depends(get_db),
):
    """
    List appraisal templates.

    Use ?include_pagination=true to get pagination metadata.
    """
    rows, total = TemplateCatalog(db).list(
        search=search,
        is_active=is_active,
        template_type=template_type.value if template_type else None,
        limit=limit,
        offset=offset,
    )
    return paginate([to_out(t) for t in rows], total, limit, offset, include_pagination)


@router.post("", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(TemplateCatalog(db).create(payload, actor=principal))


@router.get("/{template_id}", response_model=TemplateOut)
def get_template(template_id: uuid.UUID, db: Session = Depends(get_db)):
    return to_out(TemplateCatalog(db).get(template_id))


@router.patch("/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: uuid.UUID,
    payload: TemplateUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(TemplateCatalog(db).update(template_id, payload, actor=principal))


@router.post("/{template_id}/deactivate", response_model=TemplateOut)
def deactivate_template(
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    return to_out(TemplateCatalog(db).deactivate(template_id, actor=principal))
