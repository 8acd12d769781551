"""Template Catalog: reusable appraisal forms."""

import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from appraisal.core.access import Principal
from appraisal.core.audit import log_event
from appraisal.core.directory import OrgStructure
from appraisal.core.errors import ConflictError, NotFoundError, ValidationError
from appraisal.core.logging import log_operation
from appraisal.models.cycle import AppraisalCycle, CycleTemplateBinding
from appraisal.models.enums import CycleStatus
from appraisal.models.template import AppraisalTemplate
from appraisal.schemas.template import RatingScale, TemplateCreate, TemplateUpdate

DUPLICATE_NAME = "Template name already exists"


class TemplateCatalog:
    def __init__(self, db: Session, org: OrgStructure | None = None):
        self.db = db
        self.org = org or OrgStructure(db)

    def _get_or_404(self, template_id: uuid.UUID, lock: bool = False) -> AppraisalTemplate:
        q = self.db.query(AppraisalTemplate).filter(AppraisalTemplate.id == template_id)
        if lock:
            q = q.with_for_update()
        t = q.one_or_none()
        if not t:
            raise NotFoundError("Template not found")
        return t

    def _name_taken(self, name: str, exclude_id: uuid.UUID | None = None) -> bool:
        q = self.db.query(AppraisalTemplate.id).filter(AppraisalTemplate.name == name)
        if exclude_id is not None:
            q = q.filter(AppraisalTemplate.id != exclude_id)
        return q.first() is not None

    def _used_by_active_cycle(self, template_id: uuid.UUID) -> bool:
        row = (
            self.db.query(CycleTemplateBinding.id)
            .join(AppraisalCycle, AppraisalCycle.id == CycleTemplateBinding.cycle_id)
            .filter(
                CycleTemplateBinding.template_id == template_id,
                AppraisalCycle.status == CycleStatus.ACTIVE.value,
            )
            .first()
        )
        return row is not None

    @staticmethod
    def _check_scale(scale: RatingScale) -> None:
        if scale.min >= scale.max:
            raise ValidationError("Rating scale minimum must be lower than maximum")

    def _check_departments(self, ids: list[uuid.UUID]) -> None:
        if not ids:
            raise ValidationError("At least one applicable department is required")
        for dep_id in ids:
            if self.org.resolve_department(dep_id) is None:
                raise ValidationError(f"Department {dep_id} not found")

    def _check_positions(self, ids: list[uuid.UUID]) -> None:
        if not ids:
            raise ValidationError("At least one applicable position is required")
        for pos_id in ids:
            if self.org.resolve_position(pos_id) is None:
                raise ValidationError(f"Position {pos_id} not found")

    def _flush_unique_name(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(DUPLICATE_NAME) from e

    @log_operation("template.create")
    def create(self, payload: TemplateCreate, actor: Principal | None = None) -> AppraisalTemplate:
        if not payload.applicable_department_ids or not payload.applicable_position_ids:
            raise ValidationError("Template needs at least one applicable department and position")
        self._check_scale(payload.rating_scale)
        if self._name_taken(payload.name):
            raise ConflictError(DUPLICATE_NAME)
        self._check_departments(payload.applicable_department_ids)
        self._check_positions(payload.applicable_position_ids)

        t = AppraisalTemplate(
            name=payload.name,
            description=payload.description,
            template_type=payload.template_type.value,
            rating_scale=payload.rating_scale.model_dump(mode="json", exclude_none=True),
            criteria=[c.model_dump(mode="json", exclude_none=True) for c in payload.criteria],
            instructions=payload.instructions,
            applicable_department_ids=[str(i) for i in payload.applicable_department_ids],
            applicable_position_ids=[str(i) for i in payload.applicable_position_ids],
            is_active=True,
        )
        self.db.add(t)
        self._flush_unique_name()

        log_event(
            db=self.db,
            actor=actor,
            action="TEMPLATE_CREATED",
            entity_type="appraisal_template",
            entity_id=t.id,
            metadata={"name": t.name, "template_type": t.template_type},
        )
        self.db.commit()
        return t

    @log_operation("template.update")
    def update(
        self, template_id: uuid.UUID, patch: TemplateUpdate, actor: Principal | None = None
    ) -> AppraisalTemplate:
        t = self._get_or_404(template_id, lock=True)

        if patch.name is not None and patch.name != t.name and self._name_taken(patch.name, exclude_id=t.id):
            raise ConflictError(DUPLICATE_NAME)
        if self._used_by_active_cycle(t.id):
            raise ConflictError("Template is used by an active cycle")
        if patch.applicable_department_ids is not None:
            self._check_departments(patch.applicable_department_ids)
        if patch.applicable_position_ids is not None:
            self._check_positions(patch.applicable_position_ids)
        if patch.rating_scale is not None:
            self._check_scale(patch.rating_scale)

        changed = patch.model_dump(exclude_unset=True, exclude_none=True)

        if patch.name is not None:
            t.name = patch.name
        if patch.description is not None:
            t.description = patch.description
        if patch.instructions is not None:
            t.instructions = patch.instructions
        if patch.template_type is not None:
            t.template_type = patch.template_type.value
        if patch.rating_scale is not None:
            t.rating_scale = patch.rating_scale.model_dump(mode="json", exclude_none=True)
        if patch.criteria is not None:
            t.criteria = [c.model_dump(mode="json", exclude_none=True) for c in patch.criteria]
        if patch.applicable_department_ids is not None:
            t.applicable_department_ids = [str(i) for i in patch.applicable_department_ids]
        if patch.applicable_position_ids is not None:
            t.applicable_position_ids = [str(i) for i in patch.applicable_position_ids]

        self._flush_unique_name()

        log_event(
            db=self.db,
            actor=actor,
            action="TEMPLATE_UPDATED",
            entity_type="appraisal_template",
            entity_id=t.id,
            metadata={"fields": sorted(changed)},
        )
        self.db.commit()
        return t

    @log_operation("template.deactivate")
    def deactivate(self, template_id: uuid.UUID, actor: Principal | None = None) -> AppraisalTemplate:
        t = self._get_or_404(template_id, lock=True)
        if not t.is_active:
            raise ConflictError("Template is already inactive")
        if self._used_by_active_cycle(t.id):
            raise ConflictError("Template is used by an active cycle")

        t.is_active = False

        log_event(
            db=self.db,
            actor=actor,
            action="TEMPLATE_DEACTIVATED",
            entity_type="appraisal_template",
            entity_id=t.id,
            metadata={"from": True, "to": False},
        )
        self.db.commit()
        return t

    def get(self, template_id: uuid.UUID) -> AppraisalTemplate:
        return self._get_or_404(template_id)

    def list(
        self,
        search: str | None = None,
        is_active: bool | None = None,
        template_type: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AppraisalTemplate], int]:
        q = self.db.query(AppraisalTemplate)
        if search:
            q = q.filter(AppraisalTemplate.name.ilike(f"%{search.lower()}%"))
        if is_active is not None:
            q = q.filter(AppraisalTemplate.is_active == is_active)
        if template_type:
            q = q.filter(AppraisalTemplate.template_type == template_type)

        total = q.count()
        rows = q.order_by(AppraisalTemplate.created_at.desc()).offset(offset).limit(limit).all()
        return rows, total
