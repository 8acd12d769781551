"""appraisal schema

Revision ID: 4f1c2a9e7b10
Revises:
Create Date: 2026-10-19 09:12:44.208131
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "4f1c2a9e7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(JSONB(), "postgresql")
ACTIVE_DISPUTE = sa.text("status IN ('OPEN','UNDER_REVIEW')")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # identity and org structure
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "roles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
    )
    op.create_table(
        "user_roles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Uuid(), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("user_id", "role_id", name="uq_user_role"),
    )

    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("head_position_id", sa.Uuid(), nullable=True),
    )
    op.create_table(
        "positions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reports_to_position_id", sa.Uuid(), sa.ForeignKey("positions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_number", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("position_id", sa.Uuid(), sa.ForeignKey("positions.id", ondelete="SET NULL"), nullable=True),
        sa.Column("supervisor_position_id", sa.Uuid(), sa.ForeignKey("positions.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("ix_employees_employee_number", "employees", ["employee_number"], unique=True)
    op.create_index("ix_employees_department_id", "employees", ["department_id"])
    op.create_index("ix_employees_position_id", "employees", ["position_id"])

    # appraisal engine
    op.create_table(
        "appraisal_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("template_type", sa.String(30), nullable=False),
        sa.Column("rating_scale", JSON, nullable=False),
        sa.Column("criteria", JSON, nullable=False),
        sa.Column("applicable_department_ids", JSON, nullable=False),
        sa.Column("applicable_position_ids", JSON, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_appraisal_templates_name"),
        sa.CheckConstraint(
            "template_type IN ('ANNUAL','SEMI_ANNUAL','PROBATIONARY','PROJECT')",
            name="ck_appraisal_templates_type",
        ),
    )

    op.create_table(
        "appraisal_cycles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("cycle_type", sa.String(30), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PLANNED"),
        sa.Column("manager_due_date", sa.Date(), nullable=True),
        sa.Column("employee_acknowledgement_due_date", sa.Date(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('PLANNED','ACTIVE','CLOSED')", name="ck_appraisal_cycles_status"),
        sa.CheckConstraint(
            "cycle_type IN ('ANNUAL','SEMI_ANNUAL','PROBATIONARY','PROJECT')",
            name="ck_appraisal_cycles_type",
        ),
        sa.CheckConstraint("start_date < end_date", name="ck_appraisal_cycles_dates"),
        sa.CheckConstraint("(status <> 'CLOSED') OR (closed_at IS NOT NULL)", name="ck_appraisal_cycles_closed_ts"),
    )

    op.create_table(
        "cycle_template_bindings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("appraisal_cycles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("template_id", sa.Uuid(), sa.ForeignKey("appraisal_templates.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("department_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("cycle_id", "template_id", "department_id", name="uq_cycle_template_department"),
    )
    op.create_index("ix_cycle_bindings_department", "cycle_template_bindings", ["department_id"])
    op.create_index("ix_cycle_template_bindings_template_id", "cycle_template_bindings", ["template_id"])

    op.create_table(
        "appraisal_assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("appraisal_cycles.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("template_id", sa.Uuid(), sa.ForeignKey("appraisal_templates.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("employee_profile_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("manager_profile_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True),
        sa.Column("department_id", sa.Uuid(), nullable=False),
        sa.Column("position_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="NOT_STARTED"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("latest_appraisal_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "employee_profile_id", "cycle_id", "template_id", name="uq_assignment_employee_cycle_template"
        ),
        sa.CheckConstraint(
            "status IN ('NOT_STARTED','IN_PROGRESS','SUBMITTED','PUBLISHED','ACKNOWLEDGED')",
            name="ck_appraisal_assignments_status",
        ),
    )
    op.create_index("ix_assignments_manager", "appraisal_assignments", ["manager_profile_id"])
    op.create_index("ix_assignments_cycle_department", "appraisal_assignments", ["cycle_id", "department_id"])
    op.create_index("ix_appraisal_assignments_employee_profile_id", "appraisal_assignments", ["employee_profile_id"])

    op.create_table(
        "appraisal_records",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("assignment_id", sa.Uuid(), sa.ForeignKey("appraisal_assignments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("appraisal_cycles.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("template_id", sa.Uuid(), sa.ForeignKey("appraisal_templates.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("employee_profile_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("manager_profile_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("ratings", JSON, nullable=False),
        sa.Column("total_score", sa.Float(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="MANAGER_SUBMITTED"),
        sa.Column("manager_submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("hr_published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by_employee_id", sa.Uuid(), nullable=True),
        sa.Column("employee_acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("employee_acknowledgement_comment", sa.Text(), nullable=True),
        sa.UniqueConstraint("assignment_id", name="uq_appraisal_records_assignment"),
        sa.CheckConstraint("status IN ('MANAGER_SUBMITTED','HR_PUBLISHED')", name="ck_appraisal_records_status"),
        sa.CheckConstraint(
            "(status <> 'HR_PUBLISHED') OR (hr_published_at IS NOT NULL)", name="ck_record_ts_published"
        ),
        sa.CheckConstraint(
            "(employee_acknowledged_at IS NULL) OR (status = 'HR_PUBLISHED')", name="ck_record_ts_acknowledged"
        ),
    )
    op.create_index("ix_appraisal_records_cycle_id", "appraisal_records", ["cycle_id"])
    op.create_index("ix_appraisal_records_employee_profile_id", "appraisal_records", ["employee_profile_id"])

    op.create_table(
        "appraisal_disputes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("appraisal_id", sa.Uuid(), sa.ForeignKey("appraisal_records.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("assignment_id", sa.Uuid(), sa.ForeignKey("appraisal_assignments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("cycle_id", sa.Uuid(), sa.ForeignKey("appraisal_cycles.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("raised_by_employee_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("reason", sa.String(500), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
        sa.Column("resolved_by_employee_id", sa.Uuid(), nullable=True),
        sa.Column("resolution_summary", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('OPEN','UNDER_REVIEW','RESOLVED','REJECTED')", name="ck_appraisal_disputes_status"
        ),
        sa.CheckConstraint(
            "(status IN ('OPEN','UNDER_REVIEW')) OR (resolved_at IS NOT NULL)", name="ck_dispute_ts_resolved"
        ),
    )
    op.create_index("ix_appraisal_disputes_cycle_id", "appraisal_disputes", ["cycle_id"])
    op.create_index(
        "uq_disputes_active_per_appraisal",
        "appraisal_disputes",
        ["appraisal_id"],
        unique=True,
        postgresql_where=ACTIVE_DISPUTE,
        sqlite_where=ACTIVE_DISPUTE,
    )

    op.create_table(
        "employee_appraisal_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("record_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("cycle_id", sa.Uuid(), nullable=False),
        sa.Column("template_id", sa.Uuid(), nullable=False),
        sa.Column("appraisal_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("template_type", sa.String(30), nullable=True),
        sa.Column("rating_scale_type", sa.String(30), nullable=True),
        sa.Column("total_score", sa.Float(), nullable=False),
    )
    op.create_index("ix_employee_appraisal_history_employee_id", "employee_appraisal_history", ["employee_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("actor_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("event_metadata", JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("employee_appraisal_history")
    op.drop_index("uq_disputes_active_per_appraisal", table_name="appraisal_disputes")
    op.drop_table("appraisal_disputes")
    op.drop_table("appraisal_records")
    op.drop_table("appraisal_assignments")
    op.drop_table("cycle_template_bindings")
    op.drop_table("appraisal_cycles")
    op.drop_table("appraisal_templates")
    op.drop_table("employees")
    op.drop_table("positions")
    op.drop_table("departments")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_table("users")
