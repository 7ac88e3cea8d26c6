"""initial_approval_workflow

Create users, manufacturing projects, per-location approvals, the
append-only project history, scheduled job ledger and email log.

Revision ID: a1f3c9d2e7b0
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1f3c9d2e7b0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("display_name", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("role", sa.String(length=30), nullable=False, server_default="vertrieb"),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("ix_users_role_active", "users", ["role", "active"])

    if "manufacturing_projects" not in existing_tables:
        op.create_table(
            "manufacturing_projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_number", sa.Integer(), nullable=False),
            sa.Column("customer", sa.String(length=200), nullable=False),
            sa.Column("customer_id", sa.String(length=36), nullable=True),
            sa.Column("article_number", sa.String(length=100), nullable=False),
            sa.Column("article_description", sa.String(length=300), nullable=False, server_default=""),
            sa.Column("article_id", sa.String(length=36), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("product_group", sa.String(length=100), nullable=True),
            sa.Column("price", sa.Float(), nullable=True),
            sa.Column("total_quantity", sa.Float(), nullable=False, comment="Gesamtmenge in kg"),
            sa.Column("quantity_fixed", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("first_delivery", sa.Date(), nullable=True),
            sa.Column("last_delivery", sa.Date(), nullable=True),
            sa.Column("location_distribution", sa.JSON(), nullable=False),
            sa.Column("status", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            sa.Column("created_by_id", sa.String(length=36), nullable=True),
            sa.Column("created_by_name", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_number"),
        )
        op.create_index("idx_mproj_status_archived", "manufacturing_projects", ["status", "archived"])
        op.create_index("idx_mproj_creator", "manufacturing_projects", ["created_by_id"])
        op.create_index("idx_mproj_last_delivery", "manufacturing_projects", ["last_delivery"])

    if "project_location_approvals" not in existing_tables:
        op.create_table(
            "project_location_approvals",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("location", sa.String(length=30), nullable=False),
            sa.Column("required", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("approved_by_id", sa.String(length=36), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["manufacturing_projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "location", name="uq_location_approval_project_location"),
        )
        op.create_index(
            "ix_project_location_approvals_project_id", "project_location_approvals", ["project_id"],
        )

    if "project_history" not in existing_tables:
        op.create_table(
            "project_history",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("user_name", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("action", sa.String(length=30), nullable=False),
            sa.Column("previous_status", sa.String(length=60), nullable=True),
            sa.Column("new_status", sa.String(length=60), nullable=True),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("old_data", sa.JSON(), nullable=True),
            sa.Column("new_data", sa.JSON(), nullable=True),
            sa.Column("location", sa.String(length=30), nullable=True),
            sa.Column("operation_id", sa.String(length=100), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["manufacturing_projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "operation_id", name="uq_history_project_operation"),
        )
        op.create_index("idx_history_project_created", "project_history", ["project_id", "created_at"])
        op.create_index("idx_history_user", "project_history", ["user_id"])

    if "scheduled_jobs" not in existing_tables:
        op.create_table(
            "scheduled_jobs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("job_name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("schedule_type", sa.String(length=30), nullable=True),
            sa.Column("schedule_config", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("is_enabled", sa.Boolean(), nullable=True),
            sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("last_run_status", sa.String(length=20), nullable=True),
            sa.Column("last_run_duration_ms", sa.Integer(), nullable=True),
            sa.Column("last_run_result", sa.JSON(), nullable=True),
            sa.Column("run_count", sa.Integer(), nullable=True),
            sa.Column("error_count", sa.Integer(), nullable=True),
            sa.Column("last_error", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("job_name"),
        )

    if "email_logs" not in existing_tables:
        op.create_table(
            "email_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("recipient_email", sa.String(length=255), nullable=False),
            sa.Column("recipient_name", sa.String(length=200), nullable=True),
            sa.Column("recipient_user_id", sa.String(length=36), nullable=True),
            sa.Column("subject", sa.String(length=500), nullable=False),
            sa.Column("html_body", sa.Text(), nullable=True),
            sa.Column("template_name", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("triggered_by_id", sa.String(length=36), nullable=True),
            sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_email_logs_recipient_email", "email_logs", ["recipient_email"])
        op.create_index("idx_email_log_project", "email_logs", ["project_id"])


def downgrade():
    op.drop_table("email_logs")
    op.drop_table("scheduled_jobs")
    op.drop_table("project_history")
    op.drop_table("project_location_approvals")
    op.drop_table("manufacturing_projects")
    op.drop_table("users")
