"""initial_logistics_schema

Profiles and roles, suppliers, tasks with their requirements and
submissions, checklist templates and fields, the document library and
the outbound e-mail log.

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0a1b2c3d4e5f"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "profiles" not in existing_tables:
        op.create_table(
            "profiles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("first_name", sa.String(length=100), nullable=True),
            sa.Column("last_name", sa.String(length=100), nullable=True),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("department", sa.String(length=100), nullable=True),
            sa.Column("avatar_url", sa.String(length=500), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id"),
        )

    if "suppliers" not in existing_tables:
        op.create_table(
            "suppliers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )

    if "checklist_templates" not in existing_tables:
        op.create_table(
            "checklist_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("layout_config", sa.JSON(), nullable=True),
            sa.Column("created_by", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )

    if "checklist_template_fields" not in existing_tables:
        op.create_table(
            "checklist_template_fields",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("template_id", sa.Integer(), nullable=False),
            sa.Column("field_name", sa.String(length=120), nullable=False),
            sa.Column("field_label", sa.String(length=300), nullable=True),
            sa.Column("field_type", sa.String(length=20), nullable=False),
            sa.Column("is_required", sa.Boolean(), nullable=True),
            sa.Column("options", sa.JSON(), nullable=True),
            sa.Column("placeholder", sa.String(length=300), nullable=True),
            sa.Column("help_text", sa.Text(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(["template_id"], ["checklist_templates.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("template_id", "field_name", name="uq_template_field_name"),
        )
        op.create_index(
            "ix_checklist_template_fields_template_id", "checklist_template_fields", ["template_id"],
        )

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("customer_name", sa.String(length=200), nullable=False),
            sa.Column("delivery_address", sa.Text(), nullable=False),
            sa.Column("product_name", sa.String(length=200), nullable=False),
            sa.Column("supplier", sa.String(length=200), nullable=True),
            sa.Column("number_of_bags", sa.Integer(), nullable=True),
            sa.Column("bag_weight", sa.Float(), nullable=True),
            sa.Column("docket_number", sa.String(length=100), nullable=True),
            sa.Column("vehicle_type", sa.String(length=10), nullable=True),
            sa.Column("haulier_tanker", sa.String(length=200), nullable=True),
            sa.Column("planned_decant_date", sa.Date(), nullable=True),
            sa.Column("planned_delivery_date", sa.Date(), nullable=True),
            sa.Column("assigned_driver_id", sa.Integer(), nullable=True),
            sa.Column("assigned_driver_name", sa.String(length=200), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="new"),
            sa.Column("created_by", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["assigned_driver_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tasks_assigned_driver_id", "tasks", ["assigned_driver_id"])
        op.create_index("ix_tasks_status", "tasks", ["status"])

    if "task_attachments" not in existing_tables:
        op.create_table(
            "task_attachments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("task_id", sa.Integer(), nullable=False),
            sa.Column("attachment_type", sa.String(length=20), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("checklist_template_id", sa.Integer(), nullable=True),
            sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("assigned_to", sa.String(length=20), nullable=False, server_default="transport"),
            sa.Column("created_by", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["checklist_template_id"], ["checklist_templates.id"]),
            sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_task_attachments_task_id", "task_attachments", ["task_id"])
        op.create_index(
            "ix_task_attachments_checklist_template_id", "task_attachments", ["checklist_template_id"],
        )

    if "task_submissions" not in existing_tables:
        op.create_table(
            "task_submissions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("task_attachment_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="submitted"),
            sa.Column("form_data", sa.JSON(), nullable=True),
            sa.Column("file_path", sa.String(length=500), nullable=True),
            sa.Column("file_name", sa.String(length=300), nullable=True),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("mime_type", sa.String(length=150), nullable=True),
            sa.Column("submitted_by", sa.Integer(), nullable=True),
            sa.Column("submitted_by_name", sa.String(length=200), nullable=True),
            sa.Column("reviewed_by", sa.Integer(), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("reviewer_comments", sa.Text(), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["task_attachment_id"], ["task_attachments.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["submitted_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["reviewed_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_task_submissions_task_attachment_id", "task_submissions", ["task_attachment_id"],
        )
        op.create_index("ix_task_submissions_created_at", "task_submissions", ["created_at"])

    if "documents" not in existing_tables:
        op.create_table(
            "documents",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("file_path", sa.String(length=500), nullable=False),
            sa.Column("file_name", sa.String(length=300), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("mime_type", sa.String(length=150), nullable=True),
            sa.Column("department", sa.String(length=100), nullable=False),
            sa.Column("policy_area", sa.String(length=100), nullable=True),
            sa.Column("responsible_role", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("version", sa.String(length=20), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("document_date", sa.Date(), nullable=True),
            sa.Column("uploaded_by", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["uploaded_by"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("file_path"),
        )
        op.create_index("ix_documents_department", "documents", ["department"])

    if "email_logs" not in existing_tables:
        op.create_table(
            "email_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("recipient_email", sa.String(length=255), nullable=False),
            sa.Column("recipient_name", sa.String(length=150), nullable=True),
            sa.Column("subject", sa.String(length=500), nullable=False),
            sa.Column("template_name", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("submission_id", sa.Integer(), nullable=True),
            sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_email_logs_recipient_email", "email_logs", ["recipient_email"])
        op.create_index("ix_email_logs_submission_id", "email_logs", ["submission_id"])


def downgrade():
    for table in (
        "email_logs",
        "documents",
        "task_submissions",
        "task_attachments",
        "tasks",
        "checklist_template_fields",
        "checklist_templates",
        "suppliers",
        "user_roles",
        "profiles",
    ):
        op.drop_table(table)
