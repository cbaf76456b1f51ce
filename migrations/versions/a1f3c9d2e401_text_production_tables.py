"""text_production_tables

Create `projects`, `text_production_runs`, `text_items` and
`text_versions` for the text production workflow.

Revision ID: a1f3c9d2e401
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1f3c9d2e401"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("client_name", sa.String(length=200), nullable=True),
            sa.Column("textit", sa.String(length=20), nullable=False, server_default="NEIN"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "text_production_runs" not in existing_tables:
        op.create_table(
            "text_production_runs",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("started_by_id", sa.String(length=64), nullable=True),
            sa.Column("started_by_name", sa.String(length=255), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(
                "status IN ('PENDING','IN_PROGRESS','COMPLETED')",
                name="ck_text_production_run_status",
            ),
        )
        op.create_index(
            "ix_text_production_runs_project_id",
            "text_production_runs",
            ["project_id"],
            unique=True,
        )

    if "text_items" not in existing_tables:
        op.create_table(
            "text_items",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("run_id", sa.String(length=36), nullable=False),
            sa.Column("content_unit_id", sa.String(length=64), nullable=False),
            sa.Column("content_unit_name", sa.String(length=255), nullable=False),
            sa.Column("bullet_points", sa.Text(), nullable=True),
            sa.Column("bullet_points_captured_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="PENDING"),
            sa.Column("internal_note", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["run_id"], ["text_production_runs.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(
                "status IN ('PENDING','DRAFT','SUBMITTED','REVISION_REQUESTED','APPROVED')",
                name="ck_text_item_status",
            ),
        )
        op.create_index("ix_text_items_run_id", "text_items", ["run_id"])
        op.create_index("ix_text_item_run_status", "text_items", ["run_id", "status"])

    if "text_versions" not in existing_tables:
        op.create_table(
            "text_versions",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("item_id", sa.String(length=36), nullable=False),
            sa.Column("version_number", sa.Integer(), nullable=False),
            sa.Column("content", sa.Text(), nullable=False, server_default=""),
            sa.Column("customer_decision", sa.String(length=30), nullable=True),
            sa.Column("customer_comment", sa.Text(), nullable=True),
            sa.Column("customer_decided_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("author_id", sa.String(length=64), nullable=True),
            sa.Column("author_name", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["item_id"], ["text_items.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("item_id", "version_number", name="uq_text_version_item_number"),
            sa.CheckConstraint("version_number >= 1", name="ck_text_version_number_positive"),
        )
        op.create_index("ix_text_versions_item_id", "text_versions", ["item_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "text_versions" in existing_tables:
        op.drop_index("ix_text_versions_item_id", table_name="text_versions")
        op.drop_table("text_versions")
    if "text_items" in existing_tables:
        op.drop_index("ix_text_item_run_status", table_name="text_items")
        op.drop_index("ix_text_items_run_id", table_name="text_items")
        op.drop_table("text_items")
    if "text_production_runs" in existing_tables:
        op.drop_index("ix_text_production_runs_project_id", table_name="text_production_runs")
        op.drop_table("text_production_runs")
    if "projects" in existing_tables:
        op.drop_table("projects")
