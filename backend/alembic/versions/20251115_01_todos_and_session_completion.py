"""Add the to-do list and study session completion time.

Revision ID: 20251115_01_todos_and_session_completion
Revises: 20251101_01_initial_schema
Create Date: 2025-11-15 09:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "20251115_01_todos_and_session_completion"
down_revision = "20251101_01_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("study_sessions") as batch_op:
        batch_op.add_column(sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True))

    op.create_table(
        "todo_items",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column(
            "plan_id",
            sa.String(length=36),
            sa.ForeignKey("study_plans.id", ondelete="SET NULL", name="fk_todo_items_plan_id_study_plans"),
            nullable=True,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("priority", sa.String(length=16), nullable=False, server_default="medium"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_todo_items_username", "todo_items", ["username"])


def downgrade() -> None:
    op.drop_index("ix_todo_items_username", table_name="todo_items")
    op.drop_table("todo_items")
    with op.batch_alter_table("study_sessions") as batch_op:
        batch_op.drop_column("completed_at")
