"""Initial MindFlow schema: plans, progress ledger, journals and audit trail."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20251101_01_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "study_plans",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("subject", sa.String(length=128), nullable=False),
        sa.Column("custom_subject", sa.String(length=128), nullable=True),
        sa.Column("knowledge_level", sa.String(length=16), nullable=False),
        sa.Column("energy_time", sa.String(length=16), nullable=False),
        sa.Column("available_hours", sa.Float(), nullable=False),
        sa.Column("challenges", sa.JSON(), nullable=False),
        sa.Column("raw_tasks", sa.Text(), nullable=False),
        sa.Column("deadline", sa.String(length=64), nullable=True),
        sa.Column("source", sa.String(length=16), nullable=False),
        sa.Column("used_fallback", sa.Boolean(), nullable=False),
        sa.Column("fallback_reason", sa.Text(), nullable=True),
        sa.Column("personalized_message", sa.Text(), nullable=True),
        sa.Column("adaptations", sa.JSON(), nullable=False),
        sa.Column("last_emotion", sa.String(length=32), nullable=True),
        sa.Column(
            "regenerated_from_id",
            sa.String(length=36),
            sa.ForeignKey("study_plans.id", ondelete="SET NULL", name="fk_study_plans_regenerated_from_id_study_plans"),
            nullable=True,
        ),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_study_plans_username_generated", "study_plans", ["username", "generated_at"])

    op.create_table(
        "study_plan_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column(
            "plan_id",
            sa.String(length=36),
            sa.ForeignKey("study_plans.id", ondelete="CASCADE", name="fk_study_plan_items_plan_id_study_plans"),
            nullable=False,
        ),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(length=16), nullable=True),
        sa.Column("focus", sa.Text(), nullable=True),
        sa.Column("tip", sa.Text(), nullable=True),
        sa.Column("subject", sa.String(length=128), nullable=True),
        sa.Column("activity", sa.Text(), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("plan_id", "item_id", name="uq_study_plan_items_plan_item"),
    )
    op.create_index("ix_study_plan_items_plan", "study_plan_items", ["plan_id"])

    op.create_table(
        "progress_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("username", "sequence", name="uq_progress_events_username_sequence"),
    )
    op.create_index("ix_progress_events_username", "progress_events", ["username"])

    op.create_table(
        "emotion_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("emotion", sa.String(length=32), nullable=False),
        sa.Column("intensity", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_emotion_entries_username", "emotion_entries", ["username"])

    op.create_table(
        "study_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column(
            "plan_id",
            sa.String(length=36),
            sa.ForeignKey("study_plans.id", ondelete="SET NULL", name="fk_study_sessions_plan_id_study_plans"),
            nullable=True,
        ),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("focus_level", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_study_sessions_username", "study_sessions", ["username"])

    op.create_table(
        "custom_subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("base_minutes", sa.Integer(), nullable=False),
        sa.UniqueConstraint("username", "name", name="uq_custom_subjects_username_name"),
    )

    op.create_table(
        "persistence_audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=128), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_persistence_audit_events_username", "persistence_audit_events", ["username"])


def downgrade() -> None:
    op.drop_index("ix_persistence_audit_events_username", table_name="persistence_audit_events")
    op.drop_table("persistence_audit_events")
    op.drop_table("custom_subjects")
    op.drop_index("ix_study_sessions_username", table_name="study_sessions")
    op.drop_table("study_sessions")
    op.drop_index("ix_emotion_entries_username", table_name="emotion_entries")
    op.drop_table("emotion_entries")
    op.drop_index("ix_progress_events_username", table_name="progress_events")
    op.drop_table("progress_events")
    op.drop_index("ix_study_plan_items_plan", table_name="study_plan_items")
    op.drop_table("study_plan_items")
    op.drop_index("ix_study_plans_username_generated", table_name="study_plans")
    op.drop_table("study_plans")
