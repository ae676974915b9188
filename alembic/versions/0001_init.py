"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

ID = sa.String(36)
JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
  op.create_table(
    "users",
    sa.Column("id", ID, primary_key=True),
    sa.Column("email", sa.String(320), nullable=False),
    sa.Column("name", sa.String(120), nullable=False),
    sa.Column("password_hash", sa.String(), nullable=False),
    sa.Column("role", sa.String(16), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_users_email", "users", ["email"], unique=True)

  op.create_table(
    "boards",
    sa.Column("id", ID, primary_key=True),
    sa.Column("name", sa.String(120), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("owner_id", ID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_boards_owner_id", "boards", ["owner_id"], unique=False)

  op.create_table(
    "columns",
    sa.Column("id", ID, primary_key=True),
    sa.Column("board_id", ID, sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
    sa.Column("name", sa.String(120), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_columns_board_pos", "columns", ["board_id", "position"], unique=False)

  op.create_table(
    "tasks",
    sa.Column("id", ID, primary_key=True),
    sa.Column("column_id", ID, sa.ForeignKey("columns.id", ondelete="CASCADE"), nullable=False),
    sa.Column("title", sa.String(200), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("priority", sa.String(16), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("assignee_id", ID, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    sa.Column("creator_id", ID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_tasks_column_pos", "tasks", ["column_id", "position"], unique=False)
  op.create_index("ix_tasks_creator_id", "tasks", ["creator_id"], unique=False)

  op.create_table(
    "comments",
    sa.Column("id", ID, primary_key=True),
    sa.Column("task_id", ID, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    sa.Column("author_id", ID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    sa.Column("body", sa.Text(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_comments_task_id", "comments", ["task_id"], unique=False)
  op.create_index("ix_comments_author_id", "comments", ["author_id"], unique=False)

  op.create_table(
    "activity_events",
    sa.Column("id", ID, primary_key=True),
    sa.Column("board_id", ID, sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
    sa.Column("task_id", ID, nullable=True),
    sa.Column("actor_id", ID, nullable=True),
    sa.Column("action", sa.String(64), nullable=False),
    sa.Column("entity_type", sa.String(32), nullable=False),
    sa.Column("entity_id", ID, nullable=True),
    sa.Column("payload", JSON, nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_activity_events_board_id", "activity_events", ["board_id"], unique=False)
  op.create_index("ix_activity_events_task_id", "activity_events", ["task_id"], unique=False)


def downgrade() -> None:
  op.drop_table("activity_events")
  op.drop_table("comments")
  op.drop_table("tasks")
  op.drop_table("columns")
  op.drop_table("boards")
  op.drop_table("users")
