"""checklist items

Revision ID: 0002_checklist_items
Revises: 0001_init
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_checklist_items"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "checklist_items",
    sa.Column("id", sa.String(36), primary_key=True),
    sa.Column("task_id", sa.String(36), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False),
    sa.Column("text", sa.Text(), nullable=False),
    sa.Column("done", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("position", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_checklist_items_task_pos", "checklist_items", ["task_id", "position"], unique=False)


def downgrade() -> None:
  op.drop_index("ix_checklist_items_task_pos", table_name="checklist_items")
  op.drop_table("checklist_items")
