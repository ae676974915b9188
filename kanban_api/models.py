from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def new_id() -> str:
  return str(uuid.uuid4())


ID = String(36)
JsonType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
  """Timezone-aware UTC datetimes on every backend (SQLite drops the offset on the way in)."""

  impl = DateTime(timezone=True)
  cache_ok = True

  def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
    if value is not None and value.tzinfo is not None:
      value = value.astimezone(timezone.utc)
    return value

  def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
    if value is not None and value.tzinfo is None:
      value = value.replace(tzinfo=timezone.utc)
    return value


PRIORITIES = ("low", "medium", "high")
ROLES = ("admin", "member")


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True, index=True)
  name: Mapped[str] = mapped_column(String(120), nullable=False)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  role: Mapped[str] = mapped_column(String(16), nullable=False, default="member")
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Board(Base):
  __tablename__ = "boards"

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  name: Mapped[str] = mapped_column(String(120), nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  owner_id: Mapped[str] = mapped_column(ID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Column(Base):
  __tablename__ = "columns"
  __table_args__ = (Index("ix_columns_board_pos", "board_id", "position"),)

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  board_id: Mapped[str] = mapped_column(ID, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False)
  name: Mapped[str] = mapped_column(String(120), nullable=False)
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Task(Base):
  __tablename__ = "tasks"
  __table_args__ = (Index("ix_tasks_column_pos", "column_id", "position"),)

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  column_id: Mapped[str] = mapped_column(ID, ForeignKey("columns.id", ondelete="CASCADE"), nullable=False)
  title: Mapped[str] = mapped_column(String(200), nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  priority: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  assignee_id: Mapped[str | None] = mapped_column(ID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
  creator_id: Mapped[str] = mapped_column(ID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Comment(Base):
  __tablename__ = "comments"

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  task_id: Mapped[str] = mapped_column(ID, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
  author_id: Mapped[str] = mapped_column(ID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  body: Mapped[str] = mapped_column(Text, nullable=False)
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class ChecklistItem(Base):
  __tablename__ = "checklist_items"
  __table_args__ = (Index("ix_checklist_items_task_pos", "task_id", "position"),)

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  task_id: Mapped[str] = mapped_column(ID, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
  text: Mapped[str] = mapped_column(Text, nullable=False)
  done: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class ActivityEvent(Base):
  __tablename__ = "activity_events"

  id: Mapped[str] = mapped_column(ID, primary_key=True, default=new_id)
  board_id: Mapped[str] = mapped_column(ID, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True)
  task_id: Mapped[str | None] = mapped_column(ID, nullable=True, index=True)
  actor_id: Mapped[str | None] = mapped_column(ID, nullable=True)
  action: Mapped[str] = mapped_column(String(64), nullable=False)
  entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
  entity_id: Mapped[str | None] = mapped_column(ID, nullable=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)
  created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
