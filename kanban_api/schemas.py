from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

Priority = Literal["low", "medium", "high"]
Role = Literal["admin", "member"]
TaskSort = Literal["position", "createdAt", "updatedAt", "priority"]


def _strip_required(value: object) -> object:
  if isinstance(value, str):
    value = value.strip()
    if not value:
      raise ValueError("must not be blank")
  return value


class UserOut(BaseModel):
  id: str
  email: str
  name: str
  role: Role
  createdAt: datetime


class RegisterIn(BaseModel):
  email: str = Field(min_length=3, max_length=320)
  password: str = Field(min_length=8, max_length=200)
  name: str = Field(min_length=1, max_length=120)

  @field_validator("email")
  @classmethod
  def _email_shape(cls, v: str) -> str:
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
      raise ValueError("must be a valid email address")
    return v

  _name = field_validator("name", mode="before")(_strip_required)


class LoginIn(BaseModel):
  email: str
  password: str


class AuthOut(BaseModel):
  user: UserOut
  token: str
  tokenType: str = "bearer"
  expiresAt: datetime


class UserSelfUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=120)
  password: str | None = Field(default=None, min_length=8, max_length=200)


class UserRoleIn(BaseModel):
  role: Role


class BoardCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=120)
  description: str | None = Field(default=None, max_length=2000)
  columns: list[str] = Field(default_factory=list, max_length=50)

  _name = field_validator("name", mode="before")(_strip_required)

  @field_validator("columns")
  @classmethod
  def _column_names(cls, v: list[str]) -> list[str]:
    out = [c.strip() for c in v]
    if any(not c or len(c) > 120 for c in out):
      raise ValueError("column names must be 1-120 characters")
    return out


class BoardUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=120)
  description: str | None = Field(default=None, max_length=2000)

  _name = field_validator("name", mode="before")(_strip_required)


class ColumnCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=120)
  position: int | None = Field(default=None, ge=0)

  _name = field_validator("name", mode="before")(_strip_required)


class ColumnUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=120)
  position: int | None = Field(default=None, ge=0)

  _name = field_validator("name", mode="before")(_strip_required)


class ColumnReorderIn(BaseModel):
  columnIds: list[str]


class ColumnOut(BaseModel):
  id: str
  boardId: str
  name: str
  position: int
  taskCount: int = 0
  createdAt: datetime
  updatedAt: datetime


class BoardOut(BaseModel):
  id: str
  name: str
  description: str | None = None
  ownerId: str
  createdAt: datetime
  updatedAt: datetime


class BoardDetailOut(BoardOut):
  columns: list[ColumnOut] = Field(default_factory=list)


class TaskCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=200)
  description: str = Field(default="", max_length=10000)
  priority: Priority = "medium"
  assigneeId: str | None = None
  position: int | None = Field(default=None, ge=0)

  _title = field_validator("title", mode="before")(_strip_required)


class TaskUpdateIn(BaseModel):
  title: str | None = Field(default=None, min_length=1, max_length=200)
  description: str | None = Field(default=None, max_length=10000)
  priority: Priority | None = None
  assigneeId: str | None = None
  columnId: str | None = None
  position: int | None = Field(default=None, ge=0)

  _title = field_validator("title", mode="before")(_strip_required)


class TaskMoveIn(BaseModel):
  columnId: str
  position: int | None = Field(default=None, ge=0)


class TaskOut(BaseModel):
  id: str
  columnId: str
  boardId: str
  title: str
  description: str
  priority: Priority
  position: int
  assigneeId: str | None = None
  creatorId: str
  commentCount: int = 0
  createdAt: datetime
  updatedAt: datetime


class CommentCreateIn(BaseModel):
  body: str = Field(min_length=1, max_length=5000)

  _body = field_validator("body", mode="before")(_strip_required)


class CommentOut(BaseModel):
  id: str
  taskId: str
  authorId: str
  authorName: str
  body: str
  createdAt: datetime
  updatedAt: datetime


class ChecklistCreateIn(BaseModel):
  text: str = Field(min_length=1, max_length=500)
  position: int | None = Field(default=None, ge=0)

  _text = field_validator("text", mode="before")(_strip_required)


class ChecklistUpdateIn(BaseModel):
  text: str | None = Field(default=None, min_length=1, max_length=500)
  done: bool | None = None
  position: int | None = Field(default=None, ge=0)

  _text = field_validator("text", mode="before")(_strip_required)


class ChecklistOut(BaseModel):
  id: str
  taskId: str
  text: str
  done: bool
  position: int
  createdAt: datetime
  updatedAt: datetime


class ColumnTaskCount(BaseModel):
  columnId: str
  columnName: str
  taskCount: int


class ChecklistProgress(BaseModel):
  total: int
  done: int


class BoardAnalyticsOut(BaseModel):
  boardId: str
  totalTasks: int
  unassignedTasks: int
  tasksByPriority: dict[str, int]
  tasksByColumn: list[ColumnTaskCount]
  checklistItems: ChecklistProgress
  recentActivityCount: int
  recentActivityDays: int


class ActivityOut(BaseModel):
  id: str
  boardId: str
  taskId: str | None = None
  actorId: str | None = None
  action: str
  entityType: str
  entityId: str | None = None
  payload: dict[str, Any] = Field(default_factory=dict)
  createdAt: datetime


class PaginationOut(BaseModel):
  page: int
  limit: int
  total: int
  totalPages: int
  hasMore: bool


class TaskPageOut(BaseModel):
  data: list[TaskOut]
  pagination: PaginationOut


class UserPageOut(BaseModel):
  data: list[UserOut]
  pagination: PaginationOut


class ActivityPageOut(BaseModel):
  data: list[ActivityOut]
  pagination: PaginationOut
