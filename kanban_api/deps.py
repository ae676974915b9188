from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.db import SessionLocal
from kanban_api.models import Board, ChecklistItem, Column, Comment, Task, User
from kanban_api.security import TokenError, decode_access_token

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def get_db() -> AsyncIterator[AsyncSession]:
  async with SessionLocal() as session:
    try:
      yield session
    except Exception:
      await session.rollback()
      raise


def _unauthorized(detail: str) -> HTTPException:
  return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers=_BEARER_CHALLENGE)


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
  auth = request.headers.get("authorization")
  if not auth:
    raise _unauthorized("Not authenticated")
  scheme, _, token = auth.partition(" ")
  token = token.strip()
  if scheme.lower() != "bearer" or not token:
    raise _unauthorized("Invalid authorization header")
  try:
    claims = decode_access_token(token)
  except TokenError as exc:
    raise _unauthorized(str(exc)) from exc

  res = await db.execute(select(User).where(User.id == str(claims["sub"])))
  u = res.scalar_one_or_none()
  if not u:
    raise _unauthorized("User not found")
  return u


async def require_admin(user: User = Depends(get_current_user)) -> User:
  if user.role != "admin":
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
  return user


def can_access_board(board: Board, user: User) -> bool:
  return board.owner_id == user.id or user.role == "admin"


async def get_owned_board(board_id: str, user: User, db: AsyncSession) -> Board:
  res = await db.execute(select(Board).where(Board.id == board_id))
  b = res.scalar_one_or_none()
  if not b:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Board not found")
  if not can_access_board(b, user):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this board")
  return b


async def get_owned_column(column_id: str, user: User, db: AsyncSession) -> tuple[Column, Board]:
  res = await db.execute(select(Column, Board).join(Board, Board.id == Column.board_id).where(Column.id == column_id))
  row = res.one_or_none()
  if not row:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Column not found")
  c, b = row
  if not can_access_board(b, user):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this column")
  return c, b


async def get_owned_task(task_id: str, user: User, db: AsyncSession) -> tuple[Task, Column, Board]:
  res = await db.execute(
    select(Task, Column, Board)
    .join(Column, Column.id == Task.column_id)
    .join(Board, Board.id == Column.board_id)
    .where(Task.id == task_id)
  )
  row = res.one_or_none()
  if not row:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
  t, c, b = row
  if not can_access_board(b, user):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this task")
  return t, c, b


async def get_owned_comment(comment_id: str, user: User, db: AsyncSession) -> tuple[Comment, Task, Board]:
  res = await db.execute(
    select(Comment, Task, Board)
    .join(Task, Task.id == Comment.task_id)
    .join(Column, Column.id == Task.column_id)
    .join(Board, Board.id == Column.board_id)
    .where(Comment.id == comment_id)
  )
  row = res.one_or_none()
  if not row:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
  cm, t, b = row
  if not can_access_board(b, user):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this comment")
  return cm, t, b


async def get_owned_checklist_item(item_id: str, user: User, db: AsyncSession) -> tuple[ChecklistItem, Task, Board]:
  res = await db.execute(
    select(ChecklistItem, Task, Board)
    .join(Task, Task.id == ChecklistItem.task_id)
    .join(Column, Column.id == Task.column_id)
    .join(Board, Board.id == Column.board_id)
    .where(ChecklistItem.id == item_id)
  )
  row = res.one_or_none()
  if not row:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Checklist item not found")
  i, t, b = row
  if not can_access_board(b, user):
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this checklist item")
  return i, t, b


def client_ip(request: Request) -> str:
  return request.client.host if request.client else "unknown"
