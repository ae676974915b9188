from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api import ordering
from kanban_api.activity import record_activity
from kanban_api.deps import get_current_user, get_db, get_owned_board, get_owned_column
from kanban_api.models import ChecklistItem, Column, Comment, Task, User
from kanban_api.schemas import ColumnCreateIn, ColumnOut, ColumnReorderIn, ColumnUpdateIn

router = APIRouter(tags=["columns"])


def column_out(c: Column, task_count: int = 0) -> ColumnOut:
  return ColumnOut(
    id=c.id,
    boardId=c.board_id,
    name=c.name,
    position=c.position,
    taskCount=int(task_count or 0),
    createdAt=c.created_at,
    updatedAt=c.updated_at,
  )


async def columns_with_counts(db: AsyncSession, board_id: str) -> list[ColumnOut]:
  res = await db.execute(
    select(Column, func.count(Task.id))
    .outerjoin(Task, Task.column_id == Column.id)
    .where(Column.board_id == board_id)
    .group_by(Column.id)
    .order_by(Column.position.asc(), Column.created_at.asc(), Column.id.asc())
  )
  return [column_out(c, n) for c, n in res.all()]


async def _task_count(db: AsyncSession, column_id: str) -> int:
  res = await db.execute(select(func.count()).select_from(Task).where(Task.column_id == column_id))
  return res.scalar_one() or 0


async def delete_column_everything(db: AsyncSession, *, column_id: str) -> None:
  task_ids = select(Task.id).where(Task.column_id == column_id)
  await db.execute(delete(Comment).where(Comment.task_id.in_(task_ids)))
  await db.execute(delete(ChecklistItem).where(ChecklistItem.task_id.in_(task_ids)))
  await db.execute(delete(Task).where(Task.column_id == column_id))
  await db.execute(delete(Column).where(Column.id == column_id))


@router.get("/boards/{board_id}/columns", response_model=list[ColumnOut])
async def list_columns(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ColumnOut]:
  await get_owned_board(board_id, user, db)
  return await columns_with_counts(db, board_id)


@router.post("/boards/{board_id}/columns", response_model=ColumnOut, status_code=status.HTTP_201_CREATED)
async def create_column(
  board_id: str,
  payload: ColumnCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ColumnOut:
  b = await get_owned_board(board_id, user, db)
  pos = await ordering.insert_at(db, Column, Column.board_id, b.id, payload.position)
  c = Column(board_id=b.id, name=payload.name, position=pos)
  db.add(c)
  await db.flush()
  await record_activity(
    db,
    board_id=b.id,
    action="column.created",
    entity_type="Column",
    entity_id=c.id,
    actor_id=user.id,
    payload={"name": c.name, "position": c.position},
  )
  await db.commit()
  return column_out(c)


@router.post("/boards/{board_id}/columns/reorder", response_model=list[ColumnOut])
async def reorder_columns(
  board_id: str,
  payload: ColumnReorderIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[ColumnOut]:
  await get_owned_board(board_id, user, db)
  res = await db.execute(select(Column).where(Column.board_id == board_id))
  ordering.reorder_all(res.scalars().all(), payload.columnIds)
  await record_activity(
    db,
    board_id=board_id,
    action="columns.reordered",
    entity_type="Board",
    entity_id=board_id,
    actor_id=user.id,
    payload={"columnIds": payload.columnIds},
  )
  await db.commit()
  return await columns_with_counts(db, board_id)


@router.patch("/columns/{column_id}", response_model=ColumnOut)
async def update_column(
  column_id: str,
  payload: ColumnUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ColumnOut:
  c, b = await get_owned_column(column_id, user, db)
  changed: dict = {}
  if payload.name is not None and payload.name != c.name:
    c.name = payload.name
    changed["name"] = c.name
  if payload.position is not None:
    old = c.position
    new = await ordering.move_within(db, Column, Column.board_id, c, payload.position)
    if new != old:
      changed["position"] = {"from": old, "to": new}

  if changed:
    await record_activity(
      db,
      board_id=b.id,
      action="column.updated",
      entity_type="Column",
      entity_id=c.id,
      actor_id=user.id,
      payload=changed,
    )
  await db.commit()
  return column_out(c, await _task_count(db, c.id))


@router.delete("/columns/{column_id}")
async def delete_column(column_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  c, b = await get_owned_column(column_id, user, db)
  name, pos = c.name, c.position
  await delete_column_everything(db, column_id=column_id)
  await ordering.close_gap(db, Column, Column.board_id, b.id, pos)
  await record_activity(
    db,
    board_id=b.id,
    action="column.deleted",
    entity_type="Column",
    entity_id=column_id,
    actor_id=user.id,
    payload={"name": name},
  )
  await db.commit()
  return {"ok": True}
