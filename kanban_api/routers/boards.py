from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.activity import record_activity
from kanban_api.deps import get_current_user, get_db, get_owned_board
from kanban_api.models import PRIORITIES, ActivityEvent, Board, ChecklistItem, Column, Comment, Task, User, utcnow
from kanban_api.pagination import LIKE_ESCAPE, contains_pattern
from kanban_api.routers.columns import columns_with_counts
from kanban_api.schemas import (
  BoardAnalyticsOut,
  BoardCreateIn,
  BoardDetailOut,
  BoardOut,
  BoardUpdateIn,
  ChecklistProgress,
  ColumnTaskCount,
)

router = APIRouter(prefix="/boards", tags=["boards"])

RECENT_ACTIVITY_DAYS = 7


def _board_out(b: Board) -> BoardOut:
  return BoardOut(
    id=b.id,
    name=b.name,
    description=b.description,
    ownerId=b.owner_id,
    createdAt=b.created_at,
    updatedAt=b.updated_at,
  )


async def _board_detail(db: AsyncSession, b: Board) -> BoardDetailOut:
  return BoardDetailOut(**_board_out(b).model_dump(), columns=await columns_with_counts(db, b.id))


async def delete_board_everything(db: AsyncSession, *, board_id: str) -> None:
  column_ids = select(Column.id).where(Column.board_id == board_id)
  task_ids = select(Task.id).where(Task.column_id.in_(column_ids))
  await db.execute(delete(Comment).where(Comment.task_id.in_(task_ids)))
  await db.execute(delete(ChecklistItem).where(ChecklistItem.task_id.in_(task_ids)))
  await db.execute(delete(Task).where(Task.column_id.in_(column_ids)))
  await db.execute(delete(Column).where(Column.board_id == board_id))
  await db.execute(delete(ActivityEvent).where(ActivityEvent.board_id == board_id))
  await db.execute(delete(Board).where(Board.id == board_id))


@router.get("", response_model=list[BoardOut])
async def list_boards(
  search: str | None = None,
  all_boards: bool = Query(default=False, alias="all"),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[BoardOut]:
  q = select(Board)
  if all_boards:
    if user.role != "admin":
      raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin required")
  else:
    q = q.where(Board.owner_id == user.id)
  if search:
    like = contains_pattern(search)
    q = q.where(or_(Board.name.ilike(like, escape=LIKE_ESCAPE), Board.description.ilike(like, escape=LIKE_ESCAPE)))
  res = await db.execute(q.order_by(Board.updated_at.desc(), Board.id.asc()))
  return [_board_out(b) for b in res.scalars().all()]


@router.post("", response_model=BoardDetailOut, status_code=status.HTTP_201_CREATED)
async def create_board(payload: BoardCreateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardDetailOut:
  b = Board(name=payload.name, description=payload.description, owner_id=user.id)
  db.add(b)
  await db.flush()
  for idx, name in enumerate(payload.columns):
    db.add(Column(board_id=b.id, name=name, position=idx))

  await record_activity(
    db,
    board_id=b.id,
    action="board.created",
    entity_type="Board",
    entity_id=b.id,
    actor_id=user.id,
    payload={"name": b.name, "columns": payload.columns},
  )
  await db.commit()
  return await _board_detail(db, b)


@router.get("/{board_id}", response_model=BoardDetailOut)
async def get_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardDetailOut:
  b = await get_owned_board(board_id, user, db)
  return await _board_detail(db, b)


@router.api_route("/{board_id}", methods=["PATCH", "PUT"], response_model=BoardOut)
async def update_board(
  board_id: str,
  payload: BoardUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardOut:
  b = await get_owned_board(board_id, user, db)
  fields_set = payload.model_fields_set
  changed: dict = {}
  if "name" in fields_set:
    if payload.name is None:
      raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")
    b.name = payload.name
    changed["name"] = b.name
  if "description" in fields_set:
    b.description = payload.description
    changed["description"] = (b.description or "")[:500]

  if changed:
    await record_activity(
      db,
      board_id=b.id,
      action="board.updated",
      entity_type="Board",
      entity_id=b.id,
      actor_id=user.id,
      payload=changed,
    )
  await db.commit()
  return _board_out(b)


@router.delete("/{board_id}")
async def delete_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  await get_owned_board(board_id, user, db)
  await delete_board_everything(db, board_id=board_id)
  await db.commit()
  return {"ok": True}


@router.get("/{board_id}/analytics", response_model=BoardAnalyticsOut)
async def board_analytics(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardAnalyticsOut:
  """Task distribution, checklist progress and recent activity for one board."""
  b = await get_owned_board(board_id, user, db)
  column_ids = select(Column.id).where(Column.board_id == b.id)

  by_column = [ColumnTaskCount(columnId=c.id, columnName=c.name, taskCount=c.taskCount) for c in await columns_with_counts(db, b.id)]

  pres = await db.execute(select(Task.priority, func.count(Task.id)).where(Task.column_id.in_(column_ids)).group_by(Task.priority))
  by_priority = {p: 0 for p in PRIORITIES}
  for priority, n in pres.all():
    by_priority[priority] = int(n)

  ures = await db.execute(select(func.count(Task.id)).where(Task.column_id.in_(column_ids), Task.assignee_id.is_(None)))
  unassigned = int(ures.scalar_one() or 0)

  task_ids = select(Task.id).where(Task.column_id.in_(column_ids))
  cres = await db.execute(
    select(func.count(ChecklistItem.id), func.sum(case((ChecklistItem.done.is_(True), 1), else_=0))).where(
      ChecklistItem.task_id.in_(task_ids)
    )
  )
  checklist_total, checklist_done = cres.one()

  since = utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
  ares = await db.execute(select(func.count(ActivityEvent.id)).where(ActivityEvent.board_id == b.id, ActivityEvent.created_at >= since))

  return BoardAnalyticsOut(
    boardId=b.id,
    totalTasks=sum(c.taskCount for c in by_column),
    unassignedTasks=unassigned,
    tasksByPriority=by_priority,
    tasksByColumn=by_column,
    checklistItems=ChecklistProgress(total=int(checklist_total or 0), done=int(checklist_done or 0)),
    recentActivityCount=int(ares.scalar_one() or 0),
    recentActivityDays=RECENT_ACTIVITY_DAYS,
  )
