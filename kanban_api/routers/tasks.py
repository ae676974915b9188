from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api import ordering
from kanban_api.activity import record_activity
from kanban_api.deps import get_current_user, get_db, get_owned_column, get_owned_task
from kanban_api.models import Board, ChecklistItem, Column, Comment, Task, User
from kanban_api.pagination import LIKE_ESCAPE, PageParams, contains_pattern, page_params, paginate
from kanban_api.schemas import TaskCreateIn, TaskMoveIn, TaskOut, TaskPageOut, TaskSort, TaskUpdateIn

router = APIRouter(tags=["tasks"])

_PRIORITY_RANK = case((Task.priority == "high", 0), (Task.priority == "medium", 1), else_=2)


def task_out(t: Task, board_id: str, comment_count: int = 0) -> TaskOut:
  return TaskOut(
    id=t.id,
    columnId=t.column_id,
    boardId=board_id,
    title=t.title,
    description=t.description or "",
    priority=t.priority,
    position=t.position,
    assigneeId=t.assignee_id,
    creatorId=t.creator_id,
    commentCount=int(comment_count or 0),
    createdAt=t.created_at,
    updatedAt=t.updated_at,
  )


def _sort_clauses(sort: str) -> list:
  if sort == "createdAt":
    return [Task.created_at.desc(), Task.id.asc()]
  if sort == "updatedAt":
    return [Task.updated_at.desc(), Task.id.asc()]
  if sort == "priority":
    return [_PRIORITY_RANK.asc(), Task.position.asc(), Task.id.asc()]
  return [Task.position.asc(), Task.id.asc()]


async def _comment_count(db: AsyncSession, task_id: str) -> int:
  res = await db.execute(select(func.count()).select_from(Comment).where(Comment.task_id == task_id))
  return res.scalar_one() or 0


async def _validate_assignee(db: AsyncSession, assignee_id: str | None) -> None:
  if assignee_id is None:
    return
  res = await db.execute(select(User.id).where(User.id == assignee_id))
  if not res.scalar_one_or_none():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid assigneeId")


async def _target_column(db: AsyncSession, column_id: str, board: Board) -> Column:
  res = await db.execute(select(Column).where(Column.id == column_id))
  c = res.scalar_one_or_none()
  if not c:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Column not found")
  if c.board_id != board.id:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Target column must belong to the same board")
  return c


async def _relocate(
  db: AsyncSession,
  t: Task,
  board: Board,
  column_id: str | None,
  position: int | None,
  *,
  explicit: bool = False,
) -> dict | None:
  """Apply a column and/or position change. Returns the move payload, or None when nothing moved."""
  from_col, from_pos = t.column_id, t.position
  if column_id is not None and column_id != t.column_id:
    dest = await _target_column(db, column_id, board)
    await ordering.move_across(db, Task, Task.column_id, t, dest.id, position)
  elif position is not None or explicit:
    await ordering.move_within(db, Task, Task.column_id, t, position)
  else:
    return None
  if t.column_id == from_col and t.position == from_pos:
    return None
  return {"fromColumnId": from_col, "toColumnId": t.column_id, "fromPosition": from_pos, "toPosition": t.position}


@router.get("/columns/{column_id}/tasks", response_model=TaskPageOut)
async def list_tasks(
  column_id: str,
  search: str | None = None,
  sort: TaskSort = Query(default="position"),
  params: PageParams = Depends(page_params),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  c, b = await get_owned_column(column_id, user, db)
  counts = select(Comment.task_id, func.count(Comment.id).label("n")).group_by(Comment.task_id).subquery()
  q = (
    select(Task, func.coalesce(counts.c.n, 0))
    .outerjoin(counts, counts.c.task_id == Task.id)
    .where(Task.column_id == c.id)
  )
  if search and search.strip():
    like = contains_pattern(search)
    q = q.where(or_(Task.title.ilike(like, escape=LIKE_ESCAPE), Task.description.ilike(like, escape=LIKE_ESCAPE)))
  q = q.order_by(*_sort_clauses(sort))
  return await paginate(db, q, params, transform=lambda row: task_out(row[0], b.id, row[1]), scalars=False)


@router.post("/columns/{column_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
  column_id: str,
  payload: TaskCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  c, b = await get_owned_column(column_id, user, db)
  await _validate_assignee(db, payload.assigneeId)
  pos = await ordering.insert_at(db, Task, Task.column_id, c.id, payload.position)
  t = Task(
    column_id=c.id,
    title=payload.title,
    description=payload.description,
    priority=payload.priority,
    position=pos,
    assignee_id=payload.assigneeId,
    creator_id=user.id,
  )
  db.add(t)
  await db.flush()
  await record_activity(
    db,
    board_id=b.id,
    task_id=t.id,
    action="task.created",
    entity_type="Task",
    entity_id=t.id,
    actor_id=user.id,
    payload={"title": t.title, "columnId": c.id, "position": t.position},
  )
  await db.commit()
  return task_out(t, b.id)


@router.get("/tasks/{task_id}", response_model=TaskOut)
async def get_task(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> TaskOut:
  t, _, b = await get_owned_task(task_id, user, db)
  return task_out(t, b.id, await _comment_count(db, t.id))


@router.patch("/tasks/{task_id}", response_model=TaskOut)
async def update_task(
  task_id: str,
  payload: TaskUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  t, _, b = await get_owned_task(task_id, user, db)
  fields_set = payload.model_fields_set
  changed: dict = {}

  if payload.title is not None and payload.title != t.title:
    t.title = payload.title
    changed["title"] = t.title
  if payload.description is not None and payload.description != t.description:
    t.description = payload.description
    changed["description"] = t.description[:500]
  if payload.priority is not None and payload.priority != t.priority:
    changed["priority"] = {"from": t.priority, "to": payload.priority}
    t.priority = payload.priority
  if "assigneeId" in fields_set and payload.assigneeId != t.assignee_id:
    await _validate_assignee(db, payload.assigneeId)
    changed["assigneeId"] = {"from": t.assignee_id, "to": payload.assigneeId}
    t.assignee_id = payload.assigneeId

  if changed:
    await record_activity(
      db,
      board_id=b.id,
      task_id=t.id,
      action="task.updated",
      entity_type="Task",
      entity_id=t.id,
      actor_id=user.id,
      payload=changed,
    )

  moved = await _relocate(db, t, b, payload.columnId, payload.position)
  if moved:
    await record_activity(
      db,
      board_id=b.id,
      task_id=t.id,
      action="task.moved",
      entity_type="Task",
      entity_id=t.id,
      actor_id=user.id,
      payload=moved,
    )

  await db.commit()
  return task_out(t, b.id, await _comment_count(db, t.id))


@router.post("/tasks/{task_id}/move", response_model=TaskOut)
async def move_task(
  task_id: str,
  payload: TaskMoveIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  t, _, b = await get_owned_task(task_id, user, db)
  # same column without a position sends the task to the bottom
  moved = await _relocate(db, t, b, payload.columnId, payload.position, explicit=True)
  if moved:
    await record_activity(
      db,
      board_id=b.id,
      task_id=t.id,
      action="task.moved",
      entity_type="Task",
      entity_id=t.id,
      actor_id=user.id,
      payload=moved,
    )
  await db.commit()
  return task_out(t, b.id, await _comment_count(db, t.id))


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  t, c, b = await get_owned_task(task_id, user, db)
  title, pos = t.title, t.position
  await db.execute(delete(Comment).where(Comment.task_id == task_id))
  await db.execute(delete(ChecklistItem).where(ChecklistItem.task_id == task_id))
  await db.execute(delete(Task).where(Task.id == task_id))
  await ordering.close_gap(db, Task, Task.column_id, c.id, pos)
  await record_activity(
    db,
    board_id=b.id,
    task_id=task_id,
    action="task.deleted",
    entity_type="Task",
    entity_id=task_id,
    actor_id=user.id,
    payload={"title": title, "columnId": c.id},
  )
  await db.commit()
  return {"ok": True}
