from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.activity import record_activity
from kanban_api.deps import get_current_user, get_db, get_owned_comment, get_owned_task
from kanban_api.models import Comment, User
from kanban_api.schemas import CommentCreateIn, CommentOut

router = APIRouter(tags=["comments"])


def comment_out(c: Comment, author_name: str) -> CommentOut:
  return CommentOut(
    id=c.id,
    taskId=c.task_id,
    authorId=c.author_id,
    authorName=author_name,
    body=c.body,
    createdAt=c.created_at,
    updatedAt=c.updated_at,
  )


async def _author_name(db: AsyncSession, author_id: str) -> str:
  res = await db.execute(select(User.name).where(User.id == author_id))
  return res.scalar_one_or_none() or ""


@router.get("/tasks/{task_id}/comments", response_model=list[CommentOut])
async def list_comments(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[CommentOut]:
  await get_owned_task(task_id, user, db)
  res = await db.execute(
    select(Comment, User.name)
    .join(User, User.id == Comment.author_id)
    .where(Comment.task_id == task_id)
    .order_by(Comment.created_at.asc(), Comment.id.asc())
  )
  return [comment_out(c, name) for c, name in res.all()]


@router.post("/tasks/{task_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def create_comment(
  task_id: str,
  payload: CommentCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> CommentOut:
  t, _, b = await get_owned_task(task_id, user, db)
  c = Comment(task_id=t.id, author_id=user.id, body=payload.body)
  db.add(c)
  await db.flush()
  await record_activity(
    db,
    board_id=b.id,
    task_id=t.id,
    action="comment.created",
    entity_type="Comment",
    entity_id=c.id,
    actor_id=user.id,
    payload={"body": c.body[:200]},
  )
  await db.commit()
  return comment_out(c, user.name)


@router.patch("/comments/{comment_id}", response_model=CommentOut)
async def update_comment(
  comment_id: str,
  payload: CommentCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> CommentOut:
  c, t, b = await get_owned_comment(comment_id, user, db)
  if c.author_id != user.id:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can edit this comment")
  if payload.body != c.body:
    c.body = payload.body
    await record_activity(
      db,
      board_id=b.id,
      task_id=t.id,
      action="comment.updated",
      entity_type="Comment",
      entity_id=c.id,
      actor_id=user.id,
      payload={"body": c.body[:200]},
    )
  await db.commit()
  return comment_out(c, await _author_name(db, c.author_id))


@router.delete("/comments/{comment_id}")
async def delete_comment(comment_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  c, t, b = await get_owned_comment(comment_id, user, db)
  if c.author_id != user.id and user.role != "admin":
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author or an admin can delete this comment")
  await db.execute(delete(Comment).where(Comment.id == comment_id))
  await record_activity(
    db,
    board_id=b.id,
    task_id=t.id,
    action="comment.deleted",
    entity_type="Comment",
    entity_id=comment_id,
    actor_id=user.id,
  )
  await db.commit()
  return {"ok": True}
