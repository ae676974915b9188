from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.deps import get_current_user, get_db, get_owned_board
from kanban_api.models import ActivityEvent, User
from kanban_api.pagination import PageParams, page_params, paginate
from kanban_api.schemas import ActivityOut, ActivityPageOut

router = APIRouter(tags=["activity"])


def activity_out(e: ActivityEvent) -> ActivityOut:
  return ActivityOut(
    id=e.id,
    boardId=e.board_id,
    taskId=e.task_id,
    actorId=e.actor_id,
    action=e.action,
    entityType=e.entity_type,
    entityId=e.entity_id,
    payload=e.payload or {},
    createdAt=e.created_at,
  )


@router.get("/boards/{board_id}/activity", response_model=ActivityPageOut)
async def list_activity(
  board_id: str,
  params: PageParams = Depends(page_params),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  b = await get_owned_board(board_id, user, db)
  q = (
    select(ActivityEvent)
    .where(ActivityEvent.board_id == b.id)
    .order_by(ActivityEvent.created_at.desc(), ActivityEvent.id.desc())
  )
  return await paginate(db, q, params, transform=activity_out)
