from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.models import ActivityEvent


async def record_activity(
  db: AsyncSession,
  *,
  board_id: str,
  action: str,
  entity_type: str,
  entity_id: str | None,
  task_id: str | None = None,
  actor_id: str | None = None,
  payload: dict[str, Any] | None = None,
) -> None:
  db.add(
    ActivityEvent(
      board_id=board_id,
      task_id=task_id,
      actor_id=actor_id,
      action=action,
      entity_type=entity_type,
      entity_id=entity_id,
      payload=jsonable_encoder(payload or {}),
    )
  )
