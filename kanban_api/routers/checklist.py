from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api import ordering
from kanban_api.activity import record_activity
from kanban_api.deps import get_current_user, get_db, get_owned_checklist_item, get_owned_task
from kanban_api.models import ChecklistItem, User
from kanban_api.schemas import ChecklistCreateIn, ChecklistOut, ChecklistUpdateIn

router = APIRouter(tags=["checklist"])


def checklist_out(i: ChecklistItem) -> ChecklistOut:
  return ChecklistOut(
    id=i.id,
    taskId=i.task_id,
    text=i.text,
    done=i.done,
    position=i.position,
    createdAt=i.created_at,
    updatedAt=i.updated_at,
  )


@router.get("/tasks/{task_id}/checklist", response_model=list[ChecklistOut])
async def list_checklist(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ChecklistOut]:
  await get_owned_task(task_id, user, db)
  res = await db.execute(
    select(ChecklistItem).where(ChecklistItem.task_id == task_id).order_by(ChecklistItem.position.asc(), ChecklistItem.id.asc())
  )
  return [checklist_out(i) for i in res.scalars().all()]


@router.post("/tasks/{task_id}/checklist", response_model=ChecklistOut, status_code=status.HTTP_201_CREATED)
async def create_checklist_item(
  task_id: str,
  payload: ChecklistCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ChecklistOut:
  t, _, b = await get_owned_task(task_id, user, db)
  pos = await ordering.insert_at(db, ChecklistItem, ChecklistItem.task_id, t.id, payload.position)
  i = ChecklistItem(task_id=t.id, text=payload.text, done=False, position=pos)
  db.add(i)
  await db.flush()
  await record_activity(
    db,
    board_id=b.id,
    task_id=t.id,
    action="checklist.created",
    entity_type="ChecklistItem",
    entity_id=i.id,
    actor_id=user.id,
    payload={"text": i.text[:200], "position": i.position},
  )
  await db.commit()
  return checklist_out(i)


@router.patch("/checklist/{item_id}", response_model=ChecklistOut)
async def update_checklist_item(
  item_id: str,
  payload: ChecklistUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ChecklistOut:
  i, t, b = await get_owned_checklist_item(item_id, user, db)
  changed: dict = {}
  if payload.text is not None and payload.text != i.text:
    i.text = payload.text
    changed["text"] = i.text[:200]
  if payload.done is not None and payload.done != i.done:
    i.done = payload.done
    changed["done"] = i.done
  if payload.position is not None:
    old = i.position
    new = await ordering.move_within(db, ChecklistItem, ChecklistItem.task_id, i, payload.position)
    if new != old:
      changed["position"] = {"from": old, "to": new}

  if changed:
    await record_activity(
      db,
      board_id=b.id,
      task_id=t.id,
      action="checklist.updated",
      entity_type="ChecklistItem",
      entity_id=i.id,
      actor_id=user.id,
      payload=changed,
    )
  await db.commit()
  return checklist_out(i)


@router.delete("/checklist/{item_id}")
async def delete_checklist_item(item_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  i, t, b = await get_owned_checklist_item(item_id, user, db)
  position, text = i.position, i.text
  await db.execute(delete(ChecklistItem).where(ChecklistItem.id == item_id))
  await ordering.close_gap(db, ChecklistItem, ChecklistItem.task_id, t.id, position)
  await record_activity(
    db,
    board_id=b.id,
    task_id=t.id,
    action="checklist.deleted",
    entity_type="ChecklistItem",
    entity_id=item_id,
    actor_id=user.id,
    payload={"text": text[:200]},
  )
  await db.commit()
  return {"ok": True}
