"""
Sibling position bookkeeping for ordered rows (columns in a board, tasks in a column).

Every helper issues its statements on the caller's session and never commits;
the request that owns the session commits once, so a failure part-way through
a move leaves no shifted rows behind.
"""

from __future__ import annotations

from typing import Any, Sequence

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute


async def max_position(db: AsyncSession, model: Any, parent_col: InstrumentedAttribute, parent_id: str) -> int | None:
  res = await db.execute(select(func.max(model.position)).where(parent_col == parent_id))
  return res.scalar_one()


async def next_position(db: AsyncSession, model: Any, parent_col: InstrumentedAttribute, parent_id: str) -> int:
  max_pos = await max_position(db, model, parent_col, parent_id)
  return (max_pos + 1) if max_pos is not None else 0


async def shift(
  db: AsyncSession,
  model: Any,
  parent_col: InstrumentedAttribute,
  parent_id: str,
  *,
  delta: int,
  start: int | None = None,
  end: int | None = None,
  exclude_id: str | None = None,
) -> int:
  """Add `delta` to every sibling whose position is in [start, end]. Returns the row count."""
  q = update(model).where(parent_col == parent_id)
  if start is not None:
    q = q.where(model.position >= start)
  if end is not None:
    q = q.where(model.position <= end)
  if exclude_id is not None:
    q = q.where(model.id != exclude_id)
  q = q.values(position=model.position + delta).execution_options(synchronize_session="fetch")
  res = await db.execute(q)
  return res.rowcount or 0


async def insert_at(
  db: AsyncSession,
  model: Any,
  parent_col: InstrumentedAttribute,
  parent_id: str,
  position: int | None,
) -> int:
  end = await next_position(db, model, parent_col, parent_id)
  if position is None or position >= end:
    return end
  target = max(0, position)
  await shift(db, model, parent_col, parent_id, delta=1, start=target)
  return target


async def move_within(
  db: AsyncSession,
  model: Any,
  parent_col: InstrumentedAttribute,
  row: Any,
  new_position: int | None,
) -> int:
  parent_id = getattr(row, parent_col.key)
  old = row.position
  max_pos = await max_position(db, model, parent_col, parent_id)
  last = max(old, max_pos if max_pos is not None else 0)
  target = last if new_position is None else max(0, min(new_position, last))
  if target == old:
    return old

  if target > old:
    await shift(db, model, parent_col, parent_id, delta=-1, start=old + 1, end=target, exclude_id=row.id)
  else:
    await shift(db, model, parent_col, parent_id, delta=1, start=target, end=old - 1, exclude_id=row.id)
  row.position = target
  return target


async def move_across(
  db: AsyncSession,
  model: Any,
  parent_col: InstrumentedAttribute,
  row: Any,
  dest_parent_id: str,
  new_position: int | None,
) -> int:
  src_parent_id = getattr(row, parent_col.key)
  if src_parent_id == dest_parent_id:
    return await move_within(db, model, parent_col, row, new_position)

  await shift(db, model, parent_col, src_parent_id, delta=-1, start=row.position + 1, exclude_id=row.id)
  end = await next_position(db, model, parent_col, dest_parent_id)
  target = end if new_position is None else max(0, min(new_position, end))
  await shift(db, model, parent_col, dest_parent_id, delta=1, start=target)
  setattr(row, parent_col.key, dest_parent_id)
  row.position = target
  return target


async def close_gap(db: AsyncSession, model: Any, parent_col: InstrumentedAttribute, parent_id: str, position: int) -> int:
  return await shift(db, model, parent_col, parent_id, delta=-1, start=position + 1)


def reorder_all(rows: Sequence[Any], ordered_ids: Sequence[str]) -> list[Any]:
  by_id = {r.id: r for r in rows}
  if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(by_id.keys()):
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="ids must list every sibling exactly once")
  out: list[Any] = []
  for idx, rid in enumerate(ordered_ids):
    r = by_id[rid]
    r.position = idx
    out.append(r)
  return out
