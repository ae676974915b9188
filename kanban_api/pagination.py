from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Sequence, TypeVar

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

T = TypeVar("T")


@dataclass(frozen=True)
class PageParams:
  page: int = DEFAULT_PAGE
  limit: int = DEFAULT_LIMIT

  @property
  def offset(self) -> int:
    return max(0, (self.page - 1) * self.limit)


def page_params(
  page: int = Query(default=DEFAULT_PAGE, ge=1),
  limit: int = Query(default=DEFAULT_LIMIT, ge=1),
) -> PageParams:
  return PageParams(page=page, limit=min(MAX_LIMIT, limit))


def page_envelope(data: Sequence[Any], total: int, params: PageParams) -> dict:
  safe_total = max(0, int(total))
  total_pages = 1 if safe_total == 0 else math.ceil(safe_total / params.limit)
  return {
    "data": list(data),
    "pagination": {
      "page": params.page,
      "limit": params.limit,
      "total": safe_total,
      "totalPages": total_pages,
      "hasMore": params.page < total_pages,
    },
  }


LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
  """`%term%` for ILIKE with `%`, `_` and the escape char matched literally (pair with escape=LIKE_ESCAPE)."""
  escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
  return f"%{escaped}%"


async def paginate(
  db: AsyncSession,
  stmt: Select,
  params: PageParams,
  *,
  transform: Callable[[Any], T] | None = None,
  scalars: bool = True,
) -> dict:
  """
  Run `stmt` with limit/offset and a matching count query.

  `stmt` must already carry a total ORDER BY (ending in a primary key);
  otherwise consecutive pages are not guaranteed to be disjoint.
  """
  count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
  total = (await db.execute(count_stmt)).scalar_one()
  res = await db.execute(stmt.limit(params.limit).offset(params.offset))
  rows = res.scalars().all() if scalars else res.all()
  data = [transform(r) for r in rows] if transform else list(rows)
  return page_envelope(data, total, params)
