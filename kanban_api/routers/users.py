from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.deps import get_current_user, get_db, require_admin
from kanban_api.models import User
from kanban_api.pagination import LIKE_ESCAPE, PageParams, contains_pattern, page_params, paginate
from kanban_api.routers.auth import user_out
from kanban_api.schemas import UserOut, UserPageOut, UserRoleIn, UserSelfUpdateIn
from kanban_api.security import hash_password

router = APIRouter(prefix="/users", tags=["users"])


@router.patch("/me", response_model=UserOut)
async def update_me(payload: UserSelfUpdateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> UserOut:
  if payload.name is not None:
    name = payload.name.strip()
    if not name:
      raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")
    user.name = name
  if payload.password is not None:
    user.password_hash = hash_password(payload.password)
  await db.commit()
  return user_out(user)


@router.get("", response_model=UserPageOut)
async def list_users(
  search: str | None = None,
  params: PageParams = Depends(page_params),
  _: User = Depends(require_admin),
  db: AsyncSession = Depends(get_db),
) -> dict:
  q = select(User)
  if search:
    like = contains_pattern(search)
    q = q.where(or_(User.email.ilike(like, escape=LIKE_ESCAPE), User.name.ilike(like, escape=LIKE_ESCAPE)))
  q = q.order_by(User.email.asc(), User.id.asc())
  return await paginate(db, q, params, transform=user_out)


@router.patch("/{user_id}/role", response_model=UserOut)
async def set_role(
  user_id: str,
  payload: UserRoleIn,
  admin: User = Depends(require_admin),
  db: AsyncSession = Depends(get_db),
) -> UserOut:
  if user_id == admin.id and payload.role != "admin":
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot demote yourself")
  res = await db.execute(select(User).where(User.id == user_id))
  u = res.scalar_one_or_none()
  if not u:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
  u.role = payload.role
  await db.commit()
  return user_out(u)
