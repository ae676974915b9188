from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kanban_api.config import settings
from kanban_api.deps import client_ip, get_current_user, get_db
from kanban_api.log import logger
from kanban_api.models import User
from kanban_api.rate_limit import limiter
from kanban_api.schemas import AuthOut, LoginIn, RegisterIn, UserOut
from kanban_api.security import create_access_token, hash_password, normalize_email, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])


def user_out(u: User) -> UserOut:
  return UserOut(id=u.id, email=u.email, name=u.name, role=u.role, createdAt=u.created_at)


def auth_out(u: User) -> AuthOut:
  token, expires_at = create_access_token(u.id)
  return AuthOut(user=user_out(u), token=token, expiresAt=expires_at)


def _rate_limit_or_429(*, key: str, limit: int, window_seconds: int) -> None:
  allowed, retry_after = limiter.hit(key, limit=limit, window_seconds=window_seconds)
  if allowed:
    return
  raise HTTPException(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    detail={"code": "RATE_LIMITED", "message": "Too many requests", "details": {"retryAfterSeconds": retry_after}},
    headers={"Retry-After": str(retry_after)},
  )


def _email_taken() -> HTTPException:
  return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterIn, request: Request, db: AsyncSession = Depends(get_db)) -> AuthOut:
  ip = client_ip(request)
  _rate_limit_or_429(key=f"auth:register:ip:{ip}", limit=int(settings.rate_limit_register_ip_per_minute), window_seconds=60)

  email = normalize_email(payload.email)
  exists = await db.execute(select(User.id).where(User.email == email))
  if exists.scalar_one_or_none():
    raise _email_taken()

  u = User(email=email, name=payload.name, password_hash=hash_password(payload.password), role="member")
  db.add(u)
  try:
    await db.commit()
  except IntegrityError as exc:
    # lost a race with a concurrent registration for the same email
    await db.rollback()
    raise _email_taken() from exc
  logger.info("registered user %s", u.id)
  return auth_out(u)


@router.post("/login", response_model=AuthOut)
async def login(payload: LoginIn, request: Request, db: AsyncSession = Depends(get_db)) -> AuthOut:
  ip = client_ip(request)
  email = normalize_email(payload.email)
  _rate_limit_or_429(key=f"auth:login:ip:{ip}", limit=int(settings.rate_limit_login_ip_per_minute), window_seconds=60)
  if email:
    _rate_limit_or_429(key=f"auth:login:email:{email}", limit=int(settings.rate_limit_login_email_per_minute), window_seconds=60)

  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if not u or not verify_password(payload.password, u.password_hash):
    logger.info("failed login for %s from %s", email, ip)
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
  return auth_out(u)


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
  return user_out(user)
