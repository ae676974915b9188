from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from kanban_api.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

TOKEN_TYPE = "access"
PLACEHOLDER_SECRETS = {"dev-secret-change-me", "replace_with_strong_random_secret", "changeme"}


class TokenError(Exception):
  pass


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def normalize_email(email: str | None) -> str:
  return (email or "").strip().lower()


def create_access_token(user_id: str, *, now: datetime | None = None, expires_minutes: int | None = None) -> tuple[str, datetime]:
  issued = now or datetime.now(timezone.utc)
  minutes = settings.jwt_expires_minutes if expires_minutes is None else expires_minutes
  expires_at = issued + timedelta(minutes=minutes)
  claims = {"sub": user_id, "type": TOKEN_TYPE, "iat": issued, "exp": expires_at}
  token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
  return token, expires_at


def decode_access_token(token: str) -> dict[str, Any]:
  """
  Verify signature and expiry and return the claims.

  Raises TokenError for anything the caller should treat as unauthenticated.
  """
  try:
    claims = jwt.decode(
      token,
      settings.jwt_secret,
      algorithms=[settings.jwt_algorithm],
      options={"require": ["sub", "exp"]},
    )
  except jwt.ExpiredSignatureError as exc:
    raise TokenError("Token expired") from exc
  except jwt.InvalidTokenError as exc:
    raise TokenError("Invalid token") from exc
  if claims.get("type") != TOKEN_TYPE:
    raise TokenError("Invalid token")
  return claims


def secret_is_placeholder(secret: str | None) -> bool:
  return not secret or secret.strip().lower() in PLACEHOLDER_SECRETS
