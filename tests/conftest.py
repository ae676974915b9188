from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./kanban_test.db")
os.environ.setdefault("JWT_SECRET", "test-secret-for-pytest-only-0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from kanban_api.config import settings
from kanban_api.db import SessionLocal, engine
from kanban_api.main import app
from kanban_api.metrics import runtime_metrics
from kanban_api.models import Base, User
from kanban_api.rate_limit import limiter

DEFAULT_PASSWORD = "password123"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  limiter.reset_prefix("auth:")
  runtime_metrics.reset()
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.drop_all)
    await conn.run_sync(Base.metadata.create_all)
  await engine.dispose()


@pytest.fixture(autouse=True)
async def _clean_between_tests(anyio_backend: str) -> None:
  if not settings.is_test_db():
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. kanban_test.db)."
    )
  await _reset_db()
  yield
  await engine.dispose()


@pytest.fixture
async def client() -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


async def register(client: AsyncClient, email: str, *, password: str = DEFAULT_PASSWORD, name: str | None = None) -> dict:
  res = await client.post("/auth/register", json={"email": email, "password": password, "name": name or email.split("@")[0]})
  assert res.status_code == 201, res.text
  return res.json()


def auth_headers(token: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {token}"}


async def register_headers(client: AsyncClient, email: str, **kwargs) -> dict[str, str]:
  return auth_headers((await register(client, email, **kwargs))["token"])


async def make_admin(user_id: str) -> None:
  async with SessionLocal() as db:
    await db.execute(update(User).where(User.id == user_id).values(role="admin"))
    await db.commit()


async def create_board(client: AsyncClient, headers: dict[str, str], name: str = "Board", columns: list[str] | None = None) -> dict:
  res = await client.post("/boards", json={"name": name, "columns": columns or []}, headers=headers)
  assert res.status_code == 201, res.text
  return res.json()


async def create_task(client: AsyncClient, headers: dict[str, str], column_id: str, title: str, **fields) -> dict:
  res = await client.post(f"/columns/{column_id}/tasks", json={"title": title, **fields}, headers=headers)
  assert res.status_code == 201, res.text
  return res.json()
