from __future__ import annotations

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from kanban_api.config import settings


def _engine_kwargs(url: str) -> dict:
  if url.startswith("sqlite"):
    return {"connect_args": {"check_same_thread": False}}
  return {"pool_pre_ping": True}


engine = create_async_engine(settings.database_url, echo=settings.db_echo, **_engine_kwargs(settings.database_url))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
