from __future__ import annotations

import asyncio
import os
import secrets

from sqlalchemy import select

from kanban_api.db import SessionLocal
from kanban_api.log import configure_logging, logger
from kanban_api.models import Board, Column, Comment, Task, User
from kanban_api.security import hash_password, normalize_email

DEMO_BOARD_NAME = "Demo Board"
DEMO_COLUMNS = ["To Do", "In Progress", "Done"]
DEMO_TASKS = [
  (0, "Welcome to the board", "Open a task to see its comments.", "medium"),
  (0, "Try moving tasks", "PATCH a task with a new columnId and position.", "high"),
  (1, "Write the docs", "", "low"),
  (2, "Set up the project", "", "medium"),
]


def _truthy(value: str | None) -> bool:
  return (value or "").strip().lower() in ("1", "true", "yes", "y")


def _bootstrap_password(env_key: str) -> tuple[str, bool]:
  configured = (os.getenv(env_key) or "").strip()
  if configured:
    return configured, False
  return secrets.token_urlsafe(14), True


async def _seed_demo_board(db, admin: User) -> None:
  res = await db.execute(select(Board).where(Board.name == DEMO_BOARD_NAME, Board.owner_id == admin.id))
  if res.scalar_one_or_none():
    logger.info("demo board already present")
    return

  board = Board(name=DEMO_BOARD_NAME, description="Sample data", owner_id=admin.id)
  db.add(board)
  await db.flush()
  columns: list[Column] = []
  for idx, name in enumerate(DEMO_COLUMNS):
    c = Column(board_id=board.id, name=name, position=idx)
    db.add(c)
    columns.append(c)
  await db.flush()

  next_pos = {c.id: 0 for c in columns}
  first: Task | None = None
  for col_idx, title, desc, priority in DEMO_TASKS:
    col = columns[col_idx]
    t = Task(
      column_id=col.id,
      title=title,
      description=desc,
      priority=priority,
      position=next_pos[col.id],
      creator_id=admin.id,
    )
    next_pos[col.id] += 1
    db.add(t)
    first = first or t
  await db.flush()
  if first is not None:
    db.add(Comment(task_id=first.id, author_id=admin.id, body="First comment on the demo board."))
  logger.info("seeded demo board %s", board.id)


async def seed() -> None:
  admin_email = normalize_email(os.getenv("SEED_ADMIN_EMAIL") or "admin@kanban.local")
  async with SessionLocal() as db:
    res = await db.execute(select(User).where(User.email == admin_email))
    admin = res.scalar_one_or_none()
    if not admin:
      password, generated = _bootstrap_password("SEED_ADMIN_PASSWORD")
      admin = User(email=admin_email, name="Admin", role="admin", password_hash=hash_password(password))
      db.add(admin)
      await db.flush()
      logger.info("created admin user %s", admin_email)
      if generated:
        print(f"Generated admin password for {admin_email}: {password}")
    elif admin.role != "admin":
      admin.role = "admin"
      logger.info("promoted %s to admin", admin_email)

    if _truthy(os.getenv("SEED_DEMO_BOARD")):
      await _seed_demo_board(db, admin)

    await db.commit()


def main() -> None:
  configure_logging()
  asyncio.run(seed())


if __name__ == "__main__":
  main()
