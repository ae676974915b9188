from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from conftest import auth_headers, create_board, create_task, make_admin, register, register_headers
from kanban_api.db import SessionLocal
from kanban_api.models import ActivityEvent, Column, Comment, Task


@pytest.mark.anyio
async def test_create_board_with_initial_columns(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  b = await create_board(client, h, "Roadmap", ["To Do", "Doing", "Done"])
  assert b["name"] == "Roadmap"
  assert [(c["name"], c["position"], c["taskCount"]) for c in b["columns"]] == [("To Do", 0, 0), ("Doing", 1, 0), ("Done", 2, 0)]

  res = await client.get(f"/boards/{b['id']}", headers=h)
  assert res.status_code == 200, res.text
  assert [c["id"] for c in res.json()["columns"]] == [c["id"] for c in b["columns"]]


@pytest.mark.anyio
async def test_blank_board_name_rejected(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  res = await client.post("/boards", json={"name": "   "}, headers=h)
  assert res.status_code == 400
  assert res.json()["error"]["code"] == "VALIDATION"


@pytest.mark.anyio
async def test_list_boards_only_own_and_search(client: AsyncClient) -> None:
  h1 = await register_headers(client, "one@example.com")
  h2 = await register_headers(client, "two@example.com")
  await create_board(client, h1, "Alpha project")
  await create_board(client, h1, "Beta")
  await create_board(client, h2, "Alpha other")

  res = await client.get("/boards", headers=h1)
  assert res.status_code == 200, res.text
  assert sorted(b["name"] for b in res.json()) == ["Alpha project", "Beta"]

  res = await client.get("/boards", params={"search": "alpha"}, headers=h1)
  assert [b["name"] for b in res.json()] == ["Alpha project"]

  assert (await client.get("/boards", params={"all": "true"}, headers=h1)).status_code == 403


@pytest.mark.anyio
async def test_admin_can_list_and_open_every_board(client: AsyncClient) -> None:
  admin = await register(client, "admin@example.com")
  await make_admin(admin["user"]["id"])
  ah = auth_headers(admin["token"])
  h = await register_headers(client, "user@example.com")
  b = await create_board(client, h, "Private")

  res = await client.get("/boards", params={"all": "true"}, headers=ah)
  assert [x["id"] for x in res.json()] == [b["id"]]
  assert (await client.get(f"/boards/{b['id']}", headers=ah)).status_code == 200


@pytest.mark.anyio
async def test_other_users_board_is_forbidden_and_missing_is_404(client: AsyncClient) -> None:
  h1 = await register_headers(client, "one@example.com")
  h2 = await register_headers(client, "two@example.com")
  b = await create_board(client, h1, "Mine")

  res = await client.get(f"/boards/{b['id']}", headers=h2)
  assert res.status_code == 403
  assert res.json()["error"]["code"] == "FORBIDDEN"
  assert (await client.patch(f"/boards/{b['id']}", json={"name": "x"}, headers=h2)).status_code == 403
  assert (await client.delete(f"/boards/{b['id']}", headers=h2)).status_code == 403

  res = await client.get("/boards/does-not-exist", headers=h1)
  assert res.status_code == 404
  assert res.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_update_board_patch_and_put(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  b = await create_board(client, h, "Old")

  res = await client.patch(f"/boards/{b['id']}", json={"name": "New"}, headers=h)
  assert res.status_code == 200, res.text
  assert res.json()["name"] == "New"

  res = await client.put(f"/boards/{b['id']}", json={"description": "Described"}, headers=h)
  assert res.status_code == 200, res.text
  assert res.json()["name"] == "New"
  assert res.json()["description"] == "Described"


@pytest.mark.anyio
async def test_delete_board_cascades(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  b = await create_board(client, h, "Doomed", ["A", "B"])
  col = b["columns"][0]["id"]
  t = await create_task(client, h, col, "Task")
  assert (await client.post(f"/tasks/{t['id']}/comments", json={"body": "hi"}, headers=h)).status_code == 201

  res = await client.delete(f"/boards/{b['id']}", headers=h)
  assert res.status_code == 200, res.text
  assert res.json() == {"ok": True}
  assert (await client.get(f"/boards/{b['id']}", headers=h)).status_code == 404
  assert (await client.get(f"/tasks/{t['id']}", headers=h)).status_code == 404

  async with SessionLocal() as db:
    for model in (Column, Task, Comment, ActivityEvent):
      n = (await db.execute(select(func.count()).select_from(model))).scalar_one()
      assert n == 0, model.__name__


@pytest.mark.anyio
async def test_board_search_matches_wildcards_literally(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  await create_board(client, h, "Q3_plan")
  await create_board(client, h, "Q3 plan")
  await create_board(client, h, "50% off")

  res = await client.get("/boards", params={"search": "_"}, headers=h)
  assert [b["name"] for b in res.json()] == ["Q3_plan"]
  res = await client.get("/boards", params={"search": "%"}, headers=h)
  assert [b["name"] for b in res.json()] == ["50% off"]
