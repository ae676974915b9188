from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from conftest import create_board, create_task, register, register_headers


async def _titles(client: AsyncClient, h: dict, column_id: str) -> list[tuple[str, int]]:
  res = await client.get(f"/columns/{column_id}/tasks", params={"limit": 100}, headers=h)
  assert res.status_code == 200, res.text
  return [(t["title"], t["position"]) for t in res.json()["data"]]


async def _board_with_columns(client: AsyncClient, h: dict, *names: str) -> tuple[dict, list[str]]:
  b = await create_board(client, h, "Board", list(names))
  return b, [c["id"] for c in b["columns"]]


@pytest.mark.anyio
async def test_create_tasks_get_sequential_positions(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  b, (col,) = await _board_with_columns(client, h, "Todo")

  created = [await create_task(client, h, col, f"T{i}") for i in range(3)]
  assert [t["position"] for t in created] == [0, 1, 2]
  assert created[0]["priority"] == "medium"
  assert created[0]["boardId"] == b["id"]
  assert created[0]["commentCount"] == 0

  mid = await create_task(client, h, col, "Mid", position=1, priority="high")
  assert mid["position"] == 1
  assert await _titles(client, h, col) == [("T0", 0), ("Mid", 1), ("T1", 2), ("T2", 3)]


@pytest.mark.anyio
async def test_task_validation(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")

  res = await client.post(f"/columns/{col}/tasks", json={"title": "  "}, headers=h)
  assert res.status_code == 400
  assert res.json()["error"]["code"] == "VALIDATION"

  res = await client.post(f"/columns/{col}/tasks", json={"title": "x", "priority": "urgent"}, headers=h)
  assert res.status_code == 400
  assert res.json()["error"]["details"][0]["path"] == "priority"

  res = await client.post(f"/columns/{col}/tasks", json={"title": "x", "assigneeId": "nobody"}, headers=h)
  assert res.status_code == 400
  assert res.json()["error"]["message"] == "Invalid assigneeId"

  res = await client.get(f"/columns/{col}/tasks", params={"page": 0}, headers=h)
  assert res.status_code == 400


@pytest.mark.anyio
async def test_pagination_pages_do_not_overlap(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  for i in range(7):
    await create_task(client, h, col, f"T{i}")

  p1 = (await client.get(f"/columns/{col}/tasks", params={"page": 1, "limit": 3}, headers=h)).json()
  p2 = (await client.get(f"/columns/{col}/tasks", params={"page": 2, "limit": 3}, headers=h)).json()
  p3 = (await client.get(f"/columns/{col}/tasks", params={"page": 3, "limit": 3}, headers=h)).json()
  assert p1["pagination"] == {"page": 1, "limit": 3, "total": 7, "totalPages": 3, "hasMore": True}
  assert p3["pagination"]["hasMore"] is False
  titles = [t["title"] for page in (p1, p2, p3) for t in page["data"]]
  assert titles == [f"T{i}" for i in range(7)]

  big = (await client.get(f"/columns/{col}/tasks", params={"limit": 1000}, headers=h)).json()
  assert big["pagination"]["limit"] == 100


@pytest.mark.anyio
async def test_empty_column_pagination(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  res = await client.get(f"/columns/{col}/tasks", headers=h)
  assert res.json() == {"data": [], "pagination": {"page": 1, "limit": 10, "total": 0, "totalPages": 1, "hasMore": False}}


@pytest.mark.anyio
async def test_search_and_priority_sort(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  await create_task(client, h, col, "Write docs", priority="low")
  await create_task(client, h, col, "Fix login bug", description="Users cannot LOG in", priority="high")
  await create_task(client, h, col, "Refactor", priority="medium")

  res = await client.get(f"/columns/{col}/tasks", params={"search": "log"}, headers=h)
  assert [t["title"] for t in res.json()["data"]] == ["Fix login bug"]

  res = await client.get(f"/columns/{col}/tasks", params={"search": "users cannot"}, headers=h)
  assert [t["title"] for t in res.json()["data"]] == ["Fix login bug"]

  res = await client.get(f"/columns/{col}/tasks", params={"sort": "priority"}, headers=h)
  assert [t["priority"] for t in res.json()["data"]] == ["high", "medium", "low"]

  res = await client.get(f"/columns/{col}/tasks", params={"sort": "sideways"}, headers=h)
  assert res.status_code == 400


@pytest.mark.anyio
async def test_update_task_fields_and_assignee(client: AsyncClient) -> None:
  owner = await register(client, "owner@example.com")
  helper = await register(client, "helper@example.com")
  h = {"Authorization": f"Bearer {owner['token']}"}
  _, (col,) = await _board_with_columns(client, h, "Todo")
  t = await create_task(client, h, col, "Draft")

  res = await client.patch(
    f"/tasks/{t['id']}",
    json={"title": "Final", "priority": "high", "assigneeId": helper["user"]["id"]},
    headers=h,
  )
  assert res.status_code == 200, res.text
  body = res.json()
  assert (body["title"], body["priority"], body["assigneeId"]) == ("Final", "high", helper["user"]["id"])

  res = await client.patch(f"/tasks/{t['id']}", json={"assigneeId": None}, headers=h)
  assert res.json()["assigneeId"] is None
  assert res.json()["title"] == "Final"


@pytest.mark.anyio
async def test_move_within_column_shifts_only_rows_between(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  tasks = [await create_task(client, h, col, f"T{i}") for i in range(5)]

  res = await client.patch(f"/tasks/{tasks[1]['id']}", json={"position": 3}, headers=h)
  assert res.status_code == 200, res.text
  assert res.json()["position"] == 3
  assert await _titles(client, h, col) == [("T0", 0), ("T2", 1), ("T3", 2), ("T1", 3), ("T4", 4)]

  res = await client.patch(f"/tasks/{tasks[4]['id']}", json={"position": 0}, headers=h)
  assert await _titles(client, h, col) == [("T4", 0), ("T0", 1), ("T2", 2), ("T3", 3), ("T1", 4)]


@pytest.mark.anyio
async def test_move_across_columns_updates_both_and_keeps_comments(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  b, (todo, done) = await _board_with_columns(client, h, "Todo", "Done")
  a = await create_task(client, h, todo, "A")
  await create_task(client, h, todo, "B")
  await create_task(client, h, todo, "C")
  await create_task(client, h, done, "X")
  await create_task(client, h, done, "Y")
  assert (await client.post(f"/tasks/{a['id']}/comments", json={"body": "keep me"}, headers=h)).status_code == 201

  res = await client.patch(f"/tasks/{a['id']}", json={"columnId": done, "position": 1}, headers=h)
  assert res.status_code == 200, res.text
  moved = res.json()
  assert (moved["columnId"], moved["position"], moved["commentCount"]) == (done, 1, 1)

  assert await _titles(client, h, todo) == [("B", 0), ("C", 1)]
  assert await _titles(client, h, done) == [("X", 0), ("A", 1), ("Y", 2)]

  board = (await client.get(f"/boards/{b['id']}", headers=h)).json()
  assert {c["id"]: c["taskCount"] for c in board["columns"]} == {todo: 2, done: 3}

  comments = (await client.get(f"/tasks/{a['id']}/comments", headers=h)).json()
  assert [c["body"] for c in comments] == ["keep me"]


@pytest.mark.anyio
async def test_move_endpoint_appends_without_position(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (todo, done) = await _board_with_columns(client, h, "Todo", "Done")
  a = await create_task(client, h, todo, "A")
  await create_task(client, h, todo, "B")
  await create_task(client, h, done, "X")

  res = await client.post(f"/tasks/{a['id']}/move", json={"columnId": done}, headers=h)
  assert res.status_code == 200, res.text
  assert res.json()["position"] == 1
  assert await _titles(client, h, done) == [("X", 0), ("A", 1)]

  b = (await client.get(f"/columns/{todo}/tasks", headers=h)).json()["data"][0]
  res = await client.post(f"/tasks/{b['id']}/move", json={"columnId": todo}, headers=h)
  assert res.json()["position"] == 0


@pytest.mark.anyio
async def test_move_to_column_on_another_board_rejected(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  _, (other,) = await _board_with_columns(client, h, "Elsewhere")
  t = await create_task(client, h, col, "Stay")

  res = await client.patch(f"/tasks/{t['id']}", json={"columnId": other}, headers=h)
  assert res.status_code == 400, res.text
  assert res.json()["error"]["code"] == "BAD_REQUEST"
  assert await _titles(client, h, col) == [("Stay", 0)]


@pytest.mark.anyio
async def test_delete_task_closes_gap(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  tasks = [await create_task(client, h, col, f"T{i}") for i in range(3)]

  res = await client.delete(f"/tasks/{tasks[0]['id']}", headers=h)
  assert res.status_code == 200, res.text
  assert await _titles(client, h, col) == [("T1", 0), ("T2", 1)]
  assert (await client.get(f"/tasks/{tasks[0]['id']}", headers=h)).status_code == 404


@pytest.mark.anyio
async def test_tasks_of_someone_elses_board_are_forbidden(client: AsyncClient) -> None:
  h1 = await register_headers(client, "one@example.com")
  h2 = await register_headers(client, "two@example.com")
  _, (col,) = await _board_with_columns(client, h1, "Todo")
  t = await create_task(client, h1, col, "Secret")

  assert (await client.get(f"/columns/{col}/tasks", headers=h2)).status_code == 403
  assert (await client.post(f"/columns/{col}/tasks", json={"title": "x"}, headers=h2)).status_code == 403
  assert (await client.get(f"/tasks/{t['id']}", headers=h2)).status_code == 403
  assert (await client.patch(f"/tasks/{t['id']}", json={"title": "x"}, headers=h2)).status_code == 403
  assert (await client.delete(f"/tasks/{t['id']}", headers=h2)).status_code == 403


@pytest.mark.anyio
async def test_rejected_patch_applies_none_of_its_changes(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  b, (todo, doing) = await _board_with_columns(client, h, "Todo", "Doing")
  _, (other,) = await _board_with_columns(client, h, "Elsewhere")
  a = await create_task(client, h, todo, "A")
  await create_task(client, h, todo, "B")
  await create_task(client, h, doing, "C")
  await create_task(client, h, other, "X")

  res = await client.patch(f"/tasks/{a['id']}", json={"title": "Renamed", "columnId": other, "position": 0}, headers=h)
  assert res.status_code == 400, res.text

  res = await client.get(f"/tasks/{a['id']}", headers=h)
  assert res.status_code == 200, res.text
  assert (res.json()["title"], res.json()["columnId"], res.json()["position"]) == ("A", todo, 0)
  assert await _titles(client, h, todo) == [("A", 0), ("B", 1)]
  assert await _titles(client, h, doing) == [("C", 0)]
  assert await _titles(client, h, other) == [("X", 0)]

  res = await client.get(f"/boards/{b['id']}/activity", params={"limit": 100}, headers=h)
  assert "task.updated" not in [e["action"] for e in res.json()["data"]]


@pytest.mark.anyio
async def test_search_treats_wildcards_literally(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  for title in ("100% done", "plain", "a_b", "ab", "back\\slash"):
    await create_task(client, h, col, title)

  async def found(term: str) -> list[str]:
    res = await client.get(f"/columns/{col}/tasks", params={"search": term}, headers=h)
    assert res.status_code == 200, res.text
    return [t["title"] for t in res.json()["data"]]

  assert await found("%") == ["100% done"]
  assert await found("_") == ["a_b"]
  assert await found("\\") == ["back\\slash"]
  assert await found("a_") == ["a_b"]


@pytest.mark.anyio
async def test_timestamps_keep_utc_after_reload(client: AsyncClient) -> None:
  h = await register_headers(client, "owner@example.com")
  _, (col,) = await _board_with_columns(client, h, "Todo")
  created = await create_task(client, h, col, "Stamp")

  res = await client.get(f"/tasks/{created['id']}", headers=h)
  fetched = res.json()
  assert fetched["createdAt"] == created["createdAt"]
  assert fetched["updatedAt"] == created["updatedAt"]
  for value in (fetched["createdAt"], fetched["updatedAt"]):
    assert datetime.fromisoformat(value.replace("Z", "+00:00")).utcoffset() == timedelta(0)

  listed = (await client.get(f"/columns/{col}/tasks", headers=h)).json()["data"][0]
  assert listed["createdAt"] == created["createdAt"]
