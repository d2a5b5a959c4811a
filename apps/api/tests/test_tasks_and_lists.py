from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import MEMBER, OUTSIDER, OWNER, auth, login, make_board, make_tasks, seeded_user_id


@pytest.mark.anyio
async def test_task_create_defaults_and_validation(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token, lists=("L",))
  l = board["lists"][0]["id"]

  res = await client.post(
    f"/lists/{l}/tasks",
    json={"title": " Write docs ", "dueDate": "2026-11-01", "labels": [{"text": "docs"}]},
    headers=auth(token),
  )
  assert res.status_code == 201, res.text
  t = res.json()
  assert t["title"] == "Write docs"
  assert t["priority"] == "medium"
  assert t["dueDate"] == "2026-11-01"
  assert t["labels"] == [{"text": "docs", "color": "#6366f1"}]
  assert t["boardId"] == board["id"]
  assert t["assignees"] == []

  bad_priority = await client.post(f"/lists/{l}/tasks", json={"title": "x", "priority": "asap"}, headers=auth(token))
  assert bad_priority.status_code == 422
  long_label = await client.post(f"/lists/{l}/tasks", json={"title": "x", "labels": [{"text": "y" * 31}]}, headers=auth(token))
  assert long_label.status_code == 422
  empty_title = await client.post(f"/lists/{l}/tasks", json={"title": "   "}, headers=auth(token))
  assert empty_title.status_code == 422
  missing_list = await client.post("/lists/nope/tasks", json={"title": "x"}, headers=auth(token))
  assert missing_list.status_code == 404


@pytest.mark.anyio
async def test_task_update_keeps_position(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token, lists=("L",))
  _, b = await make_tasks(client, token, board["lists"][0]["id"], "A", "B")

  res = await client.put(
    f"/tasks/{b['id']}",
    json={"title": "B2", "priority": "urgent", "dueDate": "2026-12-24", "labels": [{"text": "x", "color": "#ff0000"}]},
    headers=auth(token),
  )
  assert res.status_code == 200, res.text
  body = res.json()
  assert (body["title"], body["priority"], body["dueDate"], body["position"]) == ("B2", "urgent", "2026-12-24", 1)

  cleared = await client.put(f"/tasks/{b['id']}", json={"dueDate": None}, headers=auth(token))
  assert cleared.json()["dueDate"] is None
  assert cleared.json()["title"] == "B2"

  activity = (await client.get(f"/boards/{board['id']}/activity", headers=auth(token))).json()
  updates = [a for a in activity["activities"] if a["action"] == "updated_task"]
  assert len(updates) == 2
  assert updates[0]["actor"]["email"] == OWNER[0]


@pytest.mark.anyio
async def test_assign_and_unassign(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token, lists=("L",))
  member_id = await seeded_user_id(MEMBER[0])
  outsider_id = await seeded_user_id(OUTSIDER[0])
  await client.post(f"/boards/{board['id']}/members", json={"userId": member_id}, headers=auth(token))
  (t,) = await make_tasks(client, token, board["lists"][0]["id"], "A")
  url = f"/tasks/{t['id']}/assign"

  res = await client.put(url, json={"userId": member_id, "action": "assign"}, headers=auth(token))
  assert [a["id"] for a in res.json()["assignees"]] == [member_id]
  twice = await client.put(url, json={"userId": member_id, "action": "assign"}, headers=auth(token))
  assert [a["id"] for a in twice.json()["assignees"]] == [member_id]
  me = await client.put(url, json={"userId": board["ownerId"], "action": "assign"}, headers=auth(token))
  assert {a["id"] for a in me.json()["assignees"]} == {member_id, board["ownerId"]}

  stranger = await client.put(url, json={"userId": outsider_id, "action": "assign"}, headers=auth(token))
  assert stranger.status_code == 400
  assert stranger.json()["detail"] == "User is not a board member"

  res = await client.put(url, json={"userId": member_id, "action": "unassign"}, headers=auth(token))
  assert [a["id"] for a in res.json()["assignees"]] == [board["ownerId"]]

  activity = (await client.get(f"/boards/{board['id']}/activity", headers=auth(token))).json()
  actions = [a["action"] for a in activity["activities"]]
  assert actions.count("assigned_user") == 2
  assert actions.count("unassigned_user") == 1


@pytest.mark.anyio
async def test_task_search(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token, lists=("L",))
  l = board["lists"][0]["id"]
  await client.post(f"/lists/{l}/tasks", json={"title": "Fix login bug", "priority": "high", "labels": [{"text": "Bug"}]}, headers=auth(token))
  await client.post(f"/lists/{l}/tasks", json={"title": "Write release notes", "description": "mention the login fix"}, headers=auth(token))
  await client.post(f"/lists/{l}/tasks", json={"title": "Plan sprint"}, headers=auth(token))
  url = f"/boards/{board['id']}/tasks/search"

  found = (await client.get(url, params={"q": "login"}, headers=auth(token))).json()
  assert sorted(t["title"] for t in found["tasks"]) == ["Fix login bug", "Write release notes"]
  assert found["pagination"]["total"] == 2

  high = (await client.get(url, params={"priority": "high"}, headers=auth(token))).json()
  assert [t["title"] for t in high["tasks"]] == ["Fix login bug"]

  labelled = (await client.get(url, params={"label": "bug"}, headers=auth(token))).json()
  assert [t["title"] for t in labelled["tasks"]] == ["Fix login bug"]

  paged = (await client.get(url, params={"limit": 2, "page": 2}, headers=auth(token))).json()
  assert len(paged["tasks"]) == 1
  assert paged["pagination"]["pages"] == 2


@pytest.mark.anyio
async def test_list_crud_and_activity_feed(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token, lists=("Todo", "Done"))
  todo, done = board["lists"]
  assert (todo["position"], done["position"]) == (0, 1)

  res = await client.put(f"/lists/{todo['id']}", json={"title": "Backlog"}, headers=auth(token))
  assert res.status_code == 200
  assert res.json()["title"] == "Backlog"
  assert res.json()["position"] == 0

  member = await login(client, *MEMBER[:2])
  assert (await client.put(f"/lists/{todo['id']}", json={"title": "x"}, headers=auth(member))).status_code == 403
  assert (await client.get(f"/boards/{board['id']}/lists", headers=auth(member))).status_code == 403
  assert (await client.get(f"/boards/{board['id']}/activity", headers=auth(member))).status_code == 403

  feed = (await client.get(f"/boards/{board['id']}/activity", params={"limit": 2}, headers=auth(token))).json()
  assert feed["pagination"]["total"] == 4
  assert len(feed["activities"]) == 2
  assert {a["action"] for a in feed["activities"]} <= {"created_board", "created_list", "updated_list"}
