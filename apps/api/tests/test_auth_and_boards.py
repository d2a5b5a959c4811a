from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import MEMBER, OUTSIDER, OWNER, SessionLocal, auth, login, make_board, make_tasks, seeded_user_id
from taskflow.deps import require_board_role
from taskflow.errors import ForbiddenError
from taskflow.models import User


@pytest.mark.anyio
async def test_signup_login_me_logout(client: AsyncClient) -> None:
  res = await client.post("/auth/signup", json={"name": "  Nina New ", "email": "Nina@Taskflow.Test", "password": "secret1"})
  assert res.status_code == 201, res.text
  body = res.json()
  assert body["user"]["email"] == "nina@taskflow.test"
  assert body["user"]["name"] == "Nina New"
  assert body["token"].startswith("tfs_")

  dup = await client.post("/auth/signup", json={"name": "Nina", "email": "nina@taskflow.test", "password": "secret1"})
  assert dup.status_code == 400
  assert dup.json()["detail"] == "User already exists with this email"

  me = await client.get("/auth/me", headers=auth(body["token"]))
  assert me.status_code == 200
  assert me.json()["name"] == "Nina New"

  out = await client.post("/auth/logout", headers=auth(body["token"]))
  assert out.status_code == 200
  again = await client.get("/auth/me", headers=auth(body["token"]))
  assert again.status_code == 401
  assert again.json()["detail"] == "Invalid or expired session"


@pytest.mark.anyio
async def test_signup_validation(client: AsyncClient) -> None:
  short = await client.post("/auth/signup", json={"name": "N", "email": "n@taskflow.test", "password": "secret1"})
  assert short.status_code == 422
  bad_email = await client.post("/auth/signup", json={"name": "Nina", "email": "nope", "password": "secret1"})
  assert bad_email.status_code == 422
  weak = await client.post("/auth/signup", json={"name": "Nina", "email": "n@taskflow.test", "password": "123"})
  assert weak.status_code == 422


@pytest.mark.anyio
async def test_login_rejects_bad_password_and_anonymous_calls(client: AsyncClient) -> None:
  res = await client.post("/auth/login", json={"email": OWNER[0], "password": "wrong"})
  assert res.status_code == 400
  assert res.json()["detail"] == "Invalid credentials"
  anon = await client.get("/boards")
  assert anon.status_code == 401
  assert anon.json()["detail"] == "Not authenticated"


@pytest.mark.anyio
async def test_cookie_session_works_without_header(client: AsyncClient) -> None:
  await login(client, *OWNER[:2])
  res = await client.get("/auth/me")
  assert res.status_code == 200
  assert res.json()["email"] == OWNER[0]


@pytest.mark.anyio
async def test_user_search_excludes_self(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  res = await client.get("/auth/users/search", params={"q": "taskflow.test"}, headers=auth(token))
  emails = sorted(u["email"] for u in res.json())
  assert emails == sorted([MEMBER[0], OUTSIDER[0]])
  short = await client.get("/auth/users/search", params={"q": "m"}, headers=auth(token))
  assert short.json() == []


@pytest.mark.anyio
async def test_board_create_list_and_pagination(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  for i in range(3):
    await make_board(client, token, title=f"Roadmap {i}")
  await make_board(client, token, title="Groceries")

  page = (await client.get("/boards", params={"limit": 2}, headers=auth(token))).json()
  assert page["pagination"] == {"page": 1, "limit": 2, "total": 4, "pages": 2}
  assert len(page["boards"]) == 2

  found = (await client.get("/boards", params={"search": "road"}, headers=auth(token))).json()
  assert found["pagination"]["total"] == 3
  b = found["boards"][0]
  assert b["owner"]["email"] == OWNER[0]
  assert [m["email"] for m in b["members"]] == [OWNER[0]]

  other = await login(client, *MEMBER[:2])
  assert (await client.get("/boards", headers=auth(other))).json()["pagination"]["total"] == 0


@pytest.mark.anyio
async def test_new_board_has_no_lists(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token)
  detail = (await client.get(f"/boards/{board['id']}", headers=auth(token))).json()
  assert detail["lists"] == []
  assert detail["tasks"] == []
  assert detail["board"]["title"] == "Board"


@pytest.mark.anyio
async def test_board_access_rules(client: AsyncClient) -> None:
  owner = await login(client, *OWNER[:2])
  board = await make_board(client, owner)
  member = await login(client, *MEMBER[:2])
  member_id = await seeded_user_id(MEMBER[0])

  assert (await client.get(f"/boards/{board['id']}", headers=auth(member))).status_code == 403
  assert (await client.get("/boards/missing", headers=auth(member))).status_code == 404

  added = await client.post(f"/boards/{board['id']}/members", json={"userId": member_id}, headers=auth(owner))
  assert added.status_code == 200, added.text
  assert {m["id"] for m in added.json()["members"]} == {board["ownerId"], member_id}
  again = await client.post(f"/boards/{board['id']}/members", json={"userId": member_id}, headers=auth(owner))
  assert again.status_code == 400
  ghost = await client.post(f"/boards/{board['id']}/members", json={"userId": "ghost"}, headers=auth(owner))
  assert ghost.status_code == 404

  assert (await client.get(f"/boards/{board['id']}", headers=auth(member))).status_code == 200
  upd = await client.put(f"/boards/{board['id']}", json={"title": "Mine now"}, headers=auth(member))
  assert upd.status_code == 403
  assert upd.json()["detail"] == "Only the board owner can do this"
  assert (await client.delete(f"/boards/{board['id']}", headers=auth(member))).status_code == 403

  no_owner_removal = await client.delete(f"/boards/{board['id']}/members/{board['ownerId']}", headers=auth(owner))
  assert no_owner_removal.status_code == 400


@pytest.mark.anyio
async def test_member_removal_drops_assignments(client: AsyncClient) -> None:
  owner = await login(client, *OWNER[:2])
  board = await make_board(client, owner, lists=("L",))
  member_id = await seeded_user_id(MEMBER[0])
  await client.post(f"/boards/{board['id']}/members", json={"userId": member_id}, headers=auth(owner))
  (t,) = await make_tasks(client, owner, board["lists"][0]["id"], "Shared")
  res = await client.put(f"/tasks/{t['id']}/assign", json={"userId": member_id, "action": "assign"}, headers=auth(owner))
  assert [a["id"] for a in res.json()["assignees"]] == [member_id]

  removed = await client.delete(f"/boards/{board['id']}/members/{member_id}", headers=auth(owner))
  assert removed.status_code == 200, removed.text
  assert [m["id"] for m in removed.json()["members"]] == [board["ownerId"]]
  task = (await client.get(f"/tasks/{t['id']}", headers=auth(owner))).json()
  assert task["assignees"] == []


@pytest.mark.anyio
async def test_update_and_delete_board(client: AsyncClient) -> None:
  token = await login(client, *OWNER[:2])
  board = await make_board(client, token, lists=("L",))
  await make_tasks(client, token, board["lists"][0]["id"], "A")

  res = await client.put(f"/boards/{board['id']}", json={"title": "Renamed", "background": "#000000"}, headers=auth(token))
  assert res.status_code == 200
  assert res.json()["title"] == "Renamed"
  assert res.json()["background"] == "#000000"

  assert (await client.delete(f"/boards/{board['id']}", headers=auth(token))).status_code == 200
  assert (await client.get(f"/boards/{board['id']}", headers=auth(token))).status_code == 404
  assert (await client.get("/boards", headers=auth(token))).json()["pagination"]["total"] == 0


@pytest.mark.anyio
async def test_health_and_version(client: AsyncClient) -> None:
  health = await client.get("/health")
  assert health.status_code == 200
  assert health.json()["ok"] is True
  assert health.headers["x-content-type-options"] == "nosniff"
  version = await client.get("/version")
  assert set(version.json()) == {"version", "buildSha"}


@pytest.mark.anyio
async def test_access_and_lookup_errors_share_one_shape(client: AsyncClient) -> None:
  owner = await login(client, *OWNER[:2])
  board = await make_board(client, owner, lists=("L1",))
  (task,) = await make_tasks(client, owner, board["lists"][0]["id"], "A")
  outsider_id = await seeded_user_id(OUTSIDER[0])

  async with SessionLocal() as db:
    outsider = await db.get(User, outsider_id)
    with pytest.raises(ForbiddenError) as exc:
      await require_board_role(board["id"], "member", outsider, db)
  assert exc.value.status_code == 403
  assert exc.value.message == "Access denied"

  outsider_token = await login(client, *OUTSIDER[:2])
  denied = await client.get(f"/tasks/{task['id']}", headers=auth(outsider_token))
  assert (denied.status_code, denied.json()) == (403, {"detail": "Access denied"})

  for url, detail in (
    ("/boards/missing", "Board not found"),
    ("/tasks/missing", "Task not found"),
  ):
    res = await client.get(url, headers=auth(owner))
    assert (res.status_code, res.json()) == (404, {"detail": detail})
  res = await client.post("/lists/missing/tasks", json={"title": "x"}, headers=auth(owner))
  assert (res.status_code, res.json()) == (404, {"detail": "List not found"})
