from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{ROOT / 'taskflow_test.db'}")

from taskflow.config import settings
from taskflow.db import SessionLocal, create_all, drop_all, engine
from taskflow.main import app
from taskflow.models import User
from taskflow.ordering.locks import scope_locks
from taskflow.realtime.hub import hub
from taskflow.security import hash_password

OWNER = ("owner@taskflow.test", "owner1234", "Olivia Owner")
MEMBER = ("member@taskflow.test", "member1234", "Marco Member")
OUTSIDER = ("outsider@taskflow.test", "outsider1234", "Oscar Outsider")


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  await drop_all()
  await create_all()
  async with SessionLocal() as db:
    for email, password, name in (OWNER, MEMBER, OUTSIDER):
      db.add(User(email=email, name=name, password_hash=hash_password(password), avatar=""))
    await db.commit()
  await engine.dispose()


@pytest.fixture(autouse=True)
async def _clean_between_tests(anyio_backend: str) -> None:
  db_name = settings.database_url.rsplit("/", 1)[-1]
  if "test" not in db_name:
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. taskflow_test)."
    )
  await _reset_db()
  hub.reset()
  yield
  hub.reset()
  assert not scope_locks.active()


@pytest.fixture
async def client() -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


async def login(client: AsyncClient, email: str, password: str) -> str:
  res = await client.post("/auth/login", json={"email": email, "password": password})
  assert res.status_code == 200, res.text
  cookie = res.headers.get("set-cookie")
  assert cookie and "tf_session=" in cookie
  return res.json()["token"]


def auth(token: str) -> dict[str, str]:
  return {"Authorization": f"Bearer {token}"}


async def seeded_user_id(email: str) -> str:
  async with SessionLocal() as db:
    res = await db.execute(select(User).where(User.email == email))
    return res.scalar_one().id


async def make_board(client: AsyncClient, token: str, *, title: str = "Board", lists: tuple[str, ...] = ()) -> dict:
  res = await client.post("/boards", json={"title": title}, headers=auth(token))
  assert res.status_code == 201, res.text
  board = res.json()
  board["lists"] = []
  for name in lists:
    lres = await client.post(f"/boards/{board['id']}/lists", json={"title": name}, headers=auth(token))
    assert lres.status_code == 201, lres.text
    board["lists"].append(lres.json())
  return board


async def make_tasks(client: AsyncClient, token: str, list_id: str, *titles: str) -> list[dict]:
  out = []
  for title in titles:
    res = await client.post(f"/lists/{list_id}/tasks", json={"title": title}, headers=auth(token))
    assert res.status_code == 201, res.text
    out.append(res.json())
  return out


async def titles_in(client: AsyncClient, token: str, board_id: str, list_id: str) -> list[tuple[str, int]]:
  detail = (await client.get(f"/boards/{board_id}", headers=auth(token))).json()
  tasks = sorted((t for t in detail["tasks"] if t["listId"] == list_id), key=lambda t: t["position"])
  return [(t["title"], t["position"]) for t in tasks]
