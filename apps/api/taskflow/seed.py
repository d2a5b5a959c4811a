from __future__ import annotations

import asyncio
import os
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.activity import write_activity
from taskflow.db import SessionLocal
from taskflow.models import Board, BoardMember, List, Task, User
from taskflow.security import hash_password

DEMO_USERS = [
  ("alice@demo.local", "Alice Johnson", "SEED_ALICE_PASSWORD"),
  ("bob@demo.local", "Bob Smith", "SEED_BOB_PASSWORD"),
  ("charlie@demo.local", "Charlie Brown", "SEED_CHARLIE_PASSWORD"),
]

DEMO_BOARD = "Product Launch"
DEMO_LISTS = ["Backlog", "To Do", "In Progress", "Review", "Done"]
DEMO_TASKS = [
  ("Backlog", "Design landing page mockup", "high", "Design", "#ec4899"),
  ("Backlog", "Write API documentation", "medium", "Docs", "#3b82f6"),
  ("To Do", "Set up CI pipeline", "high", "DevOps", "#f59e0b"),
  ("To Do", "Implement user authentication", "urgent", "Backend", "#10b981"),
  ("In Progress", "Create dashboard components", "high", "Frontend", "#8b5cf6"),
  ("Review", "Code review: auth module", "medium", "Review", "#f97316"),
  ("Done", "Set up project repository", "low", "Setup", "#6b7280"),
]


def _bootstrap_password(env_key: str) -> tuple[str, bool]:
  configured = (os.getenv(env_key) or "").strip()
  if configured:
    return configured, False
  return secrets.token_urlsafe(14), True


async def _ensure_users(db: AsyncSession) -> tuple[list[User], list[str]]:
  users: list[User] = []
  boot_lines: list[str] = []
  for email, name, env_key in DEMO_USERS:
    res = await db.execute(select(User).where(User.email == email))
    u = res.scalar_one_or_none()
    if not u:
      password, generated = _bootstrap_password(env_key)
      u = User(email=email, name=name, password_hash=hash_password(password), avatar="")
      db.add(u)
      boot_lines.append(f"{email}={password} (generated={str(generated).lower()})")
    users.append(u)
  await db.flush()
  return users, boot_lines


async def _ensure_demo_board(db: AsyncSession, users: list[User]) -> Board:
  owner = users[0]
  res = await db.execute(select(Board).where(Board.title == DEMO_BOARD, Board.owner_id == owner.id))
  board = res.scalar_one_or_none()
  if board:
    return board
  board = Board(title=DEMO_BOARD, description="Planning and execution for the launch", owner_id=owner.id)
  db.add(board)
  await db.flush()
  for u in users:
    db.add(BoardMember(board_id=board.id, user_id=u.id, role="owner" if u.id == owner.id else "member"))
  await write_activity(db, board_id=board.id, actor_id=owner.id, action="created_board", entity_type="board", entity_title=DEMO_BOARD)

  lists: dict[str, List] = {}
  for idx, title in enumerate(DEMO_LISTS):
    lists[title] = List(board_id=board.id, title=title, position=idx)
    db.add(lists[title])
  await db.flush()

  counts: dict[str, int] = {}
  for idx, (list_title, title, priority, label, color) in enumerate(DEMO_TASKS):
    pos = counts.get(list_title, 0)
    counts[list_title] = pos + 1
    db.add(
      Task(
        board_id=board.id,
        list_id=lists[list_title].id,
        title=title,
        priority=priority,
        labels=[{"text": label, "color": color}],
        position=pos,
        assignees=[users[idx % len(users)]],
      )
    )
  return board


async def seed(*, demo_board: bool | None = None) -> list[str]:
  if demo_board is None:
    demo_board = os.getenv("SEED_DEMO_BOARD", "").strip().lower() in ("1", "true", "yes", "y")
  async with SessionLocal() as db:
    users, boot_lines = await _ensure_users(db)
    if demo_board:
      await _ensure_demo_board(db, users)
    await db.commit()
  return boot_lines


def main() -> None:
  boot_lines = asyncio.run(seed())
  if boot_lines:
    print("TaskFlow seed credentials created:")
    for ln in boot_lines:
      print(f"  {ln}")


if __name__ == "__main__":
  main()
