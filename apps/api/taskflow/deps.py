from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Cookie, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db import SessionLocal
from taskflow.errors import ForbiddenError
from taskflow.models import BoardMember, Session as DbSession, User
from taskflow.security import SESSION_COOKIE_NAME, as_utc, bearer_token

ROLE_ORDER = {"member": 0, "owner": 1}


async def get_db() -> AsyncSession:
  async with SessionLocal() as session:
    yield session


async def user_for_token(db: AsyncSession, token: str | None) -> User | None:
  """Resolve a session credential (cookie value or bearer token) to its user."""
  if not token:
    return None
  res = await db.execute(select(DbSession).where(DbSession.id == token))
  s = res.scalar_one_or_none()
  if not s:
    return None
  if as_utc(s.expires_at) < datetime.now(timezone.utc):
    return None
  ures = await db.execute(select(User).where(User.id == s.user_id))
  return ures.scalar_one_or_none()


async def get_current_user(
  request: Request,
  db: AsyncSession = Depends(get_db),
  session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> User:
  token = bearer_token(request.headers.get("authorization")) or session_id
  if not token:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
  u = await user_for_token(db, token)
  if not u:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
  return u


async def board_role(board_id: str, user_id: str, db: AsyncSession) -> str | None:
  res = await db.execute(select(BoardMember.role).where(BoardMember.board_id == board_id, BoardMember.user_id == user_id))
  return res.scalar_one_or_none()


async def require_board_role(
  board_id: str,
  min_role: str,
  user: User,
  db: AsyncSession,
) -> str:
  # role order: member < owner
  role = await board_role(board_id, user.id, db)
  if role is None:
    raise ForbiddenError("Access denied")
  if ROLE_ORDER.get(role, -1) < ROLE_ORDER.get(min_role, 0):
    raise ForbiddenError(f"Only the board {min_role} can do this")
  return role


def client_ip(request: Request) -> str | None:
  return request.client.host if request.client else None
