from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.config import settings
from taskflow.deps import client_ip, get_current_user, get_db
from taskflow.models import Session as DbSession, User
from taskflow.schemas import AuthOut, LoginIn, SignupIn, UserOut
from taskflow.security import (
  SESSION_COOKIE_NAME,
  bearer_token,
  hash_password,
  new_session_expires_at,
  new_session_token,
  verify_password,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def user_out(u: User) -> UserOut:
  return UserOut(id=u.id, name=u.name, email=u.email, avatar=u.avatar or "")


async def _start_session(db: AsyncSession, *, user: User, request: Request, response: Response) -> AuthOut:
  s = DbSession(
    id=new_session_token(),
    user_id=user.id,
    expires_at=new_session_expires_at(),
    created_ip=client_ip(request),
    user_agent=request.headers.get("user-agent"),
  )
  db.add(s)
  await db.commit()
  response.set_cookie(
    key=SESSION_COOKIE_NAME,
    value=s.id,
    httponly=True,
    secure=settings.cookie_secure,
    samesite="lax",
    domain=settings.cookie_domain or None,
    max_age=int(settings.session_ttl_days * 86400),
    path="/",
  )
  return AuthOut(user=user_out(user), token=s.id)


@router.post("/signup", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupIn, request: Request, response: Response, db: AsyncSession = Depends(get_db)) -> AuthOut:
  exists = await db.execute(select(User.id).where(User.email == payload.email))
  if exists.scalar_one_or_none():
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User already exists with this email")
  u = User(name=payload.name, email=payload.email, password_hash=hash_password(payload.password), avatar="")
  db.add(u)
  await db.flush()
  return await _start_session(db, user=u, request=request, response=response)


@router.post("/login", response_model=AuthOut)
async def login(payload: LoginIn, request: Request, response: Response, db: AsyncSession = Depends(get_db)) -> AuthOut:
  email = (payload.email or "").strip().lower()
  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if not u or not verify_password(payload.password, u.password_hash):
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")
  return await _start_session(db, user=u, request=request, response=response)


@router.post("/logout")
async def logout(
  request: Request,
  response: Response,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
  session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> dict:
  token = bearer_token(request.headers.get("authorization")) or session_id
  await db.execute(delete(DbSession).where(DbSession.id == token, DbSession.user_id == user.id))
  await db.commit()
  response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
  return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
  return user_out(user)


@router.get("/users/search", response_model=list[UserOut])
async def search_users(q: str = "", user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[UserOut]:
  q = q.strip()
  if len(q) < 2:
    return []
  like = f"%{q}%"
  res = await db.execute(
    select(User)
    .where(or_(User.name.ilike(like), User.email.ilike(like)), User.id != user.id)
    .order_by(User.name.asc())
    .limit(10)
  )
  return [user_out(u) for u in res.scalars().all()]
