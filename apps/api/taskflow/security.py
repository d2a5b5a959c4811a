from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from taskflow.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_COOKIE_NAME = "tf_session"


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def new_session_token() -> str:
  return "tfs_" + secrets.token_urlsafe(32)


def new_session_expires_at() -> datetime:
  return datetime.now(timezone.utc) + timedelta(days=settings.session_ttl_days)


def as_utc(dt: datetime) -> datetime:
  # SQLite hands back naive datetimes.
  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


def bearer_token(authorization: str | None) -> str | None:
  if not authorization or not authorization.lower().startswith("bearer "):
    return None
  token = authorization.split(" ", 1)[1].strip()
  return token or None
