from __future__ import annotations

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from taskflow.config import settings
from taskflow.models import Base


def _engine_kwargs() -> dict:
  if settings.is_sqlite():
    # aiosqlite connections are bound to the loop that opened them.
    return {"poolclass": NullPool}
  return {"pool_pre_ping": True}


engine = create_async_engine(settings.database_url, **_engine_kwargs())
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def create_all() -> None:
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.create_all)


async def drop_all() -> None:
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.drop_all)
