from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ScopeLocks:
  """
  Single-writer locks keyed by ordering scope ("list:<id>", "board:<id>").

  Process-local only. Entries are dropped once nobody holds or waits on them.
  """

  def __init__(self) -> None:
    self._locks: dict[str, asyncio.Lock] = {}
    self._users: dict[str, int] = {}

  @asynccontextmanager
  async def hold(self, *keys: str) -> AsyncIterator[None]:
    # Always acquired in sorted key order.
    ordered_keys = sorted(set(keys))
    for k in ordered_keys:
      self._users[k] = self._users.get(k, 0) + 1
      self._locks.setdefault(k, asyncio.Lock())
    acquired: list[str] = []
    try:
      for k in ordered_keys:
        await self._locks[k].acquire()
        acquired.append(k)
      yield
    finally:
      for k in reversed(acquired):
        self._locks[k].release()
      for k in ordered_keys:
        self._users[k] -= 1
        if self._users[k] <= 0:
          self._users.pop(k, None)
          self._locks.pop(k, None)

  def active(self) -> int:
    return len(self._locks)

  def queued(self, key: str) -> int:
    """Holders plus waiters for one scope."""
    return self._users.get(key, 0)


def list_scope(list_id: str) -> str:
  return f"list:{list_id}"


def board_scope(board_id: str) -> str:
  return f"board:{board_id}"


scope_locks = ScopeLocks()
