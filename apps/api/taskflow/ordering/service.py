from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, AsyncIterator, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.activity import write_activity
from taskflow.errors import NotFoundError, ServerFault, ValidationError
from taskflow.models import List, Task, task_assignees
from taskflow.ordering.locks import board_scope, list_scope, scope_locks
from taskflow.ordering.positions import insert_at, next_position, reindex, remove

logger = logging.getLogger(__name__)

# A task can change lists between the unlocked read and lock acquisition.
# Anything read before a scope lock is read again once it is held.
_MAX_LOCK_ATTEMPTS = 5


@dataclass
class TaskMove:
  task: Task
  source_list_id: str
  destination_list_id: str
  new_position: int
  changed: int


@dataclass
class ListMove:
  moved: List
  lists: list[List]
  changed: int


@asynccontextmanager
async def _unit(db: AsyncSession, what: str) -> AsyncIterator[None]:
  try:
    yield
    await db.commit()
  except SQLAlchemyError as exc:
    await db.rollback()
    logger.exception("persist failed during %s", what)
    raise ServerFault(f"Could not save {what}") from exc


async def list_tasks(db: AsyncSession, list_id: str) -> list[Task]:
  res = await db.execute(
    select(Task)
    .where(Task.list_id == list_id)
    .order_by(Task.position.asc(), Task.created_at.asc())
    .execution_options(populate_existing=True)
  )
  return list(res.scalars().all())


async def board_lists(db: AsyncSession, board_id: str) -> list[List]:
  res = await db.execute(
    select(List)
    .where(List.board_id == board_id)
    .order_by(List.position.asc(), List.created_at.asc())
    .execution_options(populate_existing=True)
  )
  return list(res.scalars().all())


async def _get_task(db: AsyncSession, task_id: str) -> Task:
  res = await db.execute(select(Task).where(Task.id == task_id).execution_options(populate_existing=True))
  t = res.scalar_one_or_none()
  if not t:
    raise NotFoundError("Task not found")
  return t


async def _get_list(db: AsyncSession, list_id: str) -> List:
  res = await db.execute(select(List).where(List.id == list_id).execution_options(populate_existing=True))
  l = res.scalar_one_or_none()
  if not l:
    raise NotFoundError("List not found")
  return l


async def move_task(
  db: AsyncSession,
  *,
  task_id: str,
  source_list_id: str,
  destination_list_id: str,
  new_index: int,
  actor_id: str,
) -> TaskMove:
  t = await _get_task(db, task_id)
  dest = await _get_list(db, destination_list_id)
  if dest.board_id != t.board_id:
    raise ValidationError("Destination list belongs to another board")

  for _ in range(_MAX_LOCK_ATTEMPTS):
    observed_source = t.list_id
    async with scope_locks.hold(list_scope(observed_source), list_scope(dest.id)):
      t = await _get_task(db, task_id)
      if t.list_id != observed_source:
        continue
      dest = await _get_list(db, dest.id)
      return await _move_task_locked(db, t, dest, source_list_id, new_index, actor_id)
  raise ServerFault("Task kept moving while waiting for its list")


async def _move_task_locked(
  db: AsyncSession,
  t: Task,
  dest: List,
  requested_source_id: str,
  new_index: int,
  actor_id: str,
) -> TaskMove:
  source_id = t.list_id
  if requested_source_id != source_id:
    logger.warning(
      "move of task %s names source list %s but task is in %s; using the stored list",
      t.id,
      requested_source_id,
      source_id,
    )

  async with _unit(db, "task move"):
    if source_id == dest.id:
      arr = insert_at(await list_tasks(db, source_id), t, new_index)
      changed = reindex(arr)
    else:
      src = await _get_list(db, source_id)
      from_arr = remove(await list_tasks(db, source_id), t.id)
      to_arr = insert_at(await list_tasks(db, dest.id), t, new_index)
      t.list_id = dest.id
      changed = reindex(from_arr) + reindex(to_arr)
      await write_activity(
        db,
        board_id=t.board_id,
        actor_id=actor_id,
        action="moved_task",
        entity_type="task",
        entity_title=t.title,
        details=f"Moved task from {src.title} to {dest.title}",
      )

  logger.debug("task %s -> list %s @ %s (%s rows)", t.id, dest.id, t.position, len(changed))
  return TaskMove(
    task=t,
    source_list_id=source_id,
    destination_list_id=dest.id,
    new_position=t.position,
    changed=len(changed),
  )


async def move_list(db: AsyncSession, *, list_id: str, new_index: int) -> ListMove:
  l = await _get_list(db, list_id)
  async with scope_locks.hold(board_scope(l.board_id)):
    async with _unit(db, "list move"):
      arr = await board_lists(db, l.board_id)
      moved = next((x for x in arr if x.id == list_id), None)
      if moved is None:
        raise NotFoundError("List not found")
      arr = insert_at(arr, moved, new_index)
      changed = reindex(arr)
  return ListMove(moved=moved, lists=arr, changed=len(changed))


async def apply_list_order(db: AsyncSession, *, board_id: str, entries: Sequence[tuple[str, int]]) -> list[List]:
  """
  Persist a client-computed list order.

  Entries are ranked by requested position (request order breaks ties) and
  renumbered densely, so the stored order never has gaps or duplicates.
  """
  ids = [list_id for list_id, _ in entries]
  if len(set(ids)) != len(ids):
    raise ValidationError("lists contains duplicate ids")
  async with scope_locks.hold(board_scope(board_id)):
    async with _unit(db, "list order"):
      current = {l.id: l for l in await board_lists(db, board_id)}
      if set(ids) != set(current.keys()):
        raise ValidationError("lists must include every list on the board exactly once")
      ranked = sorted(enumerate(entries), key=lambda e: (e[1][1], e[0]))
      arr = [current[list_id] for _, (list_id, _) in ranked]
      reindex(arr)
  return arr


async def append_list(db: AsyncSession, *, board_id: str, title: str, actor_id: str) -> List:
  async with scope_locks.hold(board_scope(board_id)):
    async with _unit(db, "list"):
      res = await db.execute(select(func.max(List.position)).where(List.board_id == board_id))
      l = List(board_id=board_id, title=title, position=next_position(res.scalar_one()))
      db.add(l)
      await write_activity(db, board_id=board_id, actor_id=actor_id, action="created_list", entity_type="list", entity_title=title)
  return l


async def delete_list(db: AsyncSession, *, list_id: str, actor_id: str) -> List:
  l = await _get_list(db, list_id)
  async with scope_locks.hold(board_scope(l.board_id), list_scope(l.id)):
    l = await _get_list(db, list_id)
    async with _unit(db, "list delete"):
      task_ids = select(Task.id).where(Task.list_id == l.id)
      await db.execute(delete(task_assignees).where(task_assignees.c.task_id.in_(task_ids)))
      await db.execute(delete(Task).where(Task.list_id == l.id))
      await db.execute(delete(List).where(List.id == l.id))
      reindex(remove(await board_lists(db, l.board_id), l.id))
      await write_activity(db, board_id=l.board_id, actor_id=actor_id, action="deleted_list", entity_type="list", entity_title=l.title)
  return l


async def append_task(
  db: AsyncSession,
  *,
  list_: List,
  title: str,
  description: str,
  priority: str,
  due_date: date | None,
  labels: list[dict[str, Any]],
  actor_id: str,
) -> Task:
  async with scope_locks.hold(list_scope(list_.id)):
    list_ = await _get_list(db, list_.id)
    async with _unit(db, "task"):
      res = await db.execute(select(func.max(Task.position)).where(Task.list_id == list_.id))
      t = Task(
        board_id=list_.board_id,
        list_id=list_.id,
        title=title,
        description=description,
        priority=priority,
        due_date=due_date,
        labels=labels,
        position=next_position(res.scalar_one()),
        assignees=[],
      )
      db.add(t)
      await write_activity(db, board_id=list_.board_id, actor_id=actor_id, action="created_task", entity_type="task", entity_title=title)
  return t


async def delete_task(db: AsyncSession, *, task_id: str, actor_id: str) -> Task:
  t = await _get_task(db, task_id)
  for _ in range(_MAX_LOCK_ATTEMPTS):
    observed_list = t.list_id
    async with scope_locks.hold(list_scope(observed_list)):
      t = await _get_task(db, task_id)
      if t.list_id != observed_list:
        continue
      async with _unit(db, "task delete"):
        await db.execute(delete(task_assignees).where(task_assignees.c.task_id == t.id))
        await db.execute(delete(Task).where(Task.id == t.id))
        reindex(remove(await list_tasks(db, t.list_id), t.id))
        await write_activity(db, board_id=t.board_id, actor_id=actor_id, action="deleted_task", entity_type="task", entity_title=t.title)
      return t
  raise ServerFault("Task kept moving while waiting for its list")
