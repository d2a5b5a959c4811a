from __future__ import annotations

import math

from fastapi import APIRouter, Depends, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.activity import write_activity
from taskflow.deps import board_role, get_current_user, get_db, require_board_role
from taskflow.errors import NotFoundError, ValidationError
from taskflow.models import List, Task, User, task_assignees
from taskflow.ordering import service
from taskflow.realtime import events
from taskflow.routers.auth import user_out
from taskflow.schemas import (
  LabelOut,
  PaginationOut,
  TaskAssignIn,
  TaskCreateIn,
  TaskMovedOut,
  TaskOut,
  TaskPageOut,
  TaskReorderIn,
  TaskUpdateIn,
)

router = APIRouter(tags=["tasks"])


def task_out(t: Task) -> TaskOut:
  return TaskOut(
    id=t.id,
    boardId=t.board_id,
    listId=t.list_id,
    title=t.title,
    description=t.description,
    position=t.position,
    priority=t.priority,
    dueDate=t.due_date,
    labels=[LabelOut(text=str(l.get("text", "")), color=str(l.get("color", "#6366f1"))) for l in (t.labels or [])],
    assignees=[user_out(u) for u in t.assignees],
    createdAt=t.created_at,
    updatedAt=t.updated_at,
  )


async def _task_for_member(db: AsyncSession, task_id: str, user: User) -> Task:
  res = await db.execute(select(Task).where(Task.id == task_id))
  t = res.scalar_one_or_none()
  if not t:
    raise NotFoundError("Task not found")
  await require_board_role(t.board_id, "member", user, db)
  return t


@router.post("/lists/{list_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
  list_id: str,
  payload: TaskCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  res = await db.execute(select(List).where(List.id == list_id))
  l = res.scalar_one_or_none()
  if not l:
    raise NotFoundError("List not found")
  await require_board_role(l.board_id, "member", user, db)
  t = await service.append_task(
    db,
    list_=l,
    title=payload.title,
    description=payload.description,
    priority=payload.priority,
    due_date=payload.dueDate,
    labels=[lb.model_dump() for lb in payload.labels],
    actor_id=user.id,
  )
  out = task_out(t)
  events.broadcast(l.board_id, events.TASK_CREATED, out)
  return out


@router.put("/tasks/reorder", response_model=TaskMovedOut)
async def reorder_task(payload: TaskReorderIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> TaskMovedOut:
  t = await _task_for_member(db, payload.taskId, user)
  moved = await service.move_task(
    db,
    task_id=t.id,
    source_list_id=payload.sourceListId,
    destination_list_id=payload.destinationListId,
    new_index=payload.newPosition,
    actor_id=user.id,
  )
  out = TaskMovedOut(
    task=task_out(moved.task),
    sourceListId=moved.source_list_id,
    destinationListId=moved.destination_list_id,
    newPosition=moved.new_position,
  )
  events.broadcast(moved.task.board_id, events.TASK_MOVED, out)
  return out


@router.get("/tasks/{task_id}", response_model=TaskOut)
async def get_task(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> TaskOut:
  return task_out(await _task_for_member(db, task_id, user))


@router.put("/tasks/{task_id}", response_model=TaskOut)
async def update_task(
  task_id: str,
  payload: TaskUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  t = await _task_for_member(db, task_id, user)
  fields_set = payload.model_fields_set
  changed: list[str] = []
  if payload.title:
    t.title = payload.title
    changed.append("title")
  if payload.description is not None:
    t.description = payload.description
    changed.append("description")
  if payload.priority:
    t.priority = payload.priority
    changed.append("priority")
  if "dueDate" in fields_set:
    t.due_date = payload.dueDate
    changed.append("dueDate")
  if payload.labels is not None:
    t.labels = [lb.model_dump() for lb in payload.labels]
    changed.append("labels")
  await write_activity(
    db,
    board_id=t.board_id,
    actor_id=user.id,
    action="updated_task",
    entity_type="task",
    entity_title=t.title,
    details=f"Updated {', '.join(changed)}" if changed else "",
  )
  await db.commit()
  out = task_out(t)
  events.broadcast(t.board_id, events.TASK_UPDATED, out)
  return out


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  t = await _task_for_member(db, task_id, user)
  gone = await service.delete_task(db, task_id=t.id, actor_id=user.id)
  events.broadcast(gone.board_id, events.TASK_DELETED, {"taskId": gone.id, "listId": gone.list_id, "boardId": gone.board_id})
  return {"ok": True}


@router.put("/tasks/{task_id}/assign", response_model=TaskOut)
async def assign_task(
  task_id: str,
  payload: TaskAssignIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskOut:
  t = await _task_for_member(db, task_id, user)
  if await board_role(t.board_id, payload.userId, db) is None:
    raise ValidationError("User is not a board member")
  ures = await db.execute(select(User).where(User.id == payload.userId))
  target = ures.scalar_one()
  current = {u.id for u in t.assignees}
  if payload.action == "assign":
    if target.id in current:
      return task_out(t)
    t.assignees.append(target)
    action, details = "assigned_user", f"Assigned {target.name}"
  else:
    if target.id not in current:
      return task_out(t)
    t.assignees = [u for u in t.assignees if u.id != target.id]
    action, details = "unassigned_user", f"Unassigned {target.name}"
  await write_activity(db, board_id=t.board_id, actor_id=user.id, action=action, entity_type="task", entity_title=t.title, details=details)
  await db.commit()
  out = task_out(t)
  events.broadcast(t.board_id, events.TASK_UPDATED, out)
  return out


@router.get("/boards/{board_id}/tasks/search", response_model=TaskPageOut)
async def search_tasks(
  board_id: str,
  q: str = "",
  priority: str | None = None,
  assignee: str | None = None,
  label: str | None = None,
  page: int = 1,
  limit: int = 20,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskPageOut:
  await require_board_role(board_id, "member", user, db)
  page = max(page, 1)
  limit = max(1, min(limit, 100))
  query = select(Task).where(Task.board_id == board_id)
  if q.strip():
    like = f"%{q.strip()}%"
    query = query.where(or_(Task.title.ilike(like), Task.description.ilike(like)))
  if priority:
    query = query.where(Task.priority == priority)
  if assignee:
    query = query.where(Task.id.in_(select(task_assignees.c.task_id).where(task_assignees.c.user_id == assignee)))
  res = await db.execute(query.order_by(Task.updated_at.desc()))
  tasks = list(res.scalars().all())
  # Labels live in a JSON column; match them here so every backend behaves the same.
  if label:
    wanted = label.strip().lower()
    tasks = [t for t in tasks if any(str(l.get("text", "")).lower() == wanted for l in (t.labels or []))]
  total = len(tasks)
  window = tasks[(page - 1) * limit : page * limit]
  return TaskPageOut(
    tasks=[task_out(t) for t in window],
    pagination=PaginationOut(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
  )
