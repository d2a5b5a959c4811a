from __future__ import annotations

import math

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.activity import write_activity
from taskflow.deps import get_current_user, get_db, require_board_role
from taskflow.errors import NotFoundError, ValidationError
from taskflow.models import Activity, Board, BoardMember, List, Task, User, task_assignees
from taskflow.realtime import events
from taskflow.realtime.hub import hub
from taskflow.routers.auth import user_out
from taskflow.routers.lists import list_out
from taskflow.routers.tasks import task_out
from taskflow.schemas import BoardCreateIn, BoardDetailOut, BoardOut, BoardPageOut, BoardUpdateIn, MemberAddIn, PaginationOut

router = APIRouter(prefix="/boards", tags=["boards"])


async def board_out(db: AsyncSession, b: Board) -> BoardOut:
  res = await db.execute(
    select(User)
    .join(BoardMember, BoardMember.user_id == User.id)
    .where(BoardMember.board_id == b.id)
    .order_by(BoardMember.created_at.asc())
  )
  members = res.scalars().all()
  owner = next((m for m in members if m.id == b.owner_id), None)
  return BoardOut(
    id=b.id,
    title=b.title,
    description=b.description,
    background=b.background,
    ownerId=b.owner_id,
    owner=user_out(owner) if owner else None,
    members=[user_out(m) for m in members],
    createdAt=b.created_at,
    updatedAt=b.updated_at,
  )


async def get_board_or_404(db: AsyncSession, board_id: str) -> Board:
  res = await db.execute(select(Board).where(Board.id == board_id))
  b = res.scalar_one_or_none()
  if not b:
    raise NotFoundError("Board not found")
  return b


async def _delete_board_everything(db: AsyncSession, *, board_id: str) -> None:
  await db.execute(delete(task_assignees).where(task_assignees.c.task_id.in_(select(Task.id).where(Task.board_id == board_id))))
  await db.execute(delete(Task).where(Task.board_id == board_id))
  await db.execute(delete(List).where(List.board_id == board_id))
  await db.execute(delete(Activity).where(Activity.board_id == board_id))
  await db.execute(delete(BoardMember).where(BoardMember.board_id == board_id))
  await db.execute(delete(Board).where(Board.id == board_id))


@router.get("", response_model=BoardPageOut)
async def list_boards(
  search: str = "",
  page: int = 1,
  limit: int = 12,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardPageOut:
  page = max(page, 1)
  limit = max(1, min(limit, 100))
  q = select(Board).join(BoardMember, BoardMember.board_id == Board.id).where(BoardMember.user_id == user.id)
  if search.strip():
    q = q.where(Board.title.ilike(f"%{search.strip()}%"))
  total = (await db.execute(select(func.count()).select_from(q.subquery()))).scalar_one()
  res = await db.execute(q.order_by(Board.updated_at.desc()).offset((page - 1) * limit).limit(limit))
  boards = [await board_out(db, b) for b in res.scalars().all()]
  return BoardPageOut(boards=boards, pagination=PaginationOut(page=page, limit=limit, total=total, pages=math.ceil(total / limit)))


@router.post("", response_model=BoardOut, status_code=status.HTTP_201_CREATED)
async def create_board(payload: BoardCreateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  b = Board(title=payload.title, description=payload.description, background=payload.background or "#6366f1", owner_id=user.id)
  db.add(b)
  await db.flush()
  db.add(BoardMember(board_id=b.id, user_id=user.id, role="owner"))
  await write_activity(db, board_id=b.id, actor_id=user.id, action="created_board", entity_type="board", entity_title=b.title)
  await db.commit()
  return await board_out(db, b)


@router.get("/{board_id}", response_model=BoardDetailOut)
async def get_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardDetailOut:
  b = await get_board_or_404(db, board_id)
  await require_board_role(board_id, "member", user, db)
  lres = await db.execute(select(List).where(List.board_id == board_id).order_by(List.position.asc()))
  tres = await db.execute(select(Task).where(Task.board_id == board_id).order_by(Task.list_id.asc(), Task.position.asc()))
  return BoardDetailOut(
    board=await board_out(db, b),
    lists=[list_out(l) for l in lres.scalars().all()],
    tasks=[task_out(t) for t in tres.scalars().all()],
  )


@router.put("/{board_id}", response_model=BoardOut)
async def update_board(
  board_id: str,
  payload: BoardUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardOut:
  b = await get_board_or_404(db, board_id)
  await require_board_role(board_id, "owner", user, db)
  if payload.title:
    b.title = payload.title
  if payload.description is not None:
    b.description = payload.description
  if payload.background:
    b.background = payload.background
  await write_activity(db, board_id=b.id, actor_id=user.id, action="updated_board", entity_type="board", entity_title=b.title)
  await db.commit()
  out = await board_out(db, b)
  events.broadcast(b.id, events.BOARD_UPDATED, out)
  return out


@router.delete("/{board_id}")
async def delete_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  await get_board_or_404(db, board_id)
  await require_board_role(board_id, "owner", user, db)
  await _delete_board_everything(db, board_id=board_id)
  await db.commit()
  events.broadcast(board_id, events.BOARD_DELETED, {"boardId": board_id})
  hub.close_channel(board_id)
  return {"ok": True}


@router.post("/{board_id}/members", response_model=BoardOut)
async def add_member(
  board_id: str,
  payload: MemberAddIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardOut:
  b = await get_board_or_404(db, board_id)
  await require_board_role(board_id, "member", user, db)
  ures = await db.execute(select(User).where(User.id == payload.userId))
  added = ures.scalar_one_or_none()
  if not added:
    raise NotFoundError("User not found")
  mres = await db.execute(select(BoardMember.id).where(BoardMember.board_id == board_id, BoardMember.user_id == added.id))
  if mres.scalar_one_or_none():
    raise ValidationError("User is already a member")
  db.add(BoardMember(board_id=board_id, user_id=added.id, role="member"))
  await write_activity(
    db,
    board_id=board_id,
    actor_id=user.id,
    action="added_member",
    entity_type="user",
    entity_title=added.name,
    details=f"{user.name} added {added.name} to the board",
  )
  await db.commit()
  out = await board_out(db, b)
  events.broadcast(board_id, events.MEMBER_ADDED, {"board": out, "member": user_out(added)})
  return out


@router.delete("/{board_id}/members/{member_id}", response_model=BoardOut)
async def remove_member(
  board_id: str,
  member_id: str,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardOut:
  b = await get_board_or_404(db, board_id)
  await require_board_role(board_id, "owner", user, db)
  if member_id == b.owner_id:
    raise ValidationError("Cannot remove the board owner")
  mres = await db.execute(select(BoardMember).where(BoardMember.board_id == board_id, BoardMember.user_id == member_id))
  m = mres.scalar_one_or_none()
  if not m:
    raise NotFoundError("User is not a member")
  ures = await db.execute(select(User.name).where(User.id == member_id))
  removed_name = ures.scalar_one_or_none() or "user"
  await db.delete(m)
  # Removed members keep no assignments on the board.
  await db.execute(
    delete(task_assignees).where(
      task_assignees.c.user_id == member_id,
      task_assignees.c.task_id.in_(select(Task.id).where(Task.board_id == board_id)),
    )
  )
  await write_activity(
    db,
    board_id=board_id,
    actor_id=user.id,
    action="removed_member",
    entity_type="user",
    entity_title=removed_name,
    details=f"{user.name} removed {removed_name} from the board",
  )
  await db.commit()
  out = await board_out(db, b)
  events.broadcast(board_id, events.MEMBER_REMOVED, {"board": out, "userId": member_id})
  hub.evict(board_id, member_id, reason="membership revoked")
  return out
