from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.activity import write_activity
from taskflow.deps import get_current_user, get_db, require_board_role
from taskflow.errors import NotFoundError
from taskflow.models import Board, List, User
from taskflow.ordering import service
from taskflow.realtime import events
from taskflow.schemas import ListCreateIn, ListMoveIn, ListOrderOut, ListOut, ListReorderIn, ListUpdateIn

router = APIRouter(tags=["lists"])


def list_out(l: List) -> ListOut:
  return ListOut(
    id=l.id,
    boardId=l.board_id,
    title=l.title,
    position=l.position,
    createdAt=l.created_at,
    updatedAt=l.updated_at,
  )


def _order_out(arr: list[List]) -> list[ListOrderOut]:
  return [ListOrderOut(id=l.id, position=l.position) for l in arr]


async def _board_for_member(db: AsyncSession, board_id: str, user: User) -> Board:
  res = await db.execute(select(Board).where(Board.id == board_id))
  b = res.scalar_one_or_none()
  if not b:
    raise NotFoundError("Board not found")
  await require_board_role(board_id, "member", user, db)
  return b


async def _list_for_member(db: AsyncSession, list_id: str, user: User) -> List:
  res = await db.execute(select(List).where(List.id == list_id))
  l = res.scalar_one_or_none()
  if not l:
    raise NotFoundError("List not found")
  await require_board_role(l.board_id, "member", user, db)
  return l


@router.get("/boards/{board_id}/lists", response_model=list[ListOut])
async def get_lists(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ListOut]:
  await _board_for_member(db, board_id, user)
  return [list_out(l) for l in await service.board_lists(db, board_id)]


@router.post("/boards/{board_id}/lists", response_model=ListOut, status_code=status.HTTP_201_CREATED)
async def create_list(
  board_id: str,
  payload: ListCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ListOut:
  await _board_for_member(db, board_id, user)
  l = await service.append_list(db, board_id=board_id, title=payload.title, actor_id=user.id)
  out = list_out(l)
  events.broadcast(board_id, events.LIST_CREATED, out)
  return out


@router.put("/boards/{board_id}/lists/reorder", response_model=list[ListOrderOut])
async def reorder_lists(
  board_id: str,
  payload: ListReorderIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[ListOrderOut]:
  await _board_for_member(db, board_id, user)
  arr = await service.apply_list_order(db, board_id=board_id, entries=[(e.listId, e.position) for e in payload.lists])
  out = _order_out(arr)
  events.broadcast(board_id, events.LISTS_REORDERED, out)
  return out


@router.put("/lists/{list_id}/move", response_model=list[ListOrderOut])
async def move_list(
  list_id: str,
  payload: ListMoveIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[ListOrderOut]:
  l = await _list_for_member(db, list_id, user)
  moved = await service.move_list(db, list_id=l.id, new_index=payload.newIndex)
  out = _order_out(moved.lists)
  events.broadcast(l.board_id, events.LISTS_REORDERED, out)
  return out


@router.put("/lists/{list_id}", response_model=ListOut)
async def update_list(
  list_id: str,
  payload: ListUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ListOut:
  l = await _list_for_member(db, list_id, user)
  if payload.title:
    l.title = payload.title
  await write_activity(db, board_id=l.board_id, actor_id=user.id, action="updated_list", entity_type="list", entity_title=l.title)
  await db.commit()
  out = list_out(l)
  events.broadcast(l.board_id, events.LIST_UPDATED, out)
  return out


@router.delete("/lists/{list_id}")
async def delete_list(list_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  l = await _list_for_member(db, list_id, user)
  await service.delete_list(db, list_id=l.id, actor_id=user.id)
  events.broadcast(l.board_id, events.LIST_DELETED, {"listId": l.id, "boardId": l.board_id})
  return {"ok": True}
