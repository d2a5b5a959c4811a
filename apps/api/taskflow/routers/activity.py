from __future__ import annotations

import math

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.deps import get_current_user, get_db, require_board_role
from taskflow.models import Activity, User
from taskflow.routers.auth import user_out
from taskflow.schemas import ActivityOut, ActivityPageOut, PaginationOut

router = APIRouter(tags=["activity"])


@router.get("/boards/{board_id}/activity", response_model=ActivityPageOut)
async def list_activity(
  board_id: str,
  page: int = 1,
  limit: int = 20,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ActivityPageOut:
  await require_board_role(board_id, "member", user, db)
  page = max(page, 1)
  limit = max(1, min(limit, 100))
  total = (await db.execute(select(func.count(Activity.id)).where(Activity.board_id == board_id))).scalar_one()
  res = await db.execute(
    select(Activity, User)
    .outerjoin(User, User.id == Activity.actor_id)
    .where(Activity.board_id == board_id)
    .order_by(Activity.created_at.desc())
    .offset((page - 1) * limit)
    .limit(limit)
  )
  out = []
  for ev, actor in res.all():
    out.append(
      ActivityOut(
        id=ev.id,
        boardId=ev.board_id,
        actor=user_out(actor) if actor else None,
        action=ev.action,
        entityType=ev.entity_type,
        entityTitle=ev.entity_title,
        details=ev.details,
        createdAt=ev.created_at,
      )
    )
  return ActivityPageOut(activities=out, pagination=PaginationOut(page=page, limit=limit, total=total, pages=math.ceil(total / limit)))
