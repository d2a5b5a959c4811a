from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.models import ACTIVITY_ACTIONS, ENTITY_TYPES, Activity


async def write_activity(
  db: AsyncSession,
  *,
  board_id: str,
  actor_id: str,
  action: str,
  entity_type: str,
  entity_title: str = "",
  details: str = "",
) -> Activity:
  if action not in ACTIVITY_ACTIONS:
    raise ValueError(f"Unknown activity action: {action}")
  if entity_type not in ENTITY_TYPES:
    raise ValueError(f"Unknown activity entity type: {entity_type}")
  ev = Activity(
    board_id=board_id,
    actor_id=actor_id,
    action=action,
    entity_type=entity_type,
    entity_title=(entity_title or "")[:200],
    details=details or "",
  )
  db.add(ev)
  return ev
