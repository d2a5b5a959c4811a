from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder

from taskflow.realtime.hub import hub

LIST_CREATED = "list:created"
LIST_UPDATED = "list:updated"
LIST_DELETED = "list:deleted"
LISTS_REORDERED = "lists:reordered"
TASK_CREATED = "task:created"
TASK_UPDATED = "task:updated"
TASK_DELETED = "task:deleted"
TASK_MOVED = "task:moved"
BOARD_UPDATED = "board:updated"
BOARD_DELETED = "board:deleted"
MEMBER_ADDED = "member:added"
MEMBER_REMOVED = "member:removed"

BOARD_EVENTS = (
  LIST_CREATED,
  LIST_UPDATED,
  LIST_DELETED,
  LISTS_REORDERED,
  TASK_CREATED,
  TASK_UPDATED,
  TASK_DELETED,
  TASK_MOVED,
  BOARD_UPDATED,
  BOARD_DELETED,
  MEMBER_ADDED,
  MEMBER_REMOVED,
)


def broadcast(board_id: str, event: str, data: Any) -> int:
  """Push a board-scoped mutation to everyone on the board channel."""
  if event not in BOARD_EVENTS:
    raise ValueError(f"Unknown board event: {event}")
  return hub.publish(board_id, event, jsonable_encoder(data))
