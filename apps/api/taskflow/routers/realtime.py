from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from taskflow.db import SessionLocal
from taskflow.deps import board_role, user_for_token
from taskflow.realtime.hub import Subscriber, hub
from taskflow.security import SESSION_COOKIE_NAME, bearer_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _credential(websocket: WebSocket, token: str | None) -> str | None:
  return token or bearer_token(websocket.headers.get("authorization")) or websocket.cookies.get(SESSION_COOKIE_NAME)


async def _join(sub: Subscriber, board_id: str) -> None:
  async with SessionLocal() as db:
    role = await board_role(board_id, sub.user_id, db)
  if role is None:
    sub.offer({"type": "error", "boardId": board_id, "message": "Access denied"})
    return
  hub.join(sub, board_id)
  sub.offer({"type": "board:joined", "boardId": board_id, "seq": hub.current_seq(board_id), "origin": hub.origin})


async def _handle(sub: Subscriber, raw: str) -> None:
  try:
    msg = json.loads(raw)
  except ValueError:
    sub.offer({"type": "error", "message": "Invalid message"})
    return
  if not isinstance(msg, dict):
    sub.offer({"type": "error", "message": "Invalid message"})
    return
  kind = msg.get("type")
  board_id = msg.get("boardId")
  if kind == "ping":
    sub.offer({"type": "pong"})
  elif kind in ("board:join", "board:leave"):
    if not isinstance(board_id, str) or not board_id:
      sub.offer({"type": "error", "message": "boardId is required"})
    elif kind == "board:join":
      await _join(sub, board_id)
    else:
      hub.leave(sub, board_id)
      sub.offer({"type": "board:left", "boardId": board_id})
  else:
    sub.offer({"type": "error", "message": f"Unknown message type: {kind}"})


@router.websocket("/ws")
async def board_socket(websocket: WebSocket, token: str | None = None) -> None:
  async with SessionLocal() as db:
    user = await user_for_token(db, _credential(websocket, token))
  if not user:
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication error")
    return

  await websocket.accept()
  sub = hub.register(websocket, user.id)
  writer = asyncio.create_task(sub.run_writer())
  try:
    while True:
      raw = await websocket.receive_text()
      await _handle(sub, raw)
  except WebSocketDisconnect:
    pass
  finally:
    hub.unregister(sub)
    writer.cancel()
    try:
      await writer
    except asyncio.CancelledError:
      pass
