from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Callable, Protocol

from starlette.websockets import WebSocketDisconnect

from taskflow.config import settings

logger = logging.getLogger(__name__)


class Outbound(Protocol):
  async def send_json(self, data: Any) -> None: ...


def channel_name(board_id: str) -> str:
  return f"board:{board_id}"


class Subscriber:
  """
  One connected client.

  Outbound messages go through a bounded queue drained by `run_writer`, so a
  slow socket never blocks the publisher and per-connection order is the
  order messages were offered.
  """

  def __init__(self, socket: Outbound, user_id: str, *, queue_size: int = 256) -> None:
    self.id = uuid.uuid4().hex
    self.socket = socket
    self.user_id = user_id
    self.boards: set[str] = set()
    self.dropped = 0
    self.closed = False
    self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=max(1, queue_size))

  def offer(self, message: dict[str, Any]) -> bool:
    if self.closed:
      return False
    try:
      self._queue.put_nowait(message)
    except asyncio.QueueFull:
      self.dropped += 1
      logger.warning("subscriber %s queue full; dropped %s", self.id, message.get("type"))
      return False
    return True

  def pending(self) -> int:
    return self._queue.qsize()

  async def run_writer(self) -> None:
    while not self.closed:
      message = await self._queue.get()
      try:
        await self.socket.send_json(message)
      except (WebSocketDisconnect, RuntimeError, OSError) as exc:
        self.closed = True
        logger.info("subscriber %s went away (%s); dropping undelivered events", self.id, type(exc).__name__)
        return


class BoardHub:
  """In-process board channels with per-board event sequence numbers."""

  def __init__(self, *, queue_size: int = 256) -> None:
    self.origin = uuid.uuid4().hex[:12]
    self.queue_size = queue_size
    self._channels: dict[str, set[Subscriber]] = {}
    self._seq: dict[str, int] = {}
    self._forward: Callable[[dict[str, Any]], None] | None = None

  def set_forwarder(self, forward: Callable[[dict[str, Any]], None] | None) -> None:
    self._forward = forward

  def register(self, socket: Outbound, user_id: str) -> Subscriber:
    sub = Subscriber(socket, user_id, queue_size=self.queue_size)
    logger.info("subscriber %s connected for user %s", sub.id, user_id)
    return sub

  def unregister(self, sub: Subscriber) -> None:
    for board_id in list(sub.boards):
      self.leave(sub, board_id)
    sub.closed = True
    logger.info("subscriber %s disconnected", sub.id)

  def join(self, sub: Subscriber, board_id: str) -> None:
    self._channels.setdefault(board_id, set()).add(sub)
    sub.boards.add(board_id)
    logger.info("subscriber %s joined %s", sub.id, channel_name(board_id))

  def leave(self, sub: Subscriber, board_id: str) -> None:
    members = self._channels.get(board_id)
    if members is not None:
      members.discard(sub)
      if not members:
        del self._channels[board_id]
    sub.boards.discard(board_id)

  def subscribers(self, board_id: str) -> list[Subscriber]:
    return list(self._channels.get(board_id, ()))

  def current_seq(self, board_id: str) -> int:
    return self._seq.get(board_id, 0)

  def publish(self, board_id: str, event: str, data: Any) -> int:
    """Stamp, fan out locally and hand to the relay. Returns local deliveries."""
    seq = self._seq.get(board_id, 0) + 1
    self._seq[board_id] = seq
    message = {"type": event, "boardId": board_id, "seq": seq, "origin": self.origin, "data": data}
    delivered = self.deliver(message)
    if self._forward is not None:
      self._forward(message)
    return delivered

  def deliver(self, message: dict[str, Any]) -> int:
    delivered = 0
    for sub in self.subscribers(message["boardId"]):
      if sub.offer(message):
        delivered += 1
    logger.debug("%s on %s -> %s subscriber(s)", message["type"], channel_name(message["boardId"]), delivered)
    return delivered

  def evict(self, board_id: str, user_id: str, *, reason: str) -> int:
    evicted = 0
    for sub in self.subscribers(board_id):
      if sub.user_id != user_id:
        continue
      self.leave(sub, board_id)
      sub.offer({"type": "board:left", "boardId": board_id, "reason": reason})
      evicted += 1
    if evicted:
      logger.info("evicted user %s from %s (%s)", user_id, channel_name(board_id), reason)
    return evicted

  def close_channel(self, board_id: str) -> None:
    for sub in self.subscribers(board_id):
      self.leave(sub, board_id)
    self._seq.pop(board_id, None)

  def reset(self) -> None:
    for board_id in list(self._channels):
      self.close_channel(board_id)
    self._seq.clear()
    self._forward = None

  def stats(self) -> dict[str, int]:
    return {
      "channels": len(self._channels),
      "subscriptions": sum(len(v) for v in self._channels.values()),
    }


hub = BoardHub(queue_size=settings.realtime_queue_size)
