from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from taskflow.realtime.hub import BoardHub

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "taskflow:board:"


class RedisRelay:
  """
  Shares board channels between API processes over Redis pub/sub.

  Local subscribers are served directly by the hub; the relay only forwards
  events to other processes and replays theirs locally. Messages stamped with
  this hub's origin are ignored on the way back in.
  """

  def __init__(self, url: str, hub: BoardHub) -> None:
    self._redis = aioredis.from_url(url, decode_responses=True)
    self._hub = hub
    self._listener: asyncio.Task | None = None
    self._inflight: set[asyncio.Task] = set()

  async def start(self) -> None:
    self._hub.set_forwarder(self.forward)
    self._listener = asyncio.create_task(self._listen())
    logger.info("redis relay started for origin %s", self._hub.origin)

  async def stop(self) -> None:
    self._hub.set_forwarder(None)
    if self._listener is not None:
      self._listener.cancel()
      try:
        await self._listener
      except asyncio.CancelledError:
        pass
      self._listener = None
    await self._redis.aclose()

  def forward(self, message: dict[str, Any]) -> None:
    task = asyncio.create_task(self._publish(message))
    self._inflight.add(task)
    task.add_done_callback(self._inflight.discard)

  async def _publish(self, message: dict[str, Any]) -> None:
    try:
      await self._redis.publish(CHANNEL_PREFIX + message["boardId"], json.dumps(message))
    except RedisError:
      logger.warning("relay publish failed for %s on board %s", message.get("type"), message.get("boardId"), exc_info=True)

  async def _listen(self) -> None:
    while True:
      pubsub = self._redis.pubsub()
      try:
        await pubsub.psubscribe(CHANNEL_PREFIX + "*")
        async for raw in pubsub.listen():
          if raw.get("type") != "pmessage":
            continue
          self.accept(raw.get("data"))
      except RedisError:
        logger.warning("relay subscription lost; retrying", exc_info=True)
        await asyncio.sleep(1.0)
      finally:
        await pubsub.aclose()

  def accept(self, data: str | None) -> bool:
    try:
      message = json.loads(data or "")
    except ValueError:
      logger.warning("relay ignored malformed message")
      return False
    if not isinstance(message, dict) or "boardId" not in message or "type" not in message:
      return False
    if message.get("origin") == self._hub.origin:
      return False
    self._hub.deliver(message)
    return True
