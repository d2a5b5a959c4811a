from __future__ import annotations

import logging
from typing import Any

import httpx

from taskflow.client.api import TaskflowApiError, TaskflowClient
from taskflow.client.state import BoardState

logger = logging.getLogger(__name__)


class BoardSync:
  """
  Optimistic board replica.

  Moves are applied locally first and then sent to the API. A failed request
  throws the optimistic state away and reloads the board from the server
  before the error is re-raised. Broadcast events are merged with
  `handle_event`; each handler is idempotent, so replays and the echo of this
  client's own moves leave the state unchanged.

  `task:moved` from other clients reloads the board unless `incremental_moves`
  is set, in which case the move is patched in with the shared position rules.
  """

  def __init__(self, api: TaskflowClient, board_id: str, *, incremental_moves: bool = False) -> None:
    self.api = api
    self.board_id = board_id
    self.incremental_moves = incremental_moves
    self.state = BoardState(board_id)
    self.deleted = False
    self.joined = False
    self.refetches = 0
    self._seq: dict[str, int] = {}
    self._own_moves: set[tuple[str, str, int]] = set()

  async def refresh(self) -> BoardState:
    self.state.replace(await self.api.get_board(self.board_id))
    self.refetches += 1
    return self.state

  async def move_task(self, task_id: str, destination_list_id: str, new_index: int) -> dict:
    source_list_id = self.state.tasks[task_id].list_id
    self.state.move_task(task_id, destination_list_id, new_index)
    # The echo can arrive before the response.
    expected = (task_id, destination_list_id, self.state.tasks[task_id].position)
    self._own_moves.add(expected)
    try:
      res = await self.api.reorder_task(
        task_id=task_id,
        source_list_id=source_list_id,
        destination_list_id=destination_list_id,
        new_position=new_index,
      )
    except (TaskflowApiError, httpx.HTTPError):
      self._own_moves.discard(expected)
      logger.warning("move of task %s failed; reloading board %s", task_id, self.board_id)
      await self.refresh()
      raise
    if (task_id, res["destinationListId"], res["newPosition"]) != expected:
      # Local state was stale; the echo reloads the board.
      self._own_moves.discard(expected)
    return res

  async def move_list(self, list_id: str, new_index: int) -> list[dict]:
    self.state.move_list(list_id, new_index)
    try:
      order = await self.api.move_list(list_id, new_index)
    except (TaskflowApiError, httpx.HTTPError):
      logger.warning("move of list %s failed; reloading board %s", list_id, self.board_id)
      await self.refresh()
      raise
    self.state.apply_list_order(order)
    return order

  def _gap(self, message: dict[str, Any]) -> bool:
    seq = message.get("seq")
    if not isinstance(seq, int):
      return False
    origin = str(message.get("origin") or "")
    last = self._seq.get(origin)
    if last is not None and seq <= last:
      return False
    self._seq[origin] = seq
    return last is not None and seq > last + 1

  async def handle_event(self, message: dict[str, Any]) -> None:
    if message.get("boardId") != self.board_id:
      return
    kind = message.get("type")
    if kind == "board:joined":
      self.joined = True
      if isinstance(message.get("seq"), int):
        self._seq[str(message.get("origin") or "")] = message["seq"]
      return
    if kind == "board:left":
      self.joined = False
      return

    if self._gap(message):
      logger.info("board %s missed events before seq %s; reloading", self.board_id, message.get("seq"))
      await self.refresh()
      self._own_moves.clear()
      return

    data = message.get("data") or {}
    if kind == "task:moved":
      await self._task_moved(data)
    elif kind in ("task:created", "task:updated"):
      self.state.upsert_task(data)
    elif kind == "task:deleted":
      self.state.remove_task(data["taskId"])
    elif kind in ("list:created", "list:updated"):
      self.state.upsert_list(data)
    elif kind == "list:deleted":
      self.state.remove_list(data["listId"])
    elif kind == "lists:reordered":
      self.state.apply_list_order(data)
    elif kind in ("board:updated", "member:added", "member:removed"):
      self.state.board = data.get("board", data)
    elif kind == "board:deleted":
      self.state.clear()
      self.deleted = True
    else:
      logger.debug("ignoring %s on board %s", kind, self.board_id)

  async def _task_moved(self, data: dict[str, Any]) -> None:
    task = data["task"]
    key = (task["id"], data["destinationListId"], data["newPosition"])
    own = key in self._own_moves
    if not (own or self.incremental_moves):
      await self.refresh()
      return
    self._own_moves.discard(key)
    if task["id"] not in self.state.tasks:
      await self.refresh()
      return
    self.state.move_task(task["id"], data["destinationListId"], data["newPosition"])
    self.state.tasks[task["id"]].data = task
