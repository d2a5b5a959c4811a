"""
Local copy of one board, mutated with the same dense position rules the
server uses so an optimistic move lands where the server will put it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from taskflow.ordering.positions import insert_at, ordered, reindex, remove


def _renumber(items: list) -> None:
  for x in reindex(items):
    x.data["position"] = x.position


@dataclass
class ListState:
  id: str
  position: int
  data: dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskState:
  id: str
  list_id: str
  position: int
  data: dict[str, Any] = field(default_factory=dict)


class BoardState:
  def __init__(self, board_id: str) -> None:
    self.board_id = board_id
    self.board: dict[str, Any] | None = None
    self.lists: dict[str, ListState] = {}
    self.tasks: dict[str, TaskState] = {}

  @classmethod
  def from_detail(cls, detail: dict[str, Any]) -> "BoardState":
    st = cls(detail["board"]["id"])
    st.replace(detail)
    return st

  def replace(self, detail: dict[str, Any]) -> None:
    self.board = detail["board"]
    self.lists = {l["id"]: ListState(l["id"], l["position"], l) for l in detail.get("lists", [])}
    self.tasks = {t["id"]: TaskState(t["id"], t["listId"], t["position"], t) for t in detail.get("tasks", [])}

  def clear(self) -> None:
    self.board = None
    self.lists = {}
    self.tasks = {}

  def lists_in_order(self) -> list[ListState]:
    return ordered(list(self.lists.values()))

  def tasks_in(self, list_id: str) -> list[TaskState]:
    return ordered([t for t in self.tasks.values() if t.list_id == list_id])

  def snapshot(self) -> dict[str, list[tuple]]:
    """Order-only view used to compare two states."""
    return {
      "lists": [(l.id, l.position) for l in self.lists_in_order()],
      "tasks": sorted((t.list_id, t.position, t.id) for t in self.tasks.values()),
    }

  def move_task(self, task_id: str, destination_list_id: str, new_index: int) -> None:
    t = self.tasks[task_id]
    if destination_list_id not in self.lists:
      raise KeyError(destination_list_id)
    if t.list_id == destination_list_id:
      _renumber(insert_at(self.tasks_in(t.list_id), t, new_index))
      return
    source = remove(self.tasks_in(t.list_id), t.id)
    dest = insert_at(self.tasks_in(destination_list_id), t, new_index)
    t.list_id = destination_list_id
    t.data["listId"] = destination_list_id
    _renumber(source)
    _renumber(dest)

  def move_list(self, list_id: str, new_index: int) -> None:
    _renumber(insert_at(self.lists_in_order(), self.lists[list_id], new_index))

  def apply_list_order(self, entries: list[dict[str, Any]]) -> None:
    for e in entries:
      l = self.lists.get(e["id"])
      if l is not None:
        l.position = int(e["position"])
        l.data["position"] = l.position

  def upsert_list(self, data: dict[str, Any]) -> None:
    self.lists[data["id"]] = ListState(data["id"], data["position"], data)

  def remove_list(self, list_id: str) -> None:
    if self.lists.pop(list_id, None) is None:
      return
    for task_id in [t.id for t in self.tasks.values() if t.list_id == list_id]:
      del self.tasks[task_id]
    _renumber(self.lists_in_order())

  def upsert_task(self, data: dict[str, Any]) -> None:
    self.tasks[data["id"]] = TaskState(data["id"], data["listId"], data["position"], data)

  def remove_task(self, task_id: str) -> None:
    t = self.tasks.pop(task_id, None)
    if t is not None:
      _renumber(self.tasks_in(t.list_id))
