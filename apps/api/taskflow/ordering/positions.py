"""
Dense position model shared by the server engine and the client state.

A scope is a sequence of siblings (a board's lists or a list's tasks). Every
mutation leaves the scope with positions 0..n-1 in display order.
"""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar


class Positioned(Protocol):
  id: str
  position: int


T = TypeVar("T", bound=Positioned)


def next_position(max_position: int | None) -> int:
  return (max_position + 1) if max_position is not None else 0


def clamp_index(index: int, size: int) -> int:
  return max(0, min(int(index), size))


def ordered(items: Sequence[T]) -> list[T]:
  # sorted() is stable, so equal positions keep their incoming order.
  return sorted(items, key=lambda x: x.position)


def insert_at(items: Sequence[T], item: T, index: int) -> list[T]:
  """
  Return the scope with `item` placed at `index`.

  `item` is first removed by id if present, then the index is clamped to the
  remaining size. The moved item takes the slot; displaced siblings shift
  toward the end.
  """
  rest = [x for x in items if x.id != item.id]
  rest.insert(clamp_index(index, len(rest)), item)
  return rest


def remove(items: Sequence[T], item_id: str) -> list[T]:
  return [x for x in items if x.id != item_id]


def reindex(items: Sequence[T]) -> list[T]:
  """Assign 0..n-1 in sequence order and return the items that changed."""
  changed: list[T] = []
  for idx, x in enumerate(items):
    if x.position != idx:
      x.position = idx
      changed.append(x)
  return changed


def is_dense(positions: Sequence[int]) -> bool:
  return sorted(positions) == list(range(len(positions)))
