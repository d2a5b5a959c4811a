from __future__ import annotations

from dataclasses import dataclass

from taskflow.ordering.positions import clamp_index, insert_at, is_dense, next_position, ordered, reindex, remove


@dataclass
class Item:
  id: str
  position: int


def _scope(*ids: str) -> list[Item]:
  return [Item(x, i) for i, x in enumerate(ids)]


def _view(items: list[Item]) -> list[tuple[str, int]]:
  return [(x.id, x.position) for x in ordered(items)]


def test_next_position_appends_or_starts_at_zero() -> None:
  assert next_position(None) == 0
  assert next_position(0) == 1
  assert next_position(4) == 5


def test_clamp_index_bounds() -> None:
  assert clamp_index(-3, 2) == 0
  assert clamp_index(1, 2) == 1
  assert clamp_index(99, 2) == 2


def test_same_scope_move_to_end() -> None:
  items = _scope("A", "B", "C")
  reindex(insert_at(items, items[0], 2))
  assert _view(items) == [("B", 0), ("C", 1), ("A", 2)]


def test_move_to_front_shifts_others_back() -> None:
  items = _scope("A", "B", "C")
  reindex(insert_at(items, items[2], 0))
  assert _view(items) == [("C", 0), ("A", 1), ("B", 2)]


def test_index_past_end_appends_and_negative_prepends() -> None:
  items = _scope("A", "B", "C")
  reindex(insert_at(items, items[1], 50))
  assert _view(items) == [("A", 0), ("C", 1), ("B", 2)]
  reindex(insert_at(items, items[1], -7))
  assert _view(items) == [("B", 0), ("A", 1), ("C", 2)]


def test_cross_scope_move() -> None:
  l1 = _scope("A", "B")
  l2 = _scope("C")
  a = l1[0]
  src = remove(l1, a.id)
  dest = insert_at(l2, a, 0)
  reindex(src)
  reindex(dest)
  assert _view(src) == [("B", 0)]
  assert _view(dest) == [("A", 0), ("C", 1)]


def test_reindex_returns_only_changed_items() -> None:
  items = [Item("A", 0), Item("B", 5), Item("C", 2)]
  changed = reindex(items)
  assert [x.id for x in changed] == ["B", "C"]
  assert is_dense([x.position for x in items])


def test_ordered_keeps_incoming_order_on_ties() -> None:
  items = [Item("A", 1), Item("B", 0), Item("C", 1)]
  assert [x.id for x in ordered(items)] == ["B", "A", "C"]


def test_is_dense() -> None:
  assert is_dense([])
  assert is_dense([2, 0, 1])
  assert not is_dense([0, 2])
  assert not is_dense([0, 0, 1])


def test_every_move_sequence_stays_dense() -> None:
  items = _scope("A", "B", "C", "D", "E")
  moves = [("A", 4), ("E", 0), ("C", 2), ("B", -1), ("D", 10), ("A", 1), ("C", 0)]
  by_id = {x.id: x for x in items}
  for item_id, index in moves:
    arr = insert_at(ordered(items), by_id[item_id], index)
    reindex(arr)
    assert is_dense([x.position for x in items])
    assert ordered(items)[clamp_index(index, len(items) - 1)].id == item_id
