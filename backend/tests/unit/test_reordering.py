"""Tests for ordered-collection reordering."""

from types import SimpleNamespace

import pytest

from app.core.errors import NotFoundError
from app.services.reordering import (
    OrderedItem,
    apply_order_keys,
    densify,
    next_order_key,
    reorder,
)


def _items(*ids: int) -> list[OrderedItem]:
    return [
        OrderedItem(id=i, parent_id=1, order_key=pos) for pos, i in enumerate(ids, 1)
    ]


def _order(items: list[OrderedItem]) -> list[int]:
    return [item.id for item in sorted(items, key=lambda item: item.order_key)]


class TestReorder:
    def test_move_down(self):
        result = reorder(_items(10, 20, 30, 40), 10, 3)
        assert _order(result) == [20, 30, 10, 40]

    def test_move_up(self):
        result = reorder(_items(10, 20, 30, 40), 40, 1)
        assert _order(result) == [40, 10, 20, 30]

    def test_keys_are_dense_one_based(self):
        result = reorder(_items(10, 20, 30, 40), 20, 4)
        assert sorted(item.order_key for item in result) == [1, 2, 3, 4]

    def test_position_above_count_appends(self):
        result = reorder(_items(10, 20, 30), 10, 99)
        assert _order(result) == [20, 30, 10]

    def test_position_below_one_moves_to_front(self):
        result = reorder(_items(10, 20, 30), 30, -5)
        assert _order(result) == [30, 10, 20]

    def test_same_position_is_idempotent(self):
        items = _items(10, 20, 30)
        result = reorder(items, 20, 2)
        assert result == items

    def test_single_item(self):
        result = reorder(_items(10), 10, 5)
        assert [(i.id, i.order_key) for i in result] == [(10, 1)]

    def test_unknown_item_raises_not_found(self):
        with pytest.raises(NotFoundError):
            reorder(_items(10, 20), 99, 1)

    def test_ranks_by_key_not_by_list_position(self):
        # Rows as a lock waiter may receive them after another move committed
        items = [
            OrderedItem(id=1, parent_id=1, order_key=2),
            OrderedItem(id=2, parent_id=1, order_key=3),
            OrderedItem(id=3, parent_id=1, order_key=1),
        ]
        result = reorder(items, 1, 3)
        assert _order(result) == [3, 2, 1]


class TestNextOrderKey:
    def test_empty_collection_starts_at_one(self):
        assert next_order_key([]) == 1

    def test_appends_after_max(self):
        assert next_order_key(_items(10, 20, 30)) == 4


class TestDensify:
    def test_closes_gap_after_delete(self):
        items = [
            OrderedItem(id=10, parent_id=1, order_key=1),
            OrderedItem(id=30, parent_id=1, order_key=3),
            OrderedItem(id=40, parent_id=1, order_key=4),
        ]
        result = densify(items)
        assert [(i.id, i.order_key) for i in result] == [(10, 1), (30, 2), (40, 3)]


class TestApplyOrderKeys:
    def test_writes_only_changed_rows(self):
        rows = [
            SimpleNamespace(id=10, order_id=1),
            SimpleNamespace(id=20, order_id=2),
            SimpleNamespace(id=30, order_id=3),
        ]
        items = [OrderedItem(id=r.id, parent_id=1, order_key=r.order_id) for r in rows]

        changed = apply_order_keys(rows, reorder(items, 30, 1))

        assert changed == 3
        assert {r.id: r.order_id for r in rows} == {30: 1, 10: 2, 20: 3}

    def test_no_change_returns_zero(self):
        rows = [SimpleNamespace(id=10, order_id=1)]
        items = [OrderedItem(id=10, parent_id=1, order_key=1)]
        assert apply_order_keys(rows, reorder(items, 10, 1)) == 0
