"""Tests for grouping orders into per-user histories."""

import pytest

from basketmarkov.errors import MalformedInputError
from basketmarkov.markov.sequences import (
    OrderRecord,
    UserHistory,
    as_records,
    build_sequences,
    group_orders,
)


class TestGroupOrders:

    def test_groups_by_user(self, toy_records):
        groups = group_orders(toy_records)
        assert set(groups) == {1, 2}
        assert len(groups[1]) == 3
        assert len(groups[2]) == 1

    def test_empty_stream(self):
        assert group_orders([]) == {}


class TestUserHistory:

    def test_sorted_by_order_number(self, toy_records):
        history = UserHistory.from_orders(1, group_orders(toy_records)[1], n_items=3)
        assert [o.order_number for o in history.orders] == [1, 2, 3]
        assert history.item_sets == [frozenset({1, 2}), frozenset({2, 3}), frozenset({2})]
        assert len(history) == 3

    def test_touched_items(self, toy_records):
        history = UserHistory.from_orders(1, group_orders(toy_records)[1], n_items=3)
        assert history.touched_items == [1, 2, 3]

    def test_single_order_is_valid(self):
        history = UserHistory.from_orders(9, as_records(9, [{4}]), n_items=5)
        assert len(history) == 1

    def test_duplicate_order_number_raises(self):
        orders = [
            OrderRecord(1, 10, 1, frozenset({1})),
            OrderRecord(1, 11, 1, frozenset({2})),
        ]
        with pytest.raises(MalformedInputError, match="share order_number") as exc:
            UserHistory.from_orders(1, orders, n_items=3)
        assert exc.value.user_id == 1

    @pytest.mark.parametrize("item", [0, 4, -1])
    def test_item_out_of_range_raises(self, item):
        with pytest.raises(MalformedInputError, match="outside catalog"):
            UserHistory.from_orders(1, as_records(1, [{1}, {item}]), n_items=3)

    def test_empty_history_raises(self):
        with pytest.raises(MalformedInputError, match="no orders"):
            UserHistory.from_orders(1, [], n_items=3)

    def test_foreign_order_raises(self):
        orders = as_records(1, [{1}]) + [OrderRecord(2, 99, 2, frozenset({1}))]
        with pytest.raises(MalformedInputError, match="belongs to user 2"):
            UserHistory.from_orders(1, orders, n_items=3)


class TestBuildSequences:

    def test_builds_every_user(self, toy_records):
        histories = build_sequences(toy_records, n_items=3)
        assert set(histories) == {1, 2}
        assert histories[2].item_sets == [frozenset({1})]

    def test_first_malformed_user_raises(self, toy_records):
        bad = toy_records + [OrderRecord(3, 300, 1, frozenset({50}))]
        with pytest.raises(MalformedInputError):
            build_sequences(bad, n_items=3)
