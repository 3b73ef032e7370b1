"""
Grouping of raw order rows into per-user, chronologically sorted histories.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from basketmarkov.errors import MalformedInputError


@dataclass(frozen=True)
class OrderRecord:
    user_id: int
    order_id: int
    order_number: int
    items: FrozenSet[int]


@dataclass(frozen=True)
class UserHistory:
    """A user's orders sorted by ``order_number``; at least one order long."""

    user_id: int
    orders: Tuple[OrderRecord, ...]

    @classmethod
    def from_orders(cls, user_id: int, orders: Iterable[OrderRecord], n_items: int) -> UserHistory:
        """
        Sort ``orders`` chronologically and validate them.

        Raises ``MalformedInputError`` when the history is empty, two orders share
        an ``order_number``, or a product id falls outside ``[1, n_items]``.
        """
        ordered = tuple(sorted(orders, key=lambda o: o.order_number))
        if not ordered:
            raise MalformedInputError(f"user {user_id} has no orders", user_id=user_id)

        for prev, cur in zip(ordered, ordered[1:]):
            if prev.order_number == cur.order_number:
                raise MalformedInputError(
                    f"user {user_id}: orders {prev.order_id} and {cur.order_id} "
                    f"share order_number {cur.order_number}",
                    user_id=user_id,
                )

        for order in ordered:
            if order.user_id != user_id:
                raise MalformedInputError(
                    f"order {order.order_id} belongs to user {order.user_id}, not {user_id}",
                    user_id=user_id,
                )
            bad = [i for i in order.items if not 1 <= i <= n_items]
            if bad:
                raise MalformedInputError(
                    f"user {user_id}, order {order.order_id}: product ids {sorted(bad)} "
                    f"outside catalog [1, {n_items}]",
                    user_id=user_id,
                )
        return cls(user_id=user_id, orders=ordered)

    @property
    def item_sets(self) -> List[FrozenSet[int]]:
        return [o.items for o in self.orders]

    @property
    def touched_items(self) -> List[int]:
        return sorted(set().union(*self.item_sets))

    def __len__(self) -> int:
        return len(self.orders)


def group_orders(records: Iterable[OrderRecord]) -> Dict[int, List[OrderRecord]]:
    """Bucket records by user without sorting or validating them."""
    groups: Dict[int, List[OrderRecord]] = {}
    for record in records:
        groups.setdefault(record.user_id, []).append(record)
    return groups


def build_sequences(records: Iterable[OrderRecord], n_items: int) -> Dict[int, UserHistory]:
    """Group, sort and validate every user; the first malformed user raises."""
    return {
        user_id: UserHistory.from_orders(user_id, orders, n_items)
        for user_id, orders in group_orders(records).items()
    }


def as_records(user_id: int, item_sets: Sequence[Iterable[int]]) -> List[OrderRecord]:
    """Wrap plain item sets as consecutively numbered orders of one user."""
    return [
        OrderRecord(user_id=user_id, order_id=n, order_number=n, items=frozenset(items))
        for n, items in enumerate(item_sets, start=1)
    ]
