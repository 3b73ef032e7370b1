"""
Per-product transition counts over consecutive order pairs.

Only products present in an order are ever enumerated. The absent->absent
count is recovered from the previous-slot marginal instead of iterating the
catalog complement, so work per pair scales with basket size.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import AbstractSet, Sequence

import numpy as np

from basketmarkov.errors import MalformedInputError


@dataclass(frozen=True)
class TransitionCounts:
    """
    Four aligned count arrays. From ``extract_transitions`` they span the
    catalog and slot ``i`` is product ``i + 1``; a ``UserModel`` keeps only
    the slots of products its user touched.

    For every product ``n11 + n10 + n01 + n00 == n_pairs``.
    """

    n11: np.ndarray
    n10: np.ndarray
    n01: np.ndarray
    n00: np.ndarray
    n_pairs: int

    @property
    def n1(self) -> np.ndarray:
        return self.n11 + self.n10

    @property
    def n0(self) -> np.ndarray:
        return self.n01 + self.n00


def _index(items: AbstractSet[int], n_items: int) -> np.ndarray:
    idx = np.fromiter(items, dtype=np.int64, count=len(items)) - 1
    if idx.size and (idx.min() < 0 or idx.max() >= n_items):
        raise MalformedInputError(f"product ids outside catalog [1, {n_items}]")
    return idx


def _tally(chunks: list, n_items: int) -> np.ndarray:
    if not chunks:
        return np.zeros(n_items, dtype=np.int64)
    return np.bincount(np.concatenate(chunks), minlength=n_items).astype(np.int64)


def extract_transitions(item_sets: Sequence[AbstractSet[int]], n_items: int) -> TransitionCounts:
    """
    Count 11/10/01/00 transitions per product over ``item_sets`` in order.

    A single order (no consecutive pair) gives all-zero arrays.
    """
    n_pairs = max(0, len(item_sets) - 1)
    previous, both, appeared, dropped = [], [], [], []

    for prev, cur in zip(item_sets, item_sets[1:]):
        prev, cur = frozenset(prev), frozenset(cur)
        previous.append(_index(prev, n_items))
        both.append(_index(prev & cur, n_items))
        appeared.append(_index(cur - prev, n_items))
        dropped.append(_index(prev - cur, n_items))

    n1 = _tally(previous, n_items)
    n11 = _tally(both, n_items)
    n01 = _tally(appeared, n_items)
    n10 = _tally(dropped, n_items)
    n0 = n_pairs - n1
    n00 = n0 - n01

    return TransitionCounts(n11=n11, n10=n10, n01=n01, n00=n00, n_pairs=n_pairs)
