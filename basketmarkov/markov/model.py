from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

import numpy as np
import pyarrow as pa

from basketmarkov.errors import MalformedInputError
from basketmarkov.markov.probabilities import TransitionProbabilities, estimate_probabilities
from basketmarkov.markov.sequences import OrderRecord, UserHistory
from basketmarkov.markov.transitions import TransitionCounts, extract_transitions

logger = logging.getLogger(__name__)

COUNT_COLUMNS = ("n11", "n10", "n01", "n00")
PROBABILITY_COLUMNS = ("p0", "p1", "p00", "p01", "p10", "p11")

TRANSITION_SCHEMA = pa.schema(
    [("user_id", pa.int64()), ("item_id", pa.int64())]
    + [(c, pa.int64()) for c in COUNT_COLUMNS]
    + [(c, pa.float64()) for c in PROBABILITY_COLUMNS]
)


@dataclass(frozen=True)
class UserModel:
    """
    Fitted two-state transition model of one user.

    ``counts`` and ``probabilities`` hold one slot per product in ``items``
    (the products the user ever ordered), in the same order. Every other
    catalog product was absent from all orders, so its row is implied:
    ``n00 == n_pairs`` and zeros elsewhere. Full-catalog arrays are rebuilt
    on demand by ``columns(sparse=False)`` and ``next_order_scores``.
    """

    user_id: int
    n_orders: int
    n_items: int
    items: List[int]
    last_items: frozenset
    counts: TransitionCounts
    probabilities: TransitionProbabilities
    symmetric: bool = False

    def _dense_counts(self) -> TransitionCounts:
        idx = np.asarray(self.items, dtype=np.int64) - 1
        arrays = {}
        for name in COUNT_COLUMNS:
            fill = self.counts.n_pairs if name == "n00" else 0
            full = np.full(self.n_items, fill, dtype=np.int64)
            full[idx] = getattr(self.counts, name)
            arrays[name] = full
        return TransitionCounts(n_pairs=self.counts.n_pairs, **arrays)

    def columns(self, sparse: bool = True) -> Dict[str, np.ndarray]:
        """Column arrays keyed by output field; ``sparse`` keeps only touched products."""
        if sparse:
            counts, probabilities = self.counts, self.probabilities
            cols = {"item_id": np.asarray(self.items, dtype=np.int64)}
        else:
            counts = self._dense_counts()
            probabilities = estimate_probabilities(counts, symmetric=self.symmetric)
            cols = {"item_id": np.arange(1, self.n_items + 1, dtype=np.int64)}
        for name in COUNT_COLUMNS:
            cols[name] = getattr(counts, name)
        cols.update(probabilities.as_dict())
        return cols

    def records(self, sparse: bool = True) -> Iterator[dict]:
        """Per-product dicts; undefined probabilities are ``None``."""
        cols = self.columns(sparse)
        for i in range(len(cols["item_id"])):
            row = {"item_id": int(cols["item_id"][i])}
            for name in COUNT_COLUMNS:
                row[name] = int(cols[name][i])
            for name in PROBABILITY_COLUMNS:
                v = float(cols[name][i])
                row[name] = None if np.isnan(v) else v
            yield row

    def to_arrow(self, sparse: bool = True) -> pa.Table:
        cols = self.columns(sparse)
        arrays = [pa.array(np.full(len(cols["item_id"]), self.user_id, dtype=np.int64))]
        arrays.append(pa.array(cols["item_id"]))
        arrays += [pa.array(cols[c]) for c in COUNT_COLUMNS]
        # NaN -> null so consumers see undefined ratios explicitly
        arrays += [pa.array(cols[c], from_pandas=True) for c in PROBABILITY_COLUMNS]
        return pa.Table.from_arrays(arrays, schema=TRANSITION_SCHEMA)

    def _last_index(self, last_order: Optional[Iterable[int]]) -> np.ndarray:
        last = self.last_items if last_order is None else frozenset(last_order)
        ids = np.fromiter(last, dtype=np.int64, count=len(last))
        bad = ids[(ids < 1) | (ids > self.n_items)]
        if bad.size:
            raise MalformedInputError(
                f"last order has products {sorted(bad.tolist())} "
                f"outside catalog [1, {self.n_items}]",
                user_id=self.user_id,
            )
        return ids - 1

    def _touched_scores(self, last_order: Optional[Iterable[int]]) -> np.ndarray:
        last = self._last_index(last_order)
        touched = np.asarray(self.items, dtype=np.int64) - 1
        scores = np.nan_to_num(self.probabilities.p01, nan=0.0)
        in_last = np.isin(touched, last)
        scores[in_last] = self.probabilities.p11[in_last]
        return scores

    def next_order_scores(self, last_order: Optional[Iterable[int]] = None) -> np.ndarray:
        """
        Probability of each catalog product appearing in the order after ``last_order``.

        Products in ``last_order`` score ``p11``, the rest ``p01``; undefined
        ratios score 0, as do products the user never ordered. Defaults to
        the user's most recent order. Ids outside ``[1, n_items]`` raise
        ``MalformedInputError``.
        """
        touched_scores = self._touched_scores(last_order)
        scores = np.zeros(self.n_items, dtype=np.float64)
        scores[np.asarray(self.items, dtype=np.int64) - 1] = touched_scores
        return scores

    def recommend(self, n: int = 10, last_order: Optional[Iterable[int]] = None) -> pa.Table:
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        scores = self._touched_scores(last_order)
        item_ids = np.asarray(self.items, dtype=np.int64)
        candidates = np.flatnonzero(scores > 0)
        # items are sorted, so a stable sort on negated score breaks ties by item id
        top = candidates[np.argsort(-scores[candidates], kind="stable")][:n]
        return pa.table({
            "item_id": pa.array(item_ids[top], type=pa.int64()),
            "score": pa.array(scores[top], type=pa.float64()),
        })

    def __repr__(self) -> str:
        return f"UserModel(user_id={self.user_id}, n_orders={self.n_orders}, items={len(self.items)})"


def _restrict(counts: TransitionCounts, probabilities: TransitionProbabilities, idx: np.ndarray):
    # fancy indexing copies, so the full-catalog arrays can be released
    sparse_counts = TransitionCounts(
        n_pairs=counts.n_pairs, **{name: getattr(counts, name)[idx] for name in COUNT_COLUMNS}
    )
    sparse_probabilities = TransitionProbabilities(
        **{name: values[idx] for name, values in probabilities.as_dict().items()}
    )
    return sparse_counts, sparse_probabilities


def fit_user(
    user_id: int,
    orders: Iterable[OrderRecord],
    n_items: int,
    symmetric: bool = False,
) -> UserModel:
    """Validate, count and estimate one user's history, keeping only touched products."""
    history = UserHistory.from_orders(user_id, orders, n_items)
    item_sets = history.item_sets
    counts = extract_transitions(item_sets, n_items)
    probabilities = estimate_probabilities(counts, symmetric=symmetric)
    items = history.touched_items
    counts, probabilities = _restrict(counts, probabilities, np.asarray(items, dtype=np.int64) - 1)
    logger.debug("Fitted user %s over %d orders, %d products", user_id, len(history), len(items))
    return UserModel(
        user_id=user_id,
        n_orders=len(history),
        n_items=n_items,
        items=items,
        last_items=item_sets[-1],
        counts=counts,
        probabilities=probabilities,
        symmetric=symmetric,
    )
