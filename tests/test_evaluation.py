"""Tests for next-basket evaluation."""

import pandas as pd
import pyarrow as pa

from basketmarkov.evaluation.metrics import (
    evaluate_next_basket,
    f1_at_k,
    hit_rate_at_k,
    precision_at_k,
    recall_at_k,
)
from basketmarkov.evaluation.splitting import holdout_last_order
from basketmarkov.markov.model import fit_user
from basketmarkov.markov.sequences import as_records


class TestMetrics:

    def test_precision(self):
        assert precision_at_k([1, 2], [1, 3], k=2) == 0.5
        assert precision_at_k([1], [1], k=0) == 0.0

    def test_recall(self):
        assert recall_at_k([1, 2], [1, 3], k=2) == 0.5
        assert recall_at_k([1], [], k=1) == 0.0

    def test_f1(self):
        assert f1_at_k([1, 2], [1, 2], k=2) == 1.0
        assert f1_at_k([4], [1], k=1) == 0.0

    def test_hit_rate(self):
        assert hit_rate_at_k([5, 1], [1], k=2) == 1.0
        assert hit_rate_at_k([5, 1], [1], k=1) == 0.0


class TestHoldoutLastOrder:

    def test_splits_latest_order(self, toy_df):
        train, holdout = holdout_last_order(toy_df)
        assert isinstance(train, pd.DataFrame)
        assert holdout == {1: [2]}
        assert sorted(train.loc[train["user_id"] == 1, "order_number"].unique()) == [1, 2]

    def test_single_order_users_kept(self, toy_df):
        train, holdout = holdout_last_order(toy_df)
        assert 2 not in holdout
        assert (train["user_id"] == 2).sum() == 1
        assert list(train.columns) == list(toy_df.columns)


class TestEvaluateNextBasket:

    def test_perfect_prediction(self):
        model = fit_user(1, as_records(1, [{1, 2}, {2, 3}]), n_items=3)
        table = evaluate_next_basket({1: model}, {1: [2]}, k=1)
        rows = table.to_pylist()
        assert rows[0]["user_id"] == "1"
        assert rows[0]["precision"] == 1.0
        assert rows[0]["hit_rate"] == 1.0
        assert rows[-1]["user_id"] == "AVERAGE"

    def test_only_shared_users_scored(self):
        model = fit_user(1, as_records(1, [{1}, {1}]), n_items=2)
        table = evaluate_next_basket({1: model}, {1: [2], 7: [1]}, k=2)
        assert table.column("user_id").to_pylist() == ["1", "AVERAGE"]
        assert table.column("recall").to_pylist() == [0.0, 0.0]

    def test_empty(self):
        table = evaluate_next_basket({}, {}, k=5)
        assert isinstance(table, pa.Table)
        assert table.num_rows == 0
