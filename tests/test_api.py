import pytest
import pandas as pd
import pyarrow as pa

import basketmarkov
from basketmarkov import BasketMarkov
from basketmarkov.errors import ConfigError


def test_factory_functions(toy_df):
    db = basketmarkov.load(toy_df)
    assert isinstance(db, BasketMarkov)
    assert db.conn.table_exists("orders")
    db.close()
    db2 = basketmarkov.connect(n_items=10)
    assert db2.settings.n_items == 10
    db2.close()


def test_invalid_settings_fail_before_loading():
    with pytest.raises(ConfigError):
        BasketMarkov(n_workers=0)


def test_fit_requires_orders():
    with BasketMarkov() as db:
        with pytest.raises(RuntimeError, match="load_orders"):
            db.fit()


def test_results_require_fit(toy_df):
    with BasketMarkov(n_items=3) as db:
        db.load_orders(toy_df)
        with pytest.raises(RuntimeError, match="fit"):
            db.transitions()


class TestFit:

    def test_fit_returns_batch(self, engine):
        result = engine.fit()
        assert result.succeeded == [1, 2]
        assert engine.result is result

    def test_worked_example_end_to_end(self, engine):
        engine.fit()
        rows = {
            (r["user_id"], r["item_id"]): r
            for r in engine.transitions().to_pylist()
        }
        assert len(rows) == 4
        r2 = rows[(1, 2)]
        assert (r2["n11"], r2["n10"], r2["n01"], r2["n00"]) == (2, 0, 0, 0)
        assert r2["p11"] == 1.0 and r2["p01"] is None
        r1 = rows[(1, 1)]
        assert (r1["n11"], r1["n10"], r1["n01"], r1["n00"]) == (0, 1, 0, 1)
        assert r1["p00"] == 1.0 and r1["p10"] == 1.0
        r3 = rows[(1, 3)]
        assert (r3["n11"], r3["n10"], r3["n01"], r3["n00"]) == (0, 1, 1, 0)
        assert r3["p01"] == 1.0 and r3["p1"] == 0.5
        single = rows[(2, 1)]
        assert single["p1"] is None

    def test_dense_transitions(self, engine):
        engine.fit()
        assert engine.transitions(sparse=False).num_rows == 6

    def test_limit_users(self, engine):
        assert engine.fit(limit_users=1).succeeded == [1]

    def test_fit_overrides(self, engine):
        result = engine.fit(symmetric=True)
        assert result.models[1].probabilities.p01[1] == 0.0

    def test_summary(self, engine):
        engine.fit()
        summary = engine.summary()
        assert summary.column("status").to_pylist() == ["ok", "ok"]

    def test_recommend(self, engine):
        engine.fit()
        table = engine.recommend(1, n=5)
        assert table.column("item_id").to_pylist() == [2, 3]

    def test_malformed_user_reported(self):
        df = pd.DataFrame({
            "user_id": [1, 1, 2, 2],
            "order_id": [1, 2, 3, 4],
            "order_number": [1, 2, 1, 2],
            "product_id": [1, 1, 1, 42],
        })
        with BasketMarkov(n_items=3) as db:
            db.load_orders(df)
            result = db.fit()
            assert result.succeeded == [1]
            assert result.failed == [2]
            with pytest.raises(KeyError, match="MalformedInputError"):
                db.model(2)

    def test_load_instacart(self):
        orders = pd.DataFrame({
            "order_id": [1, 2],
            "user_id": [5, 5],
            "eval_set": ["prior", "prior"],
            "order_number": [1, 2],
        })
        order_products = pd.DataFrame({"order_id": [1, 2], "product_id": [1, 1]})
        with BasketMarkov(n_items=2) as db:
            assert db.load_instacart(orders, order_products) == 2
            model = db.fit().models[5]
            assert model.items == [1]
            assert model.counts.n11.tolist() == [1]


def test_sql_and_repr(engine):
    assert engine.sql("SELECT COUNT(*) AS n FROM orders").to_pylist()[0]["n"] == 6
    assert "n_items=3" in repr(engine)
