# ---------------------------------------------------------------------------
# Tests configuration
# ---------------------------------------------------------------------------

import pytest
import pandas as pd

from basketmarkov.core.connection import DuckDBConnection
from basketmarkov.datasets import generate_toy_orders, generate_order_history
from basketmarkov.markov.sequences import OrderRecord


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def conn():
    """In-memory DuckDB connection for each test."""
    db = DuckDBConnection()  # :memory:
    yield db
    db.close()


@pytest.fixture
def toy_df():
    """
    user 1: {1,2} -> {2,3} -> {2}
    user 2: {1}
    Catalog of 3 products.
    """
    return generate_toy_orders()


@pytest.fixture
def toy_records():
    """The toy orders as records, deliberately shuffled."""
    return [
        OrderRecord(1, 103, 3, frozenset({2})),
        OrderRecord(2, 201, 1, frozenset({1})),
        OrderRecord(1, 101, 1, frozenset({1, 2})),
        OrderRecord(1, 102, 2, frozenset({2, 3})),
    ]


@pytest.fixture
def toy_polars():
    """Polars version of the toy orders."""
    import polars as pl
    return pl.from_pandas(generate_toy_orders())


@pytest.fixture
def history_df():
    """A few dozen synthetic users over a 200 product catalog."""
    return generate_order_history(n_users=40, n_items=200, min_orders=1, max_orders=8, basket_size=6, seed=7)


@pytest.fixture
def loaded_conn(conn, toy_df):
    """Connection with the toy orders already loaded."""
    from basketmarkov.core.ingestion import load_orders
    load_orders(conn, toy_df)
    return conn


@pytest.fixture
def engine(toy_df):
    """BasketMarkov instance over the toy catalog with orders loaded."""
    from basketmarkov.api import BasketMarkov
    db = BasketMarkov(n_items=3)
    db.load_orders(toy_df)
    yield db
    db.close()
