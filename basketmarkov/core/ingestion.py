from __future__ import annotations
import itertools
import logging
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

import narwhals as nw

from basketmarkov.core.connection import DuckDBConnection
from basketmarkov.markov.sequences import OrderRecord

logger = logging.getLogger(__name__)


def _read_file(conn: DuckDBConnection, source: Path, name: str) -> str:
    p = str(source)
    if p.endswith(".csv"):
        reader = f"read_csv_auto('{p}')"
    elif p.endswith(".parquet"):
        reader = f"read_parquet('{p}')"
    else:
        raise ValueError(f"Unsupported file type: {p}")
    relation = f"{name}_file"
    conn.execute(f"CREATE OR REPLACE TEMP TABLE {relation} AS SELECT * FROM {reader}")
    return relation


def _register_frame(conn: DuckDBConnection, source: Any, name: str, required: List[str]) -> str:
    try:
        df = nw.from_native(source)
    except TypeError:
        raise ValueError(f"Unsupported order source: {type(source).__name__}")
    if isinstance(df, nw.LazyFrame):
        df = df.collect()
    names = df.collect_schema().names()
    missing = [c for c in required if c not in names]
    if missing:
        raise ValueError(f"Missing columns: {missing}")
    relation = f"{name}_frame"
    conn.register(relation, df.select(required).to_native())
    return relation


def _stage(conn: DuckDBConnection, source: Any, name: str, required: List[str]) -> str:
    """Expose ``source`` to DuckDB and return the relation name to select from."""
    if not isinstance(source, (str, Path)):
        return _register_frame(conn, source, name, required)
    relation = _read_file(conn, Path(source), name)
    missing = [c for c in required if not conn.column_exists(relation, c)]
    if missing:
        raise ValueError(f"Missing columns: {missing}")
    return relation


def _finish(conn: DuckDBConnection, table_name: str, select_sql: str, append: bool) -> int:
    if append and conn.table_exists(table_name):
        conn.execute(f"INSERT INTO {table_name} {select_sql}")
    else:
        conn.execute(f"CREATE OR REPLACE TABLE {table_name} AS {select_sql}")
    count = conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
    logger.info("Table %s holds %d order rows", table_name, count)
    return count


def load_orders(
    conn: DuckDBConnection,
    source: Any,
    user_col: str = "user_id",
    order_col: str = "order_id",
    seq_col: str = "order_number",
    item_col: str = "product_id",
    table_name: str = "orders",
    append: bool = False,
) -> int:
    """
    Load long-form order rows (one row per ordered product) into ``table_name``.

    ``source`` is a CSV/Parquet path or any DataFrame narwhals understands
    (pandas, polars eager or lazy, pyarrow). Rows with a null user, order or
    product are dropped. Returns the row count of the target table.
    """
    required = [user_col, order_col, seq_col, item_col]
    relation = _stage(conn, source, "_tmp_orders", required)
    select_sql = f"""
        SELECT {user_col}::BIGINT AS user_id,
               {order_col}::BIGINT AS order_id,
               {seq_col}::BIGINT AS order_number,
               {item_col}::BIGINT AS item_id
        FROM {relation}
        WHERE {user_col} IS NOT NULL AND {order_col} IS NOT NULL
          AND {seq_col} IS NOT NULL AND {item_col} IS NOT NULL
    """
    return _finish(conn, table_name, select_sql, append)


def load_instacart(
    conn: DuckDBConnection,
    orders: Any,
    order_products: Any,
    eval_set: Optional[str] = "prior",
    table_name: str = "orders",
) -> int:
    """
    Join the Instacart ``orders`` and ``order_products__*`` files into ``table_name``.

    ``eval_set`` keeps only orders of that split; ``None`` keeps every order.
    """
    order_cols = ["order_id", "user_id", "order_number"] + (["eval_set"] if eval_set else [])
    meta = _stage(conn, orders, "_tmp_orders_meta", order_cols)
    lines = _stage(conn, order_products, "_tmp_order_products", ["order_id", "product_id"])
    where = f"WHERE o.eval_set = '{eval_set}'" if eval_set else ""
    select_sql = f"""
        SELECT o.user_id::BIGINT AS user_id,
               o.order_id::BIGINT AS order_id,
               o.order_number::BIGINT AS order_number,
               p.product_id::BIGINT AS item_id
        FROM {meta} o
        JOIN {lines} p ON o.order_id = p.order_id
        {where}
    """
    return _finish(conn, table_name, select_sql, append=False)


def stream_orders(
    conn: DuckDBConnection,
    table_name: str = "orders",
    limit_users: Optional[int] = None,
    batch_size: int = 1024,
) -> Iterator[Tuple[int, List[OrderRecord]]]:
    """
    Yield ``(user_id, orders)`` one user at a time, ascending by user id.

    Only one user's orders are held in memory at once. ``limit_users`` keeps
    the first N users by id.
    """
    user_filter = ""
    if limit_users is not None:
        user_filter = f"""
            WHERE user_id IN (
                SELECT DISTINCT user_id FROM {table_name} ORDER BY user_id LIMIT {int(limit_users)}
            )
        """
    query = f"""
        SELECT user_id, order_id, order_number, list(DISTINCT item_id) AS items
        FROM {table_name}
        {user_filter}
        GROUP BY user_id, order_id, order_number
        ORDER BY user_id, order_number, order_id
    """
    rows = conn.iter_rows(query, batch_size=batch_size)
    for user_id, group in itertools.groupby(rows, key=lambda r: r[0]):
        yield int(user_id), [
            OrderRecord(int(user_id), int(order_id), int(order_number), frozenset(items))
            for _, order_id, order_number, items in group
        ]
