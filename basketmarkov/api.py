from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Optional, Union

import pyarrow as pa

from basketmarkov.config import MarkovSettings, validate_settings
from basketmarkov.core.connection import DuckDBConnection
from basketmarkov.core.ingestion import load_instacart, load_orders, stream_orders
from basketmarkov.markov.model import UserModel
from basketmarkov.orchestrator import BatchResult, TransitionOrchestrator

logger = logging.getLogger(__name__)


class BasketMarkov:
    """Loads order histories into DuckDB and fits per-user transition models."""

    def __init__(
        self,
        database: Union[str, Path] = ":memory:",
        settings: Optional[MarkovSettings] = None,
        memory_limit: Optional[str] = None,
        threads: Optional[int] = None,
        **overrides,
    ) -> None:
        if settings is None:
            settings = MarkovSettings(**overrides)
        elif overrides:
            settings = settings.model_copy(update=overrides)
        self.settings = validate_settings(settings)
        self.conn = DuckDBConnection(database=database, memory_limit=memory_limit, threads=threads)
        self.table_name = "orders"
        self._result: Optional[BatchResult] = None

    @property
    def result(self) -> BatchResult:
        if self._result is None: raise RuntimeError("Call fit() first.")
        return self._result

    def load(self, data: Any, **kwargs) -> BasketMarkov:
        load_orders(self.conn, data, table_name=self.table_name, **kwargs)
        return self

    def load_orders(self, *args, **kwargs) -> int:
        return load_orders(self.conn, *args, table_name=self.table_name, **kwargs)

    def load_instacart(self, orders: Any, order_products: Any, eval_set: Optional[str] = "prior") -> int:
        return load_instacart(self.conn, orders, order_products, eval_set=eval_set, table_name=self.table_name)

    def fit(self, limit_users: Optional[int] = None, **overrides) -> BatchResult:
        """Stream users out of the order table and fit each one on the worker pool."""
        if not self.conn.table_exists(self.table_name):
            raise RuntimeError("No orders loaded. Call load_orders() first.")
        orchestrator = TransitionOrchestrator(self.settings, **overrides)
        self._result = orchestrator.run(stream_orders(self.conn, self.table_name, limit_users=limit_users))
        return self._result

    def model(self, user_id: int) -> UserModel:
        if user_id in self.result.failures:
            failure = self.result.failures[user_id]
            raise KeyError(f"user {user_id} failed: {failure.kind}: {failure.message}")
        return self.result.models[user_id]

    def transitions(self, sparse: bool = True) -> pa.Table:
        return self.result.to_arrow(sparse=sparse)

    def summary(self) -> pa.Table:
        return self.result.summary()

    def recommend(self, user_id: int, n: int = 10) -> pa.Table:
        """Products most likely in the user's next order, given their latest one."""
        return self.model(user_id).recommend(n=n)

    def sql(self, query: str) -> pa.Table: return self.conn.query(query)
    def close(self): self.conn.close()
    def __enter__(self): return self
    def __exit__(self, *_): self.close()
    def __repr__(self) -> str: return f"BasketMarkov(database={self.conn._database!r}, n_items={self.settings.n_items})"
