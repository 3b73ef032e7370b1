"""
basketmarkov.datasets.orders: Instacart-shaped order history generators.
"""
from __future__ import annotations
from typing import Optional

import numpy as np
import pandas as pd

COLUMNS = ["user_id", "order_id", "order_number", "product_id"]


def generate_toy_orders() -> pd.DataFrame:
    """
    Two users with hand-checkable transitions.

    - user 1: ``{1, 2} -> {2, 3} -> {2}``. Product 2 is kept twice (n11=2),
      product 1 is dropped then stays absent (n10=1, n00=1), product 3 appears
      then is dropped (n01=1, n10=1).
    - user 2: a single order ``{1}``, so no transition evidence at all.

    The catalog holds 3 products.
    """
    rows = [
        (1, 101, 1, 1), (1, 101, 1, 2),
        (1, 102, 2, 2), (1, 102, 2, 3),
        (1, 103, 3, 2),
        (2, 201, 1, 1),
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def generate_order_history(
    n_users: int = 100,
    n_items: int = 1_000,
    min_orders: int = 2,
    max_orders: int = 10,
    basket_size: int = 8,
    repeat_rate: float = 0.6,
    seed: Optional[int] = 42,
) -> pd.DataFrame:
    """
    Generate per-user order sequences with habitual re-purchases.

    Every product of an order is carried into the next one with probability
    ``repeat_rate``; the basket is then topped up with fresh products drawn
    from a power-law catalog (80% of draws hit the top 20% of products).

    Parameters
    ----------
    n_users : int
        Number of users, ids ``1..n_users``.
    n_items : int
        Catalog size; product ids are ``1..n_items``.
    min_orders, max_orders : int
        Inclusive bounds on the number of orders per user.
    basket_size : int
        Target products per order (capped at ``n_items``).
    repeat_rate : float
        Probability that a product survives into the next order.
    seed : int, optional
        Random seed for reproducibility.

    Returns
    -------
    pd.DataFrame
        Long-form rows sorted by user and order number.

    Example
    -------
    >>> from basketmarkov.datasets import generate_order_history
    >>> df = generate_order_history(n_users=10, n_items=50)
    >>> df.columns.tolist()
    ['user_id', 'order_id', 'order_number', 'product_id']
    """
    if not 1 <= min_orders <= max_orders:
        raise ValueError("need 1 <= min_orders <= max_orders")
    rng = np.random.default_rng(seed)
    size = min(basket_size, n_items)

    n_popular = max(1, int(n_items * 0.2))
    p_popular = 0.8 / n_popular
    p_other = 0.2 / max(1, n_items - n_popular)
    probs = np.array([p_popular] * n_popular + [p_other] * (n_items - n_popular))
    probs /= probs.sum()

    rows = []
    order_id = 0
    for user_id in range(1, n_users + 1):
        basket = set()
        for order_number in range(1, int(rng.integers(min_orders, max_orders + 1)) + 1):
            kept = {p for p in basket if rng.random() < repeat_rate}
            while len(kept) < size:
                kept.add(int(rng.choice(n_items, p=probs)) + 1)
            basket = kept
            order_id += 1
            rows.extend((user_id, order_id, order_number, p) for p in sorted(basket))

    return pd.DataFrame(rows, columns=COLUMNS)
