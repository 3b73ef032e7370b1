"""
basketmarkov.datasets: synthetic order histories.

Each generator returns a long-form ``pd.DataFrame`` with one row per ordered
product and the columns ``user_id``, ``order_id``, ``order_number``,
``product_id`` expected by ``load_orders``.
"""

from .orders import generate_order_history, generate_toy_orders

__all__ = [
    "generate_order_history",
    "generate_toy_orders",
]
