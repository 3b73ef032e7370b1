from __future__ import annotations
from typing import Any, Dict, List, Tuple
import narwhals as nw

def holdout_last_order(
    df: Any,
    user_col: str = "user_id",
    seq_col: str = "order_number",
    item_col: str = "product_id",
) -> Tuple[Any, Dict[int, List[int]]]:
    """
    Split off each user's latest order.

    Returns the remaining rows (same DataFrame type as ``df``) and a mapping
    ``user_id -> products of the held-out order``. Users with a single order
    keep it in the training rows and get no holdout entry.
    """
    nw_df = nw.from_native(df, eager_only=True)
    last = nw_df.group_by(user_col).agg(
        nw.col(seq_col).max().alias("_last"),
        nw.col(seq_col).n_unique().alias("_n_orders"),
    )
    marked = nw_df.join(last, on=user_col, how="left")
    is_holdout = (nw.col(seq_col) == nw.col("_last")) & (nw.col("_n_orders") > 1)

    train = marked.filter(~is_holdout).drop("_last", "_n_orders")
    test = marked.filter(is_holdout)

    holdout: Dict[int, List[int]] = {}
    for user_id, item_id in zip(test[user_col].to_list(), test[item_col].to_list()):
        holdout.setdefault(int(user_id), []).append(int(item_id))
    return train.to_native(), {u: sorted(items) for u, items in holdout.items()}
