"""
Next-basket evaluation of fitted transition models.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping
import numpy as np
import pyarrow as pa

from basketmarkov.markov.model import UserModel

METRIC_COLUMNS = ["precision", "recall", "f1", "hit_rate"]

EVALUATION_SCHEMA = pa.schema(
    [("user_id", pa.string())] + [(c, pa.float64()) for c in METRIC_COLUMNS]
)

def _hits_at_k(predicted: List[Any], actual: List[Any], k: int) -> int:
    actual_set = set(actual)
    return len([x for x in predicted[:k] if x in actual_set])

def precision_at_k(predicted: List[Any], actual: List[Any], k: int) -> float:
    if k <= 0: return 0.0
    return _hits_at_k(predicted, actual, k) / k

def recall_at_k(predicted: List[Any], actual: List[Any], k: int) -> float:
    if not actual: return 0.0
    return _hits_at_k(predicted, actual, k) / len(set(actual))

def f1_at_k(predicted: List[Any], actual: List[Any], k: int) -> float:
    p = precision_at_k(predicted, actual, k)
    r = recall_at_k(predicted, actual, k)
    return 2 * p * r / (p + r) if (p + r) > 0 else 0.0

def hit_rate_at_k(predicted: List[Any], actual: List[Any], k: int) -> float:
    return 1.0 if k > 0 and _hits_at_k(predicted, actual, k) > 0 else 0.0

def _score_user(model: UserModel, actual: List[int], k: int) -> Dict[str, Any]:
    predicted = model.recommend(n=k).column("item_id").to_pylist()
    return {
        "user_id": str(model.user_id),
        "precision": precision_at_k(predicted, actual, k),
        "recall": recall_at_k(predicted, actual, k),
        "f1": f1_at_k(predicted, actual, k),
        "hit_rate": hit_rate_at_k(predicted, actual, k),
    }

def evaluate_next_basket(
    models: Mapping[int, UserModel],
    holdout: Mapping[int, List[int]],
    k: int = 10,
) -> pa.Table:
    """
    Score each model's top-``k`` next-order products against the held-out basket.

    Only users present in both mappings are scored. A final ``AVERAGE`` row
    holds the column means.
    """
    users = sorted(set(models).intersection(holdout))
    if not users:
        return EVALUATION_SCHEMA.empty_table()

    results = [_score_user(models[u], list(holdout[u]), k) for u in users]

    avg_row = {"user_id": "AVERAGE"}
    for col in METRIC_COLUMNS:
        avg_row[col] = float(np.mean([r[col] for r in results]))
    results.append(avg_row)

    return pa.Table.from_pylist(results, schema=EVALUATION_SCHEMA)
