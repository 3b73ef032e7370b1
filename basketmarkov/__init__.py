from .api import BasketMarkov
from .config import MarkovSettings, validate_settings
from .errors import BasketMarkovError, ConfigError, MalformedInputError
from .core.connection import DuckDBConnection
from .core.ingestion import load_orders, load_instacart, stream_orders
from .markov import (
    OrderRecord,
    UserHistory,
    group_orders,
    build_sequences,
    TransitionCounts,
    extract_transitions,
    TransitionProbabilities,
    estimate_probabilities,
    UserModel,
    fit_user,
)
from .orchestrator import BatchResult, TransitionOrchestrator, UserFailure
from .evaluation.metrics import evaluate_next_basket
from .evaluation.splitting import holdout_last_order
from .datasets import generate_order_history, generate_toy_orders

def load(data, **kwargs) -> BasketMarkov:
    engine = BasketMarkov()
    engine.load(data, **kwargs)
    return engine

def connect(database=":memory:", **kwargs) -> BasketMarkov:
    return BasketMarkov(database=database, **kwargs)

__all__ = [
    "BasketMarkov",
    "load",
    "connect",
    "MarkovSettings",
    "validate_settings",
    "BasketMarkovError",
    "ConfigError",
    "MalformedInputError",
    "DuckDBConnection",
    "load_orders",
    "load_instacart",
    "stream_orders",
    "OrderRecord",
    "UserHistory",
    "group_orders",
    "build_sequences",
    "TransitionCounts",
    "extract_transitions",
    "TransitionProbabilities",
    "estimate_probabilities",
    "UserModel",
    "fit_user",
    "BatchResult",
    "TransitionOrchestrator",
    "UserFailure",
    # Evaluation
    "evaluate_next_basket",
    "holdout_last_order",
    # Datasets
    "generate_order_history",
    "generate_toy_orders",
]
