from .sequences import OrderRecord, UserHistory, group_orders, build_sequences
from .transitions import TransitionCounts, extract_transitions
from .probabilities import TransitionProbabilities, estimate_probabilities
from .model import UserModel, fit_user

__all__ = [
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
]
