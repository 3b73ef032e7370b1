from .metrics import precision_at_k, recall_at_k, f1_at_k, hit_rate_at_k, evaluate_next_basket
from .splitting import holdout_last_order
