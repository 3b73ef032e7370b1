"""
Fan-out of per-user model fitting over a worker pool.

Users share no state, so each one is a separate task: validate the history,
count transitions, estimate probabilities. Submission is throttled to
``max_pending`` in-flight tasks so a streamed population is never fully
materialised.
"""
from __future__ import annotations
import logging
from collections.abc import Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

import pyarrow as pa
from tqdm import tqdm

from basketmarkov.config import MarkovSettings, validate_settings
from basketmarkov.errors import MalformedInputError
from basketmarkov.markov.model import TRANSITION_SCHEMA, UserModel, fit_user
from basketmarkov.markov.sequences import OrderRecord

logger = logging.getLogger(__name__)

Histories = Union[Mapping, Iterable[Tuple[int, Iterable[OrderRecord]]]]

SUMMARY_SCHEMA = pa.schema([
    ("user_id", pa.int64()),
    ("status", pa.string()),
    ("n_orders", pa.int64()),
    ("error_kind", pa.string()),
    ("message", pa.string()),
])


def _duplicate_message(user_id: int) -> str:
    return f"user {user_id} appears more than once in the input"


@dataclass(frozen=True)
class UserFailure:
    user_id: int
    kind: str
    message: str


@dataclass
class BatchResult:
    """Fitted models and failures of one batch, both keyed by user id."""

    models: Dict[int, UserModel] = field(default_factory=dict)
    failures: Dict[int, UserFailure] = field(default_factory=dict)

    @property
    def succeeded(self) -> List[int]:
        return list(self.models)

    @property
    def failed(self) -> List[int]:
        return list(self.failures)

    def __len__(self) -> int:
        return len(self.models) + len(self.failures)

    def summary(self) -> pa.Table:
        rows = [
            {"user_id": u, "status": "ok", "n_orders": m.n_orders, "error_kind": None, "message": None}
            for u, m in self.models.items()
        ]
        rows += [
            {"user_id": u, "status": "failed", "n_orders": None, "error_kind": f.kind, "message": f.message}
            for u, f in self.failures.items()
        ]
        rows.sort(key=lambda r: r["user_id"])
        return pa.Table.from_pylist(rows, schema=SUMMARY_SCHEMA)

    def to_arrow(self, sparse: bool = True) -> pa.Table:
        if not self.models:
            return TRANSITION_SCHEMA.empty_table()
        return pa.concat_tables([m.to_arrow(sparse=sparse) for m in self.models.values()])


class TransitionOrchestrator:
    """
    Runs ``fit_user`` for every user on a thread or process pool.

    A failing user is recorded in ``BatchResult.failures`` and the batch goes
    on, unless ``strict`` is set: then queued tasks are cancelled and the
    error is raised.
    """

    def __init__(self, settings: Optional[MarkovSettings] = None, **overrides):
        if settings is None:
            settings = MarkovSettings(**overrides)
        elif overrides:
            settings = settings.model_copy(update=overrides)
        self.settings = validate_settings(settings)

    def _executor(self):
        if self.settings.executor == "process":
            return ProcessPoolExecutor(max_workers=self.settings.n_workers)
        return ThreadPoolExecutor(max_workers=self.settings.n_workers)

    @staticmethod
    def _cancel(pending: Dict[Future, int]) -> None:
        for future in pending:
            future.cancel()

    def _collect(self, future: Future, user_id: int, result: BatchResult, pending: Dict[Future, int]) -> None:
        try:
            result.models[user_id] = future.result()
        except Exception as e:
            if self.settings.strict:
                self._cancel(pending)
                logger.error("Aborting batch: user %s failed with %s: %s", user_id, type(e).__name__, e)
                raise
            logger.warning("User %s failed with %s: %s", user_id, type(e).__name__, e)
            result.failures[user_id] = UserFailure(user_id, type(e).__name__, str(e))

    def _drain(self, pending: Dict[Future, int], result: BatchResult, bar: tqdm) -> None:
        done, _ = wait(pending, return_when=FIRST_COMPLETED)
        for future in done:
            user_id = pending.pop(future)
            self._collect(future, user_id, result, pending)
            bar.update(1)

    def run(self, histories: Histories) -> BatchResult:
        """
        Fit every user in ``histories``.

        ``histories`` is a mapping ``user_id -> orders`` or an iterable of
        ``(user_id, orders)`` pairs, consumed lazily. The returned models and
        failures are sorted by user id, independent of pool size and completion
        order.

        A user id seen twice in a stream is a malformed input: the user is
        reported as failed and its model, if already fitted, is discarded.
        An exception raised by the stream itself aborts the batch: queued
        tasks are cancelled and the exception propagates.
        """
        s = self.settings
        total = len(histories) if isinstance(histories, Mapping) else None
        source = iter(histories.items() if isinstance(histories, Mapping) else histories)

        result = BatchResult()
        pending: Dict[Future, int] = {}
        seen: Set[int] = set()
        duplicates: Set[int] = set()
        with self._executor() as executor, tqdm(total=total, disable=not s.progress, unit="user") as bar:
            while True:
                try:
                    user_id, orders = next(source)
                except StopIteration:
                    break
                except Exception as e:
                    self._cancel(pending)
                    logger.error("Aborting batch: input stream failed with %s: %s", type(e).__name__, e)
                    raise
                if user_id in seen:
                    if s.strict:
                        self._cancel(pending)
                        logger.error("Aborting batch: user %s appears more than once in the input", user_id)
                        raise MalformedInputError(_duplicate_message(user_id), user_id=user_id)
                    duplicates.add(user_id)
                    continue
                seen.add(user_id)
                if len(pending) >= s.pending_limit:
                    self._drain(pending, result, bar)
                future = executor.submit(fit_user, user_id, list(orders), s.n_items, s.symmetric)
                pending[future] = user_id
            while pending:
                self._drain(pending, result, bar)

        for user_id in duplicates:
            logger.warning("User %s appears more than once in the input", user_id)
            result.models.pop(user_id, None)
            result.failures[user_id] = UserFailure(user_id, MalformedInputError.__name__, _duplicate_message(user_id))

        result.models = dict(sorted(result.models.items()))
        result.failures = dict(sorted(result.failures.items()))
        logger.info(
            "Fitted %d users, %d failed (%s executor, %d workers)",
            len(result.models), len(result.failures), s.executor, s.n_workers,
        )
        return result
