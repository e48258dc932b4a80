"""
Training events and their indexed form.

`IndexedEvents` is what the objective functions consume: integer contexts,
outcome ids, repeat counts and optional real values, plus the label arrays
used to rebuild a model. `OnePassDataIndexer` builds one from raw `Event`s
by applying a predicate cutoff and merging duplicate events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from ..monitor import Monitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """One labelled training instance."""
    outcome: str
    context: Tuple[str, ...]
    values: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        object.__setattr__(self, "context", tuple(self.context))
        if self.values is not None:
            object.__setattr__(self, "values", tuple(float(v) for v in self.values))
            if len(self.values) != len(self.context):
                raise ValueError("Event values must be parallel to its context")


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass
class IndexedEvents:
    """
    Immutable, indexed training set.

    Attributes:
        contexts: Active predicate ids of every unique event.
        outcome_list: Outcome id of every unique event.
        num_times_seen: How many times each unique event occurred.
        pred_labels: Predicate names, position = predicate id.
        outcome_labels: Outcome names, position = outcome id.
        values: Optional real value per active predicate (None => 1.0).
        pred_counts: Optional occurrence count per predicate.
        num_events: Number of events before duplicates were merged.
    """
    contexts: List[np.ndarray]
    outcome_list: np.ndarray
    num_times_seen: np.ndarray
    pred_labels: List[str]
    outcome_labels: List[str]
    values: Optional[List[np.ndarray]] = None
    pred_counts: Optional[np.ndarray] = None
    num_events: int = field(default=-1)

    def __post_init__(self):
        self.contexts = [_frozen(np.array(c, dtype=np.int64)) for c in self.contexts]
        self.outcome_list = _frozen(np.array(self.outcome_list, dtype=np.int64))
        self.num_times_seen = _frozen(np.array(self.num_times_seen, dtype=np.int64))
        self.pred_labels = list(self.pred_labels)
        self.outcome_labels = list(self.outcome_labels)
        if self.values is not None:
            self.values = [_frozen(np.array(v, dtype=np.float64)) for v in self.values]
        if self.pred_counts is not None:
            self.pred_counts = _frozen(np.array(self.pred_counts, dtype=np.int64))
        if self.num_events < 0:
            self.num_events = int(self.num_times_seen.sum())
        self.validate()

    @property
    def num_contexts(self) -> int:
        return len(self.contexts)

    @property
    def num_features(self) -> int:
        return len(self.pred_labels)

    @property
    def num_outcomes(self) -> int:
        return len(self.outcome_labels)

    def validate(self) -> None:
        n = len(self.contexts)
        if len(self.outcome_list) != n or len(self.num_times_seen) != n:
            raise ValueError(
                f"contexts ({n}), outcome_list ({len(self.outcome_list)}) and "
                f"num_times_seen ({len(self.num_times_seen)}) must have the same length"
            )
        if self.values is not None:
            if len(self.values) != n:
                raise ValueError(f"values has {len(self.values)} rows, expected {n}")
            for ci, (context, row) in enumerate(zip(self.contexts, self.values)):
                if len(context) != len(row):
                    raise ValueError(f"values row {ci} is not parallel to its context")
        for ci, context in enumerate(self.contexts):
            if len(context) and (context.min() < 0 or context.max() >= self.num_features):
                raise ValueError(f"context {ci} references a predicate outside [0, {self.num_features})")
        if n and (self.outcome_list.min() < 0 or self.outcome_list.max() >= self.num_outcomes):
            raise ValueError(f"outcome ids must lie in [0, {self.num_outcomes})")
        if n and self.num_times_seen.min() < 0:
            raise ValueError("num_times_seen must not be negative")

    def flatten(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        CSR view of the contexts.

        Returns (indptr, features, values): the active predicates of context
        ci are features[indptr[ci]:indptr[ci + 1]], with matching values.
        """
        lengths = np.fromiter((len(c) for c in self.contexts), dtype=np.int64, count=self.num_contexts)
        indptr = np.zeros(self.num_contexts + 1, dtype=np.int64)
        np.cumsum(lengths, out=indptr[1:])
        if self.num_contexts:
            features = np.concatenate(self.contexts)
        else:
            features = np.zeros(0, dtype=np.int64)
        if self.values is not None and self.num_contexts:
            values = np.concatenate(self.values)
        else:
            values = np.ones(len(features), dtype=np.float64)
        return indptr, features, values


class OnePassDataIndexer:
    """
    Index a collection of events held in memory.

    Predicates seen fewer than `cutoff` times are dropped, events left with
    no predicate are dropped with a warning, and identical events are merged
    into a single row with a repeat count when `sort` is set.
    """

    def __init__(
        self,
        events: Iterable[Event],
        cutoff: int = 0,
        sort: bool = True,
        monitor: Optional[Monitor] = None,
    ):
        if cutoff < 0:
            raise ValueError("Cutoff must not be less than zero")
        self.events = events
        self.cutoff = cutoff
        self.sort = sort
        self.monitor = monitor
        self._result: Optional[IndexedEvents] = None

    @property
    def completed(self) -> bool:
        return self._result is not None

    def execute(self) -> IndexedEvents:
        if self._result is not None:
            raise RuntimeError("The data indexing has already been performed.")
        self._result = self._perform_indexing()
        return self._result

    def result(self) -> IndexedEvents:
        if self._result is None:
            return self.execute()
        return self._result

    def _display(self, message: str) -> None:
        logger.info(message)
        if self.monitor is not None:
            self.monitor.on_message(message)

    def _check_canceled(self) -> None:
        if self.monitor is not None:
            self.monitor.throw_if_cancellation_requested()

    def _perform_indexing(self) -> IndexedEvents:
        self._display(f"Indexing events using cutoff of {self.cutoff}")
        events = list(self.events)

        counter: Dict[str, int] = {}
        for event in events:
            self._check_canceled()
            for pred in event.context:
                counter[pred] = counter.get(pred, 0) + 1

        predicate_index: Dict[str, int] = {}
        for pred, count in counter.items():
            if count >= self.cutoff:
                predicate_index[pred] = len(predicate_index)
        self._display(f"done. {len(events)} events")

        outcome_index: Dict[str, int] = {}
        has_values = any(event.values is not None for event in events)
        indexed: List[Tuple[int, Tuple[int, ...], Tuple[float, ...]]] = []
        for event in events:
            self._check_canceled()
            oc_id = outcome_index.setdefault(event.outcome, len(outcome_index))
            preds: List[int] = []
            vals: List[float] = []
            for ai, pred in enumerate(event.context):
                pred_id = predicate_index.get(pred)
                if pred_id is None:
                    continue
                preds.append(pred_id)
                vals.append(event.values[ai] if event.values is not None else 1.0)
            if not preds:
                message = f"Dropped event {event.outcome}:{list(event.context)}"
                logger.warning(message)
                if self.monitor is not None:
                    self.monitor.on_warning(message)
                continue
            indexed.append((oc_id, tuple(preds), tuple(vals)))

        merged = self._sort_and_merge(indexed)
        if not merged:
            raise ValueError("Insufficient training data to create model.")
        if self.sort:
            self._display(f"done. Reduced {len(indexed)} events to {len(merged)}.")

        pred_labels = [None] * len(predicate_index)
        for pred, idx in predicate_index.items():
            pred_labels[idx] = pred
        outcome_labels = [None] * len(outcome_index)
        for outcome, idx in outcome_index.items():
            outcome_labels[idx] = outcome

        return IndexedEvents(
            contexts=[list(preds) for (_, preds, _), _ in merged],
            outcome_list=[oc for (oc, _, _), _ in merged],
            num_times_seen=[seen for _, seen in merged],
            pred_labels=pred_labels,
            outcome_labels=outcome_labels,
            values=[list(vals) for (_, _, vals), _ in merged] if has_values else None,
            pred_counts=[counter[pred] for pred in pred_labels],
            num_events=len(indexed),
        )

    def _sort_and_merge(self, indexed):
        if not self.sort:
            return [(item, 1) for item in indexed]

        seen: Dict[Tuple, int] = {}
        for item in sorted(indexed):
            self._check_canceled()
            seen[item] = seen.get(item, 0) + 1
        return list(seen.items())


def index_events(
    events: Iterable[Event],
    cutoff: int = 0,
    sort: bool = True,
    monitor: Optional[Monitor] = None,
) -> IndexedEvents:
    """Shortcut for `OnePassDataIndexer(...).execute()`."""
    return OnePassDataIndexer(events, cutoff=cutoff, sort=sort, monitor=monitor).execute()
