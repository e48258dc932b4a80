"""
Negative log-likelihood of a maximum entropy model over indexed events.

The parameter vector is laid out outcome-major: the weight of predicate f
for outcome o lives at `o * num_features + f` (see `index_of`). Contexts are
flattened once into CSR form so that scores and gradients are computed with
batched numpy operations over any contiguous range of contexts.

shape conventions:
- C: number of unique contexts
- O: number of outcomes
- F: number of predicates (features)
- nnz: total number of active predicates over all contexts
"""

from __future__ import annotations

import logging

import numpy as np

from ..model.events import IndexedEvents
from ..optim.array_math import row_log_sum_of_exps

logger = logging.getLogger(__name__)


class NegLogLikelihood:
    """
    Objective function for maximum entropy training.

    value_at(x) = -sum_ci times_seen[ci] * log p(outcome[ci] | context[ci]; x)
    """

    def __init__(self, indexer: IndexedEvents):
        if indexer is None:
            raise ValueError("indexer must not be None")

        self.indexer = indexer
        self.num_outcomes = indexer.num_outcomes
        self.num_features = indexer.num_features
        self.num_contexts = indexer.num_contexts
        self._dimension = self.num_outcomes * self.num_features

        self.indptr, self.features, self.pred_values = indexer.flatten()
        lengths = np.diff(self.indptr)
        # owning context of every flattened entry
        self.rows = np.repeat(np.arange(self.num_contexts, dtype=np.int64), lengths)
        self.outcome_list = np.asarray(indexer.outcome_list, dtype=np.int64)
        self.num_times_seen = np.asarray(indexer.num_times_seen, dtype=np.float64)

        self.gradient = np.zeros(self._dimension, dtype=np.float64)

        logger.debug(
            f"NegLogLikelihood over {self.num_contexts} contexts, "
            f"{self.num_outcomes} outcomes, {self.num_features} predicates"
        )

    @property
    def dimension(self) -> int:
        return self._dimension

    def get_initial_point(self) -> np.ndarray:
        return np.zeros(self._dimension, dtype=np.float64)

    def index_of(self, outcome_id: int, feature_id: int) -> int:
        return outcome_id * self.num_features + feature_id

    def value_at(self, x: np.ndarray) -> float:
        self._check_dimension(x)
        return self._partial_value(0, self.num_contexts, x)

    def gradient_at(self, x: np.ndarray) -> np.ndarray:
        """
        Gradient at x.

        The returned array is an internal buffer that is zeroed and refilled
        on every call.
        """
        self._check_dimension(x)
        self.gradient.fill(0.0)
        self._partial_gradient(0, self.num_contexts, x, self.gradient)
        return self.gradient

    def _check_dimension(self, x: np.ndarray) -> None:
        if len(x) != self._dimension:
            raise ValueError(
                f"x is invalid, its dimension {len(x)} is not equal to domain dimension {self._dimension}."
            )

    def _scores(self, start: int, end: int, x: np.ndarray) -> np.ndarray:
        """Linear score of every outcome for contexts [start, end), shape (end - start, O)."""
        e0, e1 = self.indptr[start], self.indptr[end]
        rows = self.rows[e0:e1] - start
        weights = np.asarray(x, dtype=np.float64).reshape(self.num_outcomes, self.num_features)
        # (O, nnz): weight of each active predicate for each outcome, times its value
        contrib = weights[:, self.features[e0:e1]] * self.pred_values[e0:e1]

        n = end - start
        scores = np.empty((self.num_outcomes, n), dtype=np.float64)
        for oi in range(self.num_outcomes):
            scores[oi] = np.bincount(rows, weights=contrib[oi], minlength=n)
        return scores.T

    def _partial_value(self, start: int, end: int, x: np.ndarray) -> float:
        """Negative log-likelihood contributed by contexts [start, end)."""
        if end <= start:
            return 0.0
        scores = self._scores(start, end, x)
        log_sum_of_exps = row_log_sum_of_exps(scores)
        outcomes = self.outcome_list[start:end]
        true_scores = scores[np.arange(end - start), outcomes]
        return float(-np.sum((true_scores - log_sum_of_exps) * self.num_times_seen[start:end]))

    def _partial_gradient(self, start: int, end: int, x: np.ndarray, out: np.ndarray) -> None:
        """Add the gradient of contexts [start, end) into `out` (length O * F)."""
        if end <= start:
            return
        scores = self._scores(start, end, x)
        log_sum_of_exps = row_log_sum_of_exps(scores)

        # model expectation minus empirical indicator, weighted by repeat count
        residual = np.exp(scores - log_sum_of_exps[:, np.newaxis])
        residual[np.arange(end - start), self.outcome_list[start:end]] -= 1.0
        residual *= self.num_times_seen[start:end, np.newaxis]

        e0, e1 = self.indptr[start], self.indptr[end]
        rows = self.rows[e0:e1] - start
        features = self.features[e0:e1]
        # (nnz, O)
        entry = residual[rows] * self.pred_values[e0:e1, np.newaxis]

        grad = out.reshape(self.num_outcomes, self.num_features)
        for oi in range(self.num_outcomes):
            grad[oi] += np.bincount(features, weights=entry[:, oi], minlength=self.num_features)
