"""
Evaluable maximum entropy model produced by the quasi-Newton trainer.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import numpy as np

from ..optim.array_math import log_sum_of_exps
from .context import Context, EvalParameters


class QNModel:
    """
    Multinomial log-linear model over named predicates.

    Args:
        parameters: One `Context` per predicate, aligned with `pred_labels`.
        pred_labels: Predicate names.
        outcome_names: Outcome names; probability vectors follow this order.
    """

    def __init__(self, parameters: List[Context], pred_labels: Sequence[str], outcome_names: Sequence[str]):
        if len(parameters) != len(pred_labels):
            raise ValueError("There must be exactly one context per predicate label")
        self.outcome_names = list(outcome_names)
        self.pred_labels = list(pred_labels)
        self.pmap: Dict[str, int] = {label: i for i, label in enumerate(self.pred_labels)}
        self.eval_parameters = EvalParameters(parameters, len(self.outcome_names))

    @property
    def num_outcomes(self) -> int:
        return len(self.outcome_names)

    def get_pred_index(self, predicate: str) -> int:
        return self.pmap.get(predicate, -1)

    def eval(
        self,
        context: Sequence[str],
        values: Optional[Sequence[float]] = None,
        probs: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """
        Probability of every outcome given the active predicates.

        Unknown predicates are ignored. When `probs` is given it is used as
        the score accumulator and returned.
        """
        if probs is None:
            probs = np.zeros(self.num_outcomes, dtype=np.float64)
        if values is not None and len(values) != len(context):
            raise ValueError("values must be parallel to context")

        ep = self.eval_parameters.parameters
        for ci, predicate in enumerate(context):
            pred_idx = self.get_pred_index(predicate)
            if pred_idx < 0:
                continue
            pred_value = 1.0 if values is None else float(values[ci])
            row = ep[pred_idx]
            probs[row.outcomes] += pred_value * row.parameters

        return self._normalize(probs)

    @staticmethod
    def eval_flat(
        context: Sequence[int],
        values: Optional[Sequence[float]],
        n_outcomes: int,
        n_pred_labels: int,
        parameters: np.ndarray,
        probs: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Evaluate indexed predicates directly against a flat parameter vector."""
        if probs is None:
            probs = np.zeros(n_outcomes, dtype=np.float64)
        weights = np.asarray(parameters).reshape(n_outcomes, n_pred_labels)
        context = np.asarray(context, dtype=np.int64)
        if values is None:
            probs += weights[:, context].sum(axis=1)
        else:
            probs += weights[:, context] @ np.asarray(values, dtype=np.float64)
        return QNModel._normalize(probs)

    @staticmethod
    def _normalize(probs: np.ndarray) -> np.ndarray:
        log_sum_exp = log_sum_of_exps(probs)
        np.exp(probs - log_sum_exp, out=probs)
        return probs

    def get_best_outcome(self, probs: Sequence[float]) -> str:
        return self.outcome_names[int(np.argmax(probs))]

    def get_outcome(self, index: int) -> str:
        return self.outcome_names[index]

    def get_index(self, outcome: str) -> int:
        try:
            return self.outcome_names.index(outcome)
        except ValueError:
            return -1

    def get_all_outcomes(self, probs: Sequence[float]) -> str:
        """Human-readable `name[prob]` listing, in outcome order."""
        if len(probs) != self.num_outcomes:
            raise ValueError("probs must hold one probability per outcome")
        return " ".join(f"{name}[{p:.4f}]" for name, p in zip(self.outcome_names, probs))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QNModel):
            return NotImplemented
        return (
            self.outcome_names == other.outcome_names
            and self.pred_labels == other.pred_labels
            and self.eval_parameters.parameters == other.eval_parameters.parameters
        )

    def __hash__(self) -> int:
        return hash((tuple(self.outcome_names), tuple(self.pred_labels)))

    def __repr__(self) -> str:
        return f"QNModel(outcomes={len(self.outcome_names)}, predicates={len(self.pred_labels)})"
