"""
Training-set accuracy of a candidate parameter vector.
"""

from __future__ import annotations

import numpy as np

from ..model.events import IndexedEvents
from ..model.qn_model import QNModel
from ..optim.array_math import max_id


class QNModelEvaluator:
    """
    Scores a flat parameter vector against the training events.

    Used for progress lines only; convergence never depends on it.
    """

    def __init__(self, indexer: IndexedEvents):
        if indexer is None:
            raise ValueError("indexer must not be None")
        self.indexer = indexer

    def evaluate(self, parameters: np.ndarray) -> float:
        indexer = self.indexer
        values = indexer.values
        n_outcomes = indexer.num_outcomes
        n_pred_labels = indexer.num_features

        n_correct = 0
        n_total = 0
        for ei, context in enumerate(indexer.contexts):
            value = None if values is None else values[ei]
            probs = QNModel.eval_flat(context, value, n_outcomes, n_pred_labels, parameters)
            seen = int(indexer.num_times_seen[ei])
            if max_id(probs) == indexer.outcome_list[ei]:
                n_correct += seen
            n_total += seen

        return 0.0 if n_total == 0 else n_correct / n_total
