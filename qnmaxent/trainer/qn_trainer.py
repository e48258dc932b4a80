"""
Quasi-Newton maximum entropy trainer.

Wires an objective function (single- or multi-threaded) to `QNMinimizer`
and turns the optimized flat vector into a `QNModel` with one sparse
`Context` per predicate.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from typing import Any, Iterable, Optional, Union

import numpy as np

from ..config import QNTrainerConfig, TrainingParameters
from ..model.context import Context
from ..model.events import Event, IndexedEvents, OnePassDataIndexer
from ..model.qn_model import QNModel
from ..monitor import Monitor
from ..objective import NegLogLikelihood, ParallelNegLogLikelihood
from ..optim.minimizer import QNMinimizer
from .evaluator import QNModelEvaluator

logger = logging.getLogger(__name__)


class QNTrainer:
    """
    Train a maximum entropy model with L-BFGS.

    Args:
        config: Hyperparameters; defaults to `QNTrainerConfig()`.
        monitor: Optional progress/cancellation channel.
        **overrides: Field overrides applied on top of `config`
            (e.g. ``QNTrainer(l1_cost=0.0, threads=4)``).

    Raises:
        ValueError: Any hyperparameter is out of range.
    """

    def __init__(
        self,
        config: Optional[QNTrainerConfig] = None,
        monitor: Optional[Monitor] = None,
        **overrides: Any,
    ):
        config = config or QNTrainerConfig()
        if overrides:
            known = {f.name for f in fields(QNTrainerConfig)}
            unknown = sorted(set(overrides) - known)
            if unknown:
                raise ValueError(f"Unknown trainer parameter(s): {', '.join(unknown)}")
            config = replace(config, **overrides)
        config.validate()
        self.config = config
        self.monitor = monitor
        self.minimizer: Optional[QNMinimizer] = None

    @classmethod
    def from_parameters(
        cls,
        parameters: Union[TrainingParameters, dict],
        monitor: Optional[Monitor] = None,
    ) -> "QNTrainer":
        """Build a trainer from named settings (``L1Cost``, ``Threads``...)."""
        if not isinstance(parameters, TrainingParameters):
            parameters = TrainingParameters(parameters)
        return cls(parameters.to_trainer_config(), monitor=monitor)

    def train(self, events: Union[IndexedEvents, Iterable[Event]]) -> QNModel:
        """Train on an indexed event set, or on raw events indexed with the configured cutoff."""
        if isinstance(events, IndexedEvents):
            indexer = events
        else:
            indexer = OnePassDataIndexer(events, cutoff=self.config.cutoff, monitor=self.monitor).execute()
        return self.train_model(self.config.iterations, indexer)

    def train_model(self, iterations: int, indexer: IndexedEvents) -> QNModel:
        if iterations <= 0:
            raise ValueError("Number of iterations must be larger than zero")
        if indexer is None:
            raise ValueError("indexer must not be None")

        cfg = self.config
        self.minimizer = QNMinimizer(
            l1_cost=cfg.l1_cost,
            l2_cost=cfg.l2_cost,
            iterations=iterations,
            updates=cfg.updates,
            max_fct_eval=cfg.max_fct_eval,
            monitor=self.monitor,
            config=cfg.minimizer,
        )
        self.minimizer.evaluator = QNModelEvaluator(indexer)

        # built last: the parallel objective holds worker threads until close()
        if cfg.threads == 1:
            self._display("Computing model parameters ...")
            function = NegLogLikelihood(indexer)
        else:
            self._display(f"Computing model parameters in {cfg.threads} threads ...")
            function = ParallelNegLogLikelihood(indexer, cfg.threads)

        try:
            mp = self.minimizer.minimize(function)
        finally:
            if isinstance(function, ParallelNegLogLikelihood):
                function.close()

        model = QNModel(
            self._build_contexts(mp, indexer.num_outcomes, indexer.num_features),
            indexer.pred_labels,
            indexer.outcome_labels,
        )
        logger.info(f"Trained {model!r} ({self.minimizer.stats.reason.value})")
        return model

    @staticmethod
    def _build_contexts(mp: np.ndarray, n_outcomes: int, n_pred_labels: int):
        """One Context per predicate from the outcome-major flat vector."""
        weights = np.asarray(mp, dtype=np.float64).reshape(n_outcomes, n_pred_labels)
        return [Context.from_dense(weights[:, ci]) for ci in range(n_pred_labels)]

    def _display(self, message: str) -> None:
        logger.info(message)
        if self.monitor is not None:
            self.monitor.on_message(message)
