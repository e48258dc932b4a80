"""
Configuration for the quasi-Newton maximum entropy trainer.

All defaults and thresholds are centralized here. Each config object has a
`validate()` that raises ValueError on bad values; nothing is clamped.
`TrainingParameters` is the named (string keyed) form used when settings
come from a file or a command line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Algorithm(str, Enum):
    """Trainer families understood by the parameter sets."""
    MAXENT_QN = "MAXENT_QN"
    MAXENT = "MAXENT"
    PERCEPTRON = "PERCEPTRON"
    NAIVE_BAYES = "NAIVEBAYES"


@dataclass
class MinimizerConfig:
    """
    Tolerances of the L-BFGS driver.

    Attributes:
        converge_tolerance: Relative function change below which training stops.
        rel_grad_norm_tol: Threshold on ||g|| / max(1, ||x||).
        initial_step_size: Line search start for every iteration after the first.
        min_step_size: Smallest accepted step; also the line search floor.
        undo_elastic_net_shrinkage: Rescale the result by sqrt(1 + l2) when
            both penalties are active.
    """
    converge_tolerance: float = 1e-4
    rel_grad_norm_tol: float = 1e-4
    initial_step_size: float = 1.0
    min_step_size: float = 1e-10
    undo_elastic_net_shrinkage: bool = True

    def validate(self) -> None:
        if self.initial_step_size <= 0:
            raise ValueError("Initial step size must be larger than zero")
        if self.min_step_size < 0:
            raise ValueError("Minimum step size must not be less than zero")


@dataclass
class QNTrainerConfig:
    """Hyperparameters of QNTrainer."""
    l1_cost: float = 0.1
    l2_cost: float = 0.1
    updates: int = 15
    max_fct_eval: int = 30000
    threads: int = 1
    iterations: int = 100
    cutoff: int = 0
    minimizer: MinimizerConfig = field(default_factory=MinimizerConfig)

    def validate(self) -> None:
        if self.l1_cost < 0:
            raise ValueError("L1-cost must not be less than zero")
        if self.l2_cost < 0:
            raise ValueError("L2-cost must not be less than zero")
        if self.updates <= 0:
            raise ValueError("Number of Hessian updates must be larger than zero")
        if self.max_fct_eval <= 0:
            raise ValueError("The maximum number of function evaluations must be larger than zero")
        if self.threads < 1:
            raise ValueError("The number of threads must be larger than zero")
        if self.iterations <= 0:
            raise ValueError("Number of iterations must be larger than zero")
        if self.cutoff < 0:
            raise ValueError("Cutoff must not be less than zero")
        self.minimizer.validate()


class TrainingParameters:
    """
    Named training settings.

    Keys follow the conventional parameter file names (``L1Cost``,
    ``Threads``...). Values may be strings; getters convert them.
    """

    ALGORITHM = "Algorithm"
    ITERATIONS = "Iterations"
    CUTOFF = "Cutoff"
    L1_COST = "L1Cost"
    L2_COST = "L2Cost"
    NUM_OF_UPDATES = "NumOfUpdates"
    MAX_FCT_EVAL = "MaxFctEval"
    THREADS = "Threads"

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def set(self, key: str, value: Any) -> "TrainingParameters":
        self._values[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        value = self._values.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Parameter {key} must be an integer, got {value!r}") from exc

    def get_float(self, key: str, default: float) -> float:
        value = self._values.get(key)
        if value is None:
            return default
        try:
            return float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Parameter {key} must be a number, got {value!r}") from exc

    def algorithm(self) -> Optional[Algorithm]:
        value = self._values.get(self.ALGORITHM)
        if value is None:
            return None
        try:
            return Algorithm(str(value).upper())
        except ValueError as exc:
            raise ValueError(f"Unknown training algorithm {value!r}") from exc

    def to_trainer_config(self, base: Optional[QNTrainerConfig] = None) -> QNTrainerConfig:
        """Overlay the named values on `base` (or the defaults) and validate."""
        base = base or QNTrainerConfig()
        algorithm = self.algorithm()
        if algorithm is not None and algorithm != Algorithm.MAXENT_QN:
            raise ValueError(f"Parameters describe a {algorithm.value} trainer, not {Algorithm.MAXENT_QN.value}")

        config = QNTrainerConfig(
            l1_cost=self.get_float(self.L1_COST, base.l1_cost),
            l2_cost=self.get_float(self.L2_COST, base.l2_cost),
            updates=self.get_int(self.NUM_OF_UPDATES, base.updates),
            max_fct_eval=self.get_int(self.MAX_FCT_EVAL, base.max_fct_eval),
            threads=self.get_int(self.THREADS, base.threads),
            iterations=self.get_int(self.ITERATIONS, base.iterations),
            cutoff=self.get_int(self.CUTOFF, base.cutoff),
            minimizer=base.minimizer,
        )
        config.validate()
        return config

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)
