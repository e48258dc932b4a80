"""
Sparse per-predicate weight rows of a trained model.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np


class Context:
    """
    Outcomes with a non-zero weight for one predicate, and those weights.

    `outcomes` is sorted ascending; `parameters[i]` is the weight of
    `outcomes[i]`.
    """

    __slots__ = ("outcomes", "parameters")

    def __init__(self, outcomes: Sequence[int], parameters: Sequence[float]):
        outcomes = np.array(outcomes, dtype=np.int64)
        parameters = np.array(parameters, dtype=np.float64)
        if outcomes.shape != parameters.shape:
            raise ValueError("outcomes and parameters must have the same length")
        outcomes.setflags(write=False)
        parameters.setflags(write=False)
        self.outcomes = outcomes
        self.parameters = parameters

    @classmethod
    def from_dense(cls, weights: np.ndarray) -> "Context":
        """Keep only the outcomes whose weight is not exactly zero."""
        weights = np.asarray(weights, dtype=np.float64)
        nonzero = np.flatnonzero(weights != 0.0)
        return cls(nonzero, weights[nonzero])

    def contains(self, outcome: int) -> bool:
        idx = int(np.searchsorted(self.outcomes, outcome))
        return idx < len(self.outcomes) and self.outcomes[idx] == outcome

    def __len__(self) -> int:
        return len(self.outcomes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return (
            np.array_equal(self.outcomes, other.outcomes)
            and np.array_equal(self.parameters, other.parameters)
        )

    def __hash__(self) -> int:
        return hash((self.outcomes.tobytes(), self.parameters.tobytes()))

    def __repr__(self) -> str:
        return f"Context(outcomes={self.outcomes.tolist()}, parameters={self.parameters.tolist()})"


class EvalParameters:
    """
    Model parameters in evaluation form.

    The correction constant is only meaningful for GIS-trained models; its
    inverse is guarded against near-zero constants.
    """

    def __init__(
        self,
        parameters: List[Context],
        num_outcomes: int,
        correction_param: float = 0.0,
        correction_constant: float = 0.0,
    ):
        self.parameters = list(parameters)
        self.num_outcomes = num_outcomes
        self.correction_param = correction_param
        self.correction_constant = correction_constant
        if abs(correction_constant) < 1e-6:
            self.constant_inverse = 1.0
        else:
            self.constant_inverse = 1.0 / correction_constant

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EvalParameters):
            return NotImplemented
        return (
            self.parameters == other.parameters
            and self.num_outcomes == other.num_outcomes
            and self.correction_constant == other.correction_constant
            and self.correction_param == other.correction_param
        )

    def __hash__(self) -> int:
        return hash((tuple(self.parameters), self.num_outcomes, self.correction_constant, self.correction_param))
