"""
Objective function contract and reference objectives.

Any object exposing `dimension`, `value_at(x)` and `gradient_at(x)` can be
minimized by `QNMinimizer`. `L2RegFunction` decorates such an object with an
L2 penalty; the quadratic and Rosenbrock functions are small known-optimum
problems used to exercise the minimizer.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from .array_math import inner_product


@runtime_checkable
class Function(Protocol):
    """A differentiable objective over a flat float vector."""

    @property
    def dimension(self) -> int:
        ...

    def value_at(self, x: np.ndarray) -> float:
        ...

    def gradient_at(self, x: np.ndarray) -> np.ndarray:
        ...


class L2RegFunction:
    """
    Adds `l2_cost * <x, x>` to the wrapped function.

    The gradient correction `2 * l2_cost * x` is applied to the array the
    wrapped function returns, so callers must copy it before the next call.
    """

    def __init__(self, func: Function, l2_cost: float):
        self.func = func
        self.l2_cost = l2_cost

    @property
    def dimension(self) -> int:
        return self.func.dimension

    def value_at(self, x: np.ndarray) -> float:
        self._check_dimension(x)
        value = self.func.value_at(x)
        if self.l2_cost > 0:
            value += self.l2_cost * inner_product(x, x)
        return value

    def gradient_at(self, x: np.ndarray) -> np.ndarray:
        self._check_dimension(x)
        gradient = self.func.gradient_at(x)
        if self.l2_cost <= 0:
            return gradient
        gradient += 2.0 * self.l2_cost * x
        return gradient

    def _check_dimension(self, x: np.ndarray) -> None:
        if len(x) != self.dimension:
            raise IndexError(
                f"x has dimension {len(x)}, expected the function's dimension {self.dimension}"
            )


class QuadraticFunction:
    """f(x, y) = (x - 1)^2 + (y - 5)^2 + 10, minimum 10 at (1, 5)."""

    dimension = 2

    def value_at(self, x: np.ndarray) -> float:
        return (x[0] - 1.0) ** 2 + (x[1] - 5.0) ** 2 + 10.0

    def gradient_at(self, x: np.ndarray) -> np.ndarray:
        return np.array([2.0 * (x[0] - 1.0), 2.0 * (x[1] - 5.0)])


class RosenbrockFunction:
    """f(x, y) = (1 - x)^2 + 100 (y - x^2)^2, minimum 0 at (1, 1)."""

    dimension = 2

    def value_at(self, x: np.ndarray) -> float:
        return (1.0 - x[0]) ** 2 + 100.0 * (x[1] - x[0] ** 2) ** 2

    def gradient_at(self, x: np.ndarray) -> np.ndarray:
        return np.array([
            -2.0 * (1.0 - x[0]) - 400.0 * (x[1] - x[0] ** 2) * x[0],
            200.0 * (x[1] - x[0] ** 2),
        ])
