"""
Backtracking line search for the quasi-Newton minimizer.

Two variants share the Armijo sufficient-decrease rule with shrink factor
RHO and constant C:

- do_line_search: unconstrained, used when no L1 penalty is active.
- do_constrained_line_search: orthant-projected search used for L1
  regularization (Andrew & Gao, "Scalable Training of L1-Regularized
  Log-Linear Models", 2007).

Both mutate the caller's `LineSearchResult` in place so the minimizer
keeps a single bundle for the whole run.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .array_math import inner_product, l1_norm
from .functions import Function

logger = logging.getLogger(__name__)

C = 1e-4
RHO = 0.5  # step size decrease, must lie in (0, 1)

# Below this step the search stays at x; the minimizer then terminates.
MIN_STEP_SIZE = 1e-10


@dataclass
class LineSearchResult:
    """State shared between the line search and the minimizer."""
    step_size: float
    value_at_curr: float
    value_at_next: float
    grad_at_curr: np.ndarray
    grad_at_next: np.ndarray
    curr_point: np.ndarray
    next_point: np.ndarray
    fct_eval_count: int = 0
    pseudo_grad_at_next: Optional[np.ndarray] = None
    sign_vector: Optional[np.ndarray] = None

    @property
    def func_change_rate(self) -> float:
        if self.value_at_curr == 0.0:
            return 0.0
        return float((self.value_at_curr - self.value_at_next) / self.value_at_curr)

    def set_all(
        self,
        step_size: float,
        value_at_curr: float,
        value_at_next: float,
        grad_at_curr: np.ndarray,
        grad_at_next: np.ndarray,
        curr_point: np.ndarray,
        next_point: np.ndarray,
        fct_eval_count: int,
        pseudo_grad_at_next: Optional[np.ndarray] = None,
        sign_vector: Optional[np.ndarray] = None,
    ) -> None:
        self.step_size = step_size
        self.value_at_curr = value_at_curr
        self.value_at_next = value_at_next
        self.grad_at_curr = grad_at_curr
        self.grad_at_next = grad_at_next
        self.curr_point = curr_point
        self.next_point = next_point
        self.fct_eval_count = fct_eval_count
        self.pseudo_grad_at_next = pseudo_grad_at_next
        self.sign_vector = sign_vector

    @classmethod
    def initial(cls, value_at_x: float, grad_at_x: np.ndarray, x: np.ndarray) -> "LineSearchResult":
        """Bundle for an unconstrained run starting at x."""
        return cls(
            step_size=0.0,
            value_at_curr=0.0,
            value_at_next=value_at_x,
            grad_at_curr=np.zeros_like(x),
            grad_at_next=grad_at_x,
            curr_point=np.zeros_like(x),
            next_point=x,
        )

    @classmethod
    def initial_for_l1(
        cls,
        value_at_x: float,
        grad_at_x: np.ndarray,
        pseudo_grad_at_x: np.ndarray,
        x: np.ndarray,
    ) -> "LineSearchResult":
        """Bundle for an L1-regularized run; carries the pseudo-gradient and sign vector."""
        lsr = cls.initial(value_at_x, grad_at_x, x)
        lsr.pseudo_grad_at_next = pseudo_grad_at_x
        lsr.sign_vector = np.zeros_like(x)
        return lsr


def do_line_search(
    function: Function,
    direction: np.ndarray,
    lsr: LineSearchResult,
    initial_step_size: float,
    min_step_size: float = MIN_STEP_SIZE,
) -> None:
    """
    Backtrack from `initial_step_size` until the Armijo condition holds.

    Accepts `x + step * direction` once
    f(candidate) <= f(x) + C * step * <direction, grad f(x)>.
    """
    step_size = initial_step_size
    fct_eval_count = lsr.fct_eval_count
    x = lsr.next_point
    grad_at_x = lsr.grad_at_next
    value_at_x = lsr.value_at_next

    cached_prod = C * inner_product(direction, grad_at_x)

    while True:
        next_point = x + direction * step_size
        value_at_next = function.value_at(next_point)
        fct_eval_count += 1

        # NaN compares false and keeps shrinking
        if value_at_next <= value_at_x + cached_prod * step_size:
            break
        if step_size < min_step_size:
            logger.debug(f"Line search gave up at step size {step_size:.3e}")
            next_point = x.copy()
            value_at_next = value_at_x
            break

        step_size *= RHO

    grad_at_next = np.array(function.gradient_at(next_point), dtype=np.float64)

    lsr.set_all(
        step_size, value_at_x, value_at_next,
        grad_at_x, grad_at_next,
        x, next_point,
        fct_eval_count,
    )


def do_constrained_line_search(
    function: Function,
    direction: np.ndarray,
    lsr: LineSearchResult,
    l1_cost: float,
    initial_step_size: float,
    min_step_size: float = MIN_STEP_SIZE,
) -> None:
    """
    Orthant-constrained backtracking search for L1-regularized objectives.

    Coordinates that cross the orthant picked by the sign vector are
    projected back to zero. The value tested includes the L1 term and the
    sufficient decrease uses the projected displacement against the
    pseudo-gradient.
    """
    step_size = initial_step_size
    fct_eval_count = lsr.fct_eval_count
    x = lsr.next_point
    grad_at_x = lsr.grad_at_next
    pseudo_grad_at_x = lsr.pseudo_grad_at_next
    value_at_x = lsr.value_at_next

    # orthant: sign of x, or of the negative pseudo-gradient where x is zero
    sign_x = np.where(x == 0.0, -pseudo_grad_at_x, x)

    while True:
        next_point = x + direction * step_size
        next_point[next_point * sign_x <= 0] = 0.0

        value_at_next = function.value_at(next_point) + l1_cost * l1_norm(next_point)
        fct_eval_count += 1

        dir_gradient_at_x = float(np.dot(next_point - x, pseudo_grad_at_x))

        if value_at_next <= value_at_x + C * dir_gradient_at_x:
            break
        if step_size < min_step_size or math.isnan(dir_gradient_at_x):
            logger.debug(f"Constrained line search gave up at step size {step_size:.3e}")
            next_point = x.copy()
            value_at_next = value_at_x
            break

        step_size *= RHO

    grad_at_next = np.array(function.gradient_at(next_point), dtype=np.float64)

    lsr.set_all(
        step_size, value_at_x, value_at_next,
        grad_at_x, grad_at_next,
        x, next_point,
        fct_eval_count,
        pseudo_grad_at_next=pseudo_grad_at_x,
        sign_vector=sign_x,
    )
