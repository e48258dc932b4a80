"""
L-BFGS minimizer with L1, L2 and elastic net regularization.

The L2 penalty is folded into the objective through `L2RegFunction`. The L1
penalty uses the orthant-wise pseudo-gradient (Andrew & Gao 2007, eq. 4)
together with the constrained line search. Iteration stops on the first of:

1. relative function change below `converge_tolerance`
2. ||g|| / max(1, ||x||) below `rel_grad_norm_tol` (pseudo-gradient under L1)
3. step size below `min_step_size`
4. more than `max_fct_eval` function evaluations

or when the iteration budget runs out. None of these is an error.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

import numpy as np

from ..config import MinimizerConfig
from ..monitor import Monitor
from .array_math import inv_l2_norm, l1_norm, l2_norm
from .functions import Function, L2RegFunction
from .hessian import HessianUpdateStore
from .line_search import LineSearchResult, do_constrained_line_search, do_line_search

logger = logging.getLogger(__name__)

L1_COST_DEFAULT = 0.0
L2_COST_DEFAULT = 0.0
NUM_ITERATIONS_DEFAULT = 100
M_DEFAULT = 15
MAX_FCT_EVAL_DEFAULT = 30000


class Evaluator(Protocol):
    """Scores a parameter vector for progress reports (e.g. training accuracy)."""

    def evaluate(self, parameters: np.ndarray) -> float:
        ...


class ConvergenceReason(str, Enum):
    FUNCTION_CHANGE = "function_change"
    GRADIENT_NORM = "gradient_norm"
    STEP_SIZE = "step_size"
    MAX_FUNCTION_EVALS = "max_function_evals"
    MAX_ITERATIONS = "max_iterations"


@dataclass
class MinimizerStats:
    """Summary of the last `minimize` call."""
    reason: ConvergenceReason
    iterations: int
    fct_evals: int
    value: float
    elapsed: float


class QNMinimizer:
    """
    Quasi-Newton (L-BFGS) minimizer for convex objectives.

    Args:
        l1_cost: L1-regularization cost.
        l2_cost: L2-regularization cost.
        iterations: Maximum number of iterations.
        updates: Number of Hessian updates to store.
        max_fct_eval: Maximum number of function evaluations.
        monitor: Optional progress/cancellation channel.
        config: Tolerances; defaults to `MinimizerConfig()`.
    """

    def __init__(
        self,
        l1_cost: float = L1_COST_DEFAULT,
        l2_cost: float = L2_COST_DEFAULT,
        iterations: int = NUM_ITERATIONS_DEFAULT,
        updates: int = M_DEFAULT,
        max_fct_eval: int = MAX_FCT_EVAL_DEFAULT,
        monitor: Optional[Monitor] = None,
        config: Optional[MinimizerConfig] = None,
    ):
        if l1_cost < 0:
            raise ValueError("L1-cost must not be less than zero")
        if l2_cost < 0:
            raise ValueError("L2-cost must not be less than zero")
        if iterations <= 0:
            raise ValueError("Number of iterations must be larger than zero")
        if updates <= 0:
            raise ValueError("Number of Hessian updates must be larger than zero")
        if max_fct_eval <= 0:
            raise ValueError("Maximum number of function evaluations must be larger than zero")

        self.l1_cost = l1_cost
        self.l2_cost = l2_cost
        self.iterations = iterations
        self.updates = updates
        self.max_fct_eval = max_fct_eval
        self.monitor = monitor
        self.config = config or MinimizerConfig()
        self.config.validate()

        self.evaluator: Optional[Evaluator] = None
        self.stats: Optional[MinimizerStats] = None
        self.dimension = 0
        self._update_info: Optional[HessianUpdateStore] = None

    def minimize(self, function: Function) -> np.ndarray:
        """
        Find the parameters that minimize `function`, starting from the origin.

        Raises:
            OperationCanceledError: The monitor requested cancellation.
        """
        cfg = self.config
        l1 = self.l1_cost > 0

        l2_reg_function = L2RegFunction(function, self.l2_cost)
        self.dimension = l2_reg_function.dimension
        self._update_info = HessianUpdateStore(self.updates, self.dimension)

        curr_point = np.zeros(self.dimension, dtype=np.float64)
        curr_value = l2_reg_function.value_at(curr_point)
        curr_grad = np.array(l2_reg_function.gradient_at(curr_point), dtype=np.float64)

        if l1:
            curr_value += self.l1_cost * l1_norm(curr_point)
            pseudo_grad = self._compute_pseudo_grad(curr_point, curr_grad)
            lsr = LineSearchResult.initial_for_l1(curr_value, curr_grad, pseudo_grad, curr_point)
        else:
            lsr = LineSearchResult.initial(curr_value, curr_grad, curr_point)

        self._display("Solving convex optimization problem.")
        self._display(f"Objective function has {self.dimension} variable(s).")
        self._display(
            f"Performing {self.iterations} iterations with "
            f"L1Cost={self.l1_cost} and L2Cost={self.l2_cost}"
        )

        start_time = time.perf_counter()
        search_grad = lsr.pseudo_grad_at_next if l1 else lsr.grad_at_next
        initial_step_size = inv_l2_norm(search_grad)

        reason = ConvergenceReason.MAX_ITERATIONS
        iteration = 0

        if math.isinf(initial_step_size):
            # the origin is already stationary
            reason = ConvergenceReason.GRADIENT_NORM
            self._display(
                f"Relative L2-norm of the gradient is smaller than the threshold "
                f"{cfg.rel_grad_norm_tol}. Training will stop."
            )
        else:
            for iteration in range(1, self.iterations + 1):
                if self.monitor is not None:
                    self.monitor.throw_if_cancellation_requested()

                direction = (lsr.pseudo_grad_at_next if l1 else lsr.grad_at_next).copy()
                self._update_info.compute_direction(direction)

                if l1:
                    # never step against the pseudo-gradient's orthant
                    pseudo_grad = lsr.pseudo_grad_at_next
                    direction[direction * pseudo_grad >= 0] = 0.0

                    do_constrained_line_search(
                        l2_reg_function, direction, lsr, self.l1_cost,
                        initial_step_size, cfg.min_step_size,
                    )
                    lsr.pseudo_grad_at_next = self._compute_pseudo_grad(lsr.next_point, lsr.grad_at_next)
                else:
                    do_line_search(l2_reg_function, direction, lsr, initial_step_size, cfg.min_step_size)

                self._update_info.update(lsr)
                self._report_iteration(iteration, lsr)

                converged = self._check_convergence(lsr)
                if converged is not None:
                    reason = converged
                    break

                initial_step_size = cfg.initial_step_size

        if reason == ConvergenceReason.MAX_ITERATIONS:
            self._display(f"Reached the maximum number of iterations ({self.iterations}).")

        result = lsr.next_point
        # elastic net shrinks twice through the L2 wrapper; undo one of them
        if l1 and self.l2_cost > 0 and cfg.undo_elastic_net_shrinkage:
            result = result * math.sqrt(1.0 + self.l2_cost)

        elapsed = time.perf_counter() - start_time
        self._display(f"Running time: {elapsed:.3f}s")

        self.stats = MinimizerStats(
            reason=reason,
            iterations=iteration,
            fct_evals=lsr.fct_eval_count,
            value=lsr.value_at_next,
            elapsed=elapsed,
        )
        logger.info(
            f"L-BFGS finished: reason={reason.value} iterations={iteration} "
            f"fct_evals={lsr.fct_eval_count} value={lsr.value_at_next:.6g}"
        )

        self._update_info = None
        return result

    def _compute_pseudo_grad(self, x: np.ndarray, g: np.ndarray) -> np.ndarray:
        """
        Pseudo-gradient of f(x) + l1 * ||x||_1.

        Off zero it is g +/- l1 by the sign of x. At zero it takes the one-sided
        derivative that points downhill, or 0 when |g| <= l1.
        """
        l1 = self.l1_cost
        at_zero = np.where(g < -l1, g + l1, np.where(g > l1, g - l1, 0.0))
        return np.where(x < 0, g - l1, np.where(x > 0, g + l1, at_zero))

    def _check_convergence(self, lsr: LineSearchResult) -> Optional[ConvergenceReason]:
        cfg = self.config

        if lsr.func_change_rate < cfg.converge_tolerance:
            self._display(
                f"Function change rate is smaller than the threshold "
                f"{cfg.converge_tolerance}. Training will stop."
            )
            return ConvergenceReason.FUNCTION_CHANGE

        x_norm = max(1.0, l2_norm(lsr.next_point))
        grad = lsr.pseudo_grad_at_next if self.l1_cost > 0 else lsr.grad_at_next
        if l2_norm(grad) / x_norm < cfg.rel_grad_norm_tol:
            self._display(
                f"Relative L2-norm of the gradient is smaller than the threshold "
                f"{cfg.rel_grad_norm_tol}. Training will stop."
            )
            return ConvergenceReason.GRADIENT_NORM

        if lsr.step_size < cfg.min_step_size:
            self._display(
                f"Step size is smaller than the minimum step size "
                f"{cfg.min_step_size}. Training will stop."
            )
            return ConvergenceReason.STEP_SIZE

        if lsr.fct_eval_count > self.max_fct_eval:
            self._display(
                f"Maximum number of function evaluations has exceeded the threshold "
                f"{self.max_fct_eval}. Training will stop."
            )
            return ConvergenceReason.MAX_FUNCTION_EVALS

        return None

    def _report_iteration(self, iteration: int, lsr: LineSearchResult) -> None:
        line = f"{iteration:>3}:\t{lsr.value_at_next}\t{lsr.func_change_rate}"
        if self.evaluator is not None and self.monitor is not None:
            line += f"\t{self.evaluator.evaluate(lsr.next_point)}"
        logger.debug(line)
        if self.monitor is not None:
            self.monitor.on_message(line)

    def _display(self, message: str) -> None:
        logger.debug(message)
        if self.monitor is not None:
            self.monitor.on_message(message)
