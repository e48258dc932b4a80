"""
limited-memory inverse hessian approximation.

stores the last m curvature pairs (s, y) and their rho = 1 / <s, y> in a
ring buffer. the two-loop recursion (nocedal & wright, numerical
optimization, 2006, p. 178) applies the implied inverse hessian to a
vector without forming the n x n matrix.

shape conventions:
- m: number of stored updates
- n: dimension of the objective
- S, Y: (m, n)
- rho, alpha: (m,)
"""

import logging
import math

import numpy as np

from .line_search import LineSearchResult

logger = logging.getLogger(__name__)


class HessianUpdateStore:
    """
    bounded history of curvature pairs.

    physical slot of logical index i (0 = oldest) is (head + i) % m, so
    evicting the oldest pair is a head increment instead of a shift.
    """

    def __init__(self, m: int, dimension: int):
        if m <= 0:
            raise ValueError("Number of Hessian updates must be larger than zero")
        self.m = m
        self.dimension = dimension
        self.S = np.zeros((m, dimension), dtype=np.float64)
        self.Y = np.zeros((m, dimension), dtype=np.float64)
        self.rho = np.zeros(m, dtype=np.float64)
        self.alpha = np.zeros(m, dtype=np.float64)
        self.head = 0
        self.k = 0

    def __len__(self) -> int:
        return self.k

    def slot(self, i: int) -> int:
        """physical row of the i-th oldest pair."""
        return (self.head + i) % self.m

    def update(self, lsr: LineSearchResult) -> None:
        """append the step just taken, evicting the oldest pair when full."""
        s = lsr.next_point - lsr.curr_point
        y = lsr.grad_at_next - lsr.grad_at_curr
        sy = float(np.dot(s, y))

        # pairs without positive curvature (including a zero step when the
        # line search stayed put) would break positive definiteness
        if not sy > 0.0 or not math.isfinite(sy):
            logger.debug(f"skipping curvature pair with <s, y> = {sy}")
            return

        if self.k < self.m:
            row = self.slot(self.k)
            self.k += 1
        else:
            row = self.head
            self.head = (self.head + 1) % self.m

        self.S[row] = s
        self.Y[row] = y
        self.rho[row] = 1.0 / sy

    def compute_direction(self, direction: np.ndarray) -> np.ndarray:
        """
        two-loop recursion applied in place.

        on entry `direction` holds the (pseudo-)gradient; on exit it holds
        the quasi-newton descent direction -H * g.
        """
        S, Y, rho, alpha = self.S, self.Y, self.rho, self.alpha

        # newest to oldest
        for i in range(self.k - 1, -1, -1):
            j = self.slot(i)
            alpha[j] = rho[j] * np.dot(S[j], direction)
            direction -= alpha[j] * Y[j]

        # oldest to newest
        for i in range(self.k):
            j = self.slot(i)
            beta = rho[j] * np.dot(Y[j], direction)
            direction += S[j] * (alpha[j] - beta)

        np.negative(direction, out=direction)
        return direction

    def reset(self) -> None:
        self.S.fill(0.0)
        self.Y.fill(0.0)
        self.rho.fill(0.0)
        self.alpha.fill(0.0)
        self.head = 0
        self.k = 0
