"""
array math kernels.

small, stateless helpers over flat float vectors shared by the objective,
the line search and the minimizer. log_sum_of_exps is the stable softmax
normalizer used wherever probabilities come from linear scores.
"""

import math
from typing import Optional

import numpy as np


def inner_product(a: Optional[np.ndarray], b: Optional[np.ndarray]) -> float:
    """Dot product; NaN when either side is missing or the lengths differ."""
    if a is None or b is None or len(a) != len(b):
        return float('nan')
    return float(np.dot(a, b))


def l1_norm(x: np.ndarray) -> float:
    return float(np.sum(np.abs(x)))


def l2_norm(x: np.ndarray) -> float:
    return math.sqrt(inner_product(x, x))


def inv_l2_norm(x: np.ndarray) -> float:
    """1 / ||x||_2. A zero vector yields inf, which callers treat as a step."""
    norm = l2_norm(x)
    if norm == 0.0:
        return float('inf')
    return 1.0 / norm


def log_sum_of_exps(x: np.ndarray) -> float:
    """
    Compute log(sum(exp(x))) without overflow or underflow.

    Terms equal to -inf contribute nothing and are skipped.
    """
    x = np.asarray(x, dtype=np.float64)
    max_value = float(np.max(x))
    if max_value == -math.inf:
        return -math.inf
    finite = x[x != -math.inf]
    return max_value + math.log(float(np.sum(np.exp(finite - max_value))))


def row_log_sum_of_exps(scores: np.ndarray) -> np.ndarray:
    """log_sum_of_exps applied to every row of a (rows, cols) matrix."""
    scores = np.asarray(scores, dtype=np.float64)
    if scores.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    row_max = scores.max(axis=1)
    # rows that are entirely -inf stay -inf
    shift = np.where(np.isneginf(row_max), 0.0, row_max)
    with np.errstate(divide='ignore'):
        return shift + np.log(np.exp(scores - shift[:, np.newaxis]).sum(axis=1))


def max_id(x: Optional[np.ndarray]) -> int:
    """Index of the first maximal element."""
    if x is None or len(x) == 0:
        raise ValueError("x must contain at least one element")
    return int(np.argmax(x))
