"""
Numerical core: array kernels, line search, L-BFGS minimizer.
"""

from .array_math import (
    inner_product,
    inv_l2_norm,
    l1_norm,
    l2_norm,
    log_sum_of_exps,
    max_id,
)
from .functions import Function, L2RegFunction, QuadraticFunction, RosenbrockFunction
from .hessian import HessianUpdateStore
from .line_search import LineSearchResult, do_constrained_line_search, do_line_search
from .minimizer import ConvergenceReason, MinimizerStats, QNMinimizer

__all__ = [
    'inner_product',
    'inv_l2_norm',
    'l1_norm',
    'l2_norm',
    'log_sum_of_exps',
    'max_id',
    'Function',
    'L2RegFunction',
    'QuadraticFunction',
    'RosenbrockFunction',
    'HessianUpdateStore',
    'LineSearchResult',
    'do_line_search',
    'do_constrained_line_search',
    'ConvergenceReason',
    'MinimizerStats',
    'QNMinimizer',
]
