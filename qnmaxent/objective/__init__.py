"""
Objective functions for maximum entropy training.
"""

from .neg_log_likelihood import NegLogLikelihood
from .parallel_neg_log_likelihood import ParallelNegLogLikelihood

__all__ = [
    'NegLogLikelihood',
    'ParallelNegLogLikelihood',
]
