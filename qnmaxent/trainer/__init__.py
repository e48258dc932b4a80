"""
Trainer facade and progress evaluator.
"""

from .evaluator import QNModelEvaluator
from .qn_trainer import QNTrainer

__all__ = [
    'QNModelEvaluator',
    'QNTrainer',
]
