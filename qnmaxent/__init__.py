"""
qnmaxent: quasi-Newton maximum entropy training.

L-BFGS with L1 / L2 / elastic net regularization over indexed events,
producing evaluable multinomial log-linear models.
"""

from .config import Algorithm, MinimizerConfig, QNTrainerConfig, TrainingParameters
from .model import Context, Event, IndexedEvents, QNModel, index_events
from .monitor import Monitor, OperationCanceledError
from .objective import NegLogLikelihood, ParallelNegLogLikelihood
from .optim import ConvergenceReason, QNMinimizer
from .trainer import QNModelEvaluator, QNTrainer

__version__ = "0.1.0"

__all__ = [
    'Algorithm',
    'MinimizerConfig',
    'QNTrainerConfig',
    'TrainingParameters',
    'Context',
    'Event',
    'IndexedEvents',
    'QNModel',
    'index_events',
    'Monitor',
    'OperationCanceledError',
    'NegLogLikelihood',
    'ParallelNegLogLikelihood',
    'ConvergenceReason',
    'QNMinimizer',
    'QNModelEvaluator',
    'QNTrainer',
]
