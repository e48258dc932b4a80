"""
Model data: training events, sparse weight rows and the evaluable model.
"""

from .context import Context, EvalParameters
from .events import Event, IndexedEvents, OnePassDataIndexer, index_events
from .qn_model import QNModel

__all__ = [
    'Context',
    'EvalParameters',
    'Event',
    'IndexedEvents',
    'OnePassDataIndexer',
    'index_events',
    'QNModel',
]
