"""
Fixtures package for qnmaxent tests.
"""

from .functions import CountingFunction
from .synthetic import (
    SyntheticEvents,
    generate_separable,
    generate_noisy_with_redundant,
    generate_real_valued,
    generate_random_indexed,
    generate_text_events,
)

__all__ = [
    'CountingFunction',
    'SyntheticEvents',
    'generate_separable',
    'generate_noisy_with_redundant',
    'generate_real_valued',
    'generate_random_indexed',
    'generate_text_events',
]
