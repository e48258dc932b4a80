"""
qnmaxent Test Configuration

Fixtures and common test utilities for all test modules.
"""

import pytest
import numpy as np

from qnmaxent.tests.fixtures import (
    generate_random_indexed,
    generate_separable,
    generate_text_events,
)


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)


@pytest.fixture
def random_events():
    """Unstructured indexed events for arithmetic checks."""
    return generate_random_indexed()


@pytest.fixture
def random_real_events():
    """Unstructured indexed events carrying real values."""
    return generate_random_indexed(with_values=True, seed=11)


@pytest.fixture
def separable_events():
    return generate_separable().indexed


@pytest.fixture
def text_events():
    return generate_text_events()


class RecordingListener:
    """Collects monitor messages."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)


@pytest.fixture
def recorder():
    return RecordingListener()
