"""
conftest.py
~~~~~~~~~~~

Shared fixtures for the test suite.
"""

import pytest

from perceptron import matrix
from perceptron.network import Network


@pytest.fixture
def serial_pool():
    """Run matrix operations inline on a single worker."""
    matrix.set_worker_count(1)
    yield
    matrix.shutdown_pool()
    matrix._workers = None


@pytest.fixture
def parallel_pool():
    """Force fan-out across four workers even for tiny matrices."""
    matrix.set_worker_count(4)
    matrix.set_parallel_min_rows(1)
    yield
    matrix.shutdown_pool()
    matrix._workers = None
    matrix._min_parallel_rows = None


@pytest.fixture
def simple_network():
    """Create a small seeded 3-layer network for testing."""
    return Network([3, 5, 2], learning_rate=0.1, seed=7)
