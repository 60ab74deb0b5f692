"""
Pytest configuration and shared fixtures for evotune tests.
"""

import pytest

from evotune.optimization.algorithms.base import AlgorithmFactory
from evotune.problems.benchmark import SphereProblem
from tests.toy import RecordingLogger, ToyAlgorithm


@pytest.fixture
def toy_factory():
    """Factory producing ToyAlgorithm instances."""
    return AlgorithmFactory(ToyAlgorithm)


@pytest.fixture
def sphere():
    """Two-dimensional sphere problem."""
    return SphereProblem(2)


@pytest.fixture
def recording_logger():
    return RecordingLogger()
