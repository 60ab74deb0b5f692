"""
Objective functions the evolutionary algorithms minimize.
"""

from .base import Problem, ProblemMetadata
from .benchmark import (
    AckleyProblem,
    CallableProblem,
    GriewankProblem,
    RastriginProblem,
    RosenbrockProblem,
    SchwefelProblem,
    SphereProblem,
    ZakharovProblem,
)

__all__ = [
    'Problem',
    'ProblemMetadata',
    'AckleyProblem',
    'CallableProblem',
    'GriewankProblem',
    'RastriginProblem',
    'RosenbrockProblem',
    'SchwefelProblem',
    'SphereProblem',
    'ZakharovProblem',
]
