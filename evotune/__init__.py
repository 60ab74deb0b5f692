"""
evotune - hyperparameter tuning for evolutionary algorithms.
"""

from evotune.optimization import (
    ParallelExperimentManager,
    ParameterSpace,
    SearchSpace,
    SequentialExperimentManager,
)

__version__ = "0.1.0"

__all__ = [
    'ParallelExperimentManager',
    'ParameterSpace',
    'SearchSpace',
    'SequentialExperimentManager',
]
