"""
Hyperparameter optimization of evolutionary algorithms.

An algorithm's configuration is declared as a ParameterSpace, optionally
narrowed by a SearchSpace, and searched by a hyperparameter optimizer through
the tuning bridge. Experiment managers repeat whole tuning runs and log every
inner trial.
"""

from .search_space.parameter import ParameterSpace, ParameterType, ParameterValidationError
from .search_space.space import SearchSpace, Transform
from .algorithms.base import (
    AlgorithmFactory,
    EvolutionaryAlgorithm,
    HyperparameterOptimizer,
)
from .hyper.tuning_bridge import HyperTuningProblem, make_hyper_context
from .orchestrator import ExperimentResult, ParallelExperimentManager, SequentialExperimentManager

__all__ = [
    'ParameterSpace',
    'ParameterType',
    'ParameterValidationError',
    'SearchSpace',
    'Transform',
    'AlgorithmFactory',
    'EvolutionaryAlgorithm',
    'HyperparameterOptimizer',
    'HyperTuningProblem',
    'make_hyper_context',
    'ExperimentResult',
    'ParallelExperimentManager',
    'SequentialExperimentManager',
]
