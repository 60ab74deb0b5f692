"""
Hyperparameter optimizers and the bridge that exposes an algorithm's configuration as a search problem.
"""

from .base import BridgedHyperOptimizer
from .bayesian import BayesianTuner
from .particle_swarm import ParticleSwarmTuner
from .random_search import RandomSearchTuner
from .tuning_bridge import (
    FALLBACK_CONTINUOUS_RANGE,
    FALLBACK_INTEGER_RANGE,
    HyperTuningProblem,
    TuningContext,
    fill_hyper_result,
    make_hyper_context,
)

__all__ = [
    'BridgedHyperOptimizer',
    'BayesianTuner',
    'ParticleSwarmTuner',
    'RandomSearchTuner',
    'FALLBACK_CONTINUOUS_RANGE',
    'FALLBACK_INTEGER_RANGE',
    'HyperTuningProblem',
    'TuningContext',
    'fill_hyper_result',
    'make_hyper_context',
]
