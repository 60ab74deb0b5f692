"""
Inner evolutionary algorithms and the interfaces every algorithm and tuner implements.
"""

from .base import (
    AlgorithmFactory,
    EvolutionaryAlgorithm,
    EvolutionaryAlgorithmFactory,
    HyperparameterOptimizationResult,
    HyperparameterOptimizer,
    OptimizationResult,
    TrialRecord,
)
from .differential_evolution import DifferentialEvolution, DifferentialEvolutionFactory
from .particle_swarm import ParticleSwarm, ParticleSwarmFactory

__all__ = [
    'AlgorithmFactory',
    'EvolutionaryAlgorithm',
    'EvolutionaryAlgorithmFactory',
    'HyperparameterOptimizationResult',
    'HyperparameterOptimizer',
    'OptimizationResult',
    'TrialRecord',
    'DifferentialEvolution',
    'DifferentialEvolutionFactory',
    'ParticleSwarm',
    'ParticleSwarmFactory',
]
