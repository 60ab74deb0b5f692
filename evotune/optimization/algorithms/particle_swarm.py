from typing import Tuple

import numpy as np

from evotune.configs.budget import AlgorithmIdentity
from evotune.optimization.search_space.parameter import ParameterSpace
from evotune.problems.base import Problem
from .base import AlgorithmFactory
from .budget_util import get_float_param, get_int_param
from .population import PopulationAlgorithm, evaluate_population, initial_population


class ParticleSwarm(PopulationAlgorithm):
    """
    Particle swarm optimization with a constriction factor.

    ``omega`` multiplies the whole velocity update, so the defaults
    (0.7298, 2.05, 2.05) are the canonical constricted swarm.

    ``max_velocity`` is a fraction of each coordinate's range. With the ``ring``
    topology a particle follows the best of itself and its two index neighbours,
    with ``gbest`` it follows the swarm's best.
    """

    @classmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        space = ParameterSpace()
        space.add_integer("population_size", 2, 2000, default=50, required=True)
        space.add_continuous("omega", 0.0, 1.0, default=0.7298)
        space.add_continuous("eta1", 0.0, 4.0, default=2.05)
        space.add_continuous("eta2", 0.0, 4.0, default=2.05)
        space.add_continuous("max_velocity", 0.01, 1.0, default=0.5)
        space.add_categorical("topology", ["gbest", "ring"], default="gbest")
        space.add_integer("generations", 1, 10000, default=100)
        return space

    @classmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        return AlgorithmIdentity(family="ParticleSwarmOptimization", implementation="evotune.pso", version="1.0")

    def _evolve(self, problem: Problem, generations: int,
                rng: np.random.RandomState) -> Tuple[np.ndarray, float, int, int]:
        params = self.configured_parameters
        swarm_size = get_int_param(params, "population_size")
        omega = get_float_param(params, "omega")
        eta1 = get_float_param(params, "eta1")
        eta2 = get_float_param(params, "eta2")
        topology = params.get("topology", "gbest")

        lower = np.asarray(problem.lower_bounds(), dtype=float)
        upper = np.asarray(problem.upper_bounds(), dtype=float)
        v_max = get_float_param(params, "max_velocity") * (upper - lower)

        positions = initial_population(problem, swarm_size, rng, lower, upper)
        velocities = (rng.rand(swarm_size, lower.size) * 2.0 - 1.0) * v_max
        fitness = evaluate_population(problem, positions)
        personal_best = positions.copy()
        personal_best_f = fitness.copy()
        evaluations = swarm_size

        for _ in range(generations):
            guides = self._neighbourhood_best(personal_best, personal_best_f, topology)
            r1 = rng.rand(*positions.shape)
            r2 = rng.rand(*positions.shape)
            velocities = omega * (velocities
                                  + eta1 * r1 * (personal_best - positions)
                                  + eta2 * r2 * (guides - positions))
            velocities = np.clip(velocities, -v_max, v_max)
            positions = positions + velocities

            clipped = np.clip(positions, lower, upper)
            velocities[clipped != positions] = 0.0
            positions = clipped

            fitness = evaluate_population(problem, positions)
            evaluations += swarm_size

            improved = fitness < personal_best_f
            personal_best[improved] = positions[improved]
            personal_best_f[improved] = fitness[improved]

        best_idx = int(np.argmin(personal_best_f))
        return personal_best[best_idx], float(personal_best_f[best_idx]), evaluations, generations

    @staticmethod
    def _neighbourhood_best(best: np.ndarray, best_f: np.ndarray, topology: str) -> np.ndarray:
        if topology == "ring":
            n = best_f.size
            idx = np.arange(n)
            candidates = np.stack([(idx - 1) % n, idx, (idx + 1) % n], axis=1)
            winners = candidates[idx, np.argmin(best_f[candidates], axis=1)]
            return best[winners]
        return np.broadcast_to(best[np.argmin(best_f)], best.shape)


class ParticleSwarmFactory(AlgorithmFactory):
    def __init__(self):
        super().__init__(ParticleSwarm)
