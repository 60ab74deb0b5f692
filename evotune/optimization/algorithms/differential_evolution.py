from typing import Tuple

import numpy as np

from evotune.configs.budget import AlgorithmIdentity
from evotune.optimization.search_space.parameter import ParameterSpace
from evotune.problems.base import Problem
from .base import AlgorithmFactory
from .budget_util import get_float_param, get_int_param
from .population import PopulationAlgorithm, evaluate_population, initial_population

# variant code -> (base vector, number of difference vectors, crossover)
DE_VARIANTS = {
    1: ("best", 1, "exp"),
    2: ("rand", 1, "exp"),
    3: ("rand-to-best", 1, "exp"),
    4: ("best", 2, "exp"),
    5: ("rand", 2, "exp"),
    6: ("best", 1, "bin"),
    7: ("rand", 1, "bin"),
    8: ("rand-to-best", 1, "bin"),
    9: ("best", 2, "bin"),
    10: ("rand", 2, "bin"),
}


class DifferentialEvolution(PopulationAlgorithm):
    """
    Classic differential evolution with ten mutation/crossover variants.

    The run stops early once the population's fitness spread drops below
    ``ftol`` or the distance between the best and worst individual drops below ``xtol``.
    """

    @classmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        space = ParameterSpace()
        space.add_integer("population_size", 6, 2000, default=50, required=True)
        space.add_continuous("crossover_rate", 0.0, 1.0, default=0.9)
        space.add_continuous("scaling_factor", 0.0, 1.0, default=0.8)
        space.add_integer("variant", 1, 10, default=2)
        space.add_integer("generations", 1, 1000, default=100)
        space.add_continuous("ftol", 0.0, 1.0, default=1e-6)
        space.add_continuous("xtol", 0.0, 1.0, default=1e-6)
        return space

    @classmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        return AlgorithmIdentity(family="DifferentialEvolution", implementation="evotune.de", version="1.0")

    def _evolve(self, problem: Problem, generations: int,
                rng: np.random.RandomState) -> Tuple[np.ndarray, float, int, int]:
        params = self.configured_parameters
        population_size = get_int_param(params, "population_size")
        crossover_rate = get_float_param(params, "crossover_rate")
        scaling_factor = get_float_param(params, "scaling_factor")
        ftol = get_float_param(params, "ftol")
        xtol = get_float_param(params, "xtol")
        base, n_diff, crossover = DE_VARIANTS[get_int_param(params, "variant")]

        lower = np.asarray(problem.lower_bounds(), dtype=float)
        upper = np.asarray(problem.upper_bounds(), dtype=float)
        dim = lower.size

        population = initial_population(problem, population_size, rng, lower, upper)
        fitness = evaluate_population(problem, population)
        evaluations = population_size
        performed = 0

        for _ in range(generations):
            best = population[np.argmin(fitness)]
            trials = np.empty_like(population)

            for i in range(population_size):
                others = [j for j in range(population_size) if j != i]
                r = rng.choice(others, size=5, replace=False)

                if n_diff == 1:
                    diff = population[r[1]] - population[r[2]]
                else:
                    diff = population[r[1]] + population[r[2]] - population[r[3]] - population[r[4]]

                if base == "best":
                    mutant = best + scaling_factor * diff
                elif base == "rand":
                    mutant = population[r[0]] + scaling_factor * diff
                else:
                    mutant = population[i] + scaling_factor * (best - population[i]) + scaling_factor * diff

                if crossover == "bin":
                    mask = rng.rand(dim) < crossover_rate
                    mask[rng.randint(dim)] = True
                else:
                    mask = np.zeros(dim, dtype=bool)
                    start = rng.randint(dim)
                    length = 0
                    while True:
                        mask[(start + length) % dim] = True
                        length += 1
                        if length >= dim or rng.rand() >= crossover_rate:
                            break

                trial = np.where(mask, mutant, population[i])
                # out-of-bounds coordinates are resampled uniformly
                outside = (trial < lower) | (trial > upper)
                if outside.any():
                    trial[outside] = lower[outside] + rng.rand(int(outside.sum())) * (upper - lower)[outside]
                trials[i] = trial

            trial_fitness = evaluate_population(problem, trials)
            evaluations += population_size
            performed += 1

            improved = trial_fitness <= fitness
            population[improved] = trials[improved]
            fitness[improved] = trial_fitness[improved]

            best_idx = np.argmin(fitness)
            worst_idx = np.argmax(fitness)
            if np.all(np.isfinite(fitness)) and abs(fitness[worst_idx] - fitness[best_idx]) < ftol:
                break
            if np.sum(np.abs(population[worst_idx] - population[best_idx])) < xtol:
                break

        best_idx = int(np.argmin(fitness))
        return population[best_idx], float(fitness[best_idx]), evaluations, performed


class DifferentialEvolutionFactory(AlgorithmFactory):
    def __init__(self):
        super().__init__(DifferentialEvolution)
