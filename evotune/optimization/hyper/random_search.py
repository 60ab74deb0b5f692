import numpy as np

from evotune.configs.budget import AlgorithmIdentity, Budget
from evotune.optimization.algorithms.budget_util import get_int_param, to_seed32
from evotune.optimization.search_space.parameter import ParameterSet, ParameterSpace
from .base import BridgedHyperOptimizer, evaluation_cap
from .tuning_bridge import HyperTuningProblem


class RandomSearchTuner(BridgedHyperOptimizer):
    """
    Uniform random sampling of the coded hyperparameter vector.

    Each sample counts as one generation, so the number of samples is capped by
    both the evaluation and the generation limit of the budget.
    """

    @classmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        space = ParameterSpace()
        space.add_integer("trials", 1, 100000, default=50)
        return space

    @classmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        return AlgorithmIdentity(family="RandomSearch", implementation="evotune.hyper.random", version="1.0")

    def _search(self, problem: HyperTuningProblem, budget: Budget,
                parameters: ParameterSet, seed: int) -> int:
        lower, upper = problem.get_bounds()
        samples = evaluation_cap(budget, get_int_param(parameters, "trials"))
        rng = np.random.RandomState(to_seed32(seed))

        for _ in range(samples):
            candidate = lower + rng.rand(lower.size) * (upper - lower)
            problem.fitness(candidate)

        return samples
