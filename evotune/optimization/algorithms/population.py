import time
from abc import abstractmethod
from datetime import timedelta
from typing import Optional, Tuple

import numpy as np

from evotune.configs.budget import AlgorithmIdentity, Budget, BudgetUsage, RunStatus
from evotune.optimization.search_space.parameter import ParameterSet, ParameterSpace
from evotune.problems.base import Problem
from evotune.utils.logger import get_logger
from .base import EvolutionaryAlgorithm, OptimizationResult
from .budget_util import compute_generations, get_int_param, to_seed32

logger = get_logger(__name__)


class PopulationAlgorithm(EvolutionaryAlgorithm):
    """
    Base class for generational algorithms over a fixed-size population.

    Subclasses declare their parameter space and implement ``_evolve``; this class
    resolves the generation count against the budget, seeds the random state,
    times the run and turns failures into result statuses.
    """

    def __init__(self):
        self._parameter_space = self._make_parameter_space()
        self._identity = self._make_identity()
        self.configured_parameters: ParameterSet = self._parameter_space.apply_defaults({})

    @classmethod
    @abstractmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        pass

    @classmethod
    @abstractmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        pass

    @abstractmethod
    def _evolve(
        self,
        problem: Problem,
        generations: int,
        rng: np.random.RandomState,
    ) -> Tuple[np.ndarray, float, int, int]:
        """
        Run the search.

        Returns:
            (champion, champion fitness, function evaluations, generations performed)
        """
        pass

    def identity(self) -> AlgorithmIdentity:
        return self._identity

    def parameter_space(self) -> ParameterSpace:
        return self._parameter_space

    def configure(self, parameters: ParameterSet) -> None:
        self.configured_parameters = self._parameter_space.apply_defaults(parameters)

    def run(self, problem: Problem, budget: Budget, seed: int) -> OptimizationResult:
        result = OptimizationResult(status=RunStatus.INTERNAL_ERROR, seed=seed)

        try:
            population_size = get_int_param(self.configured_parameters, "population_size")
            generations = compute_generations(self.configured_parameters, budget, population_size)
        except ValueError as e:
            result.status = RunStatus.INVALID_CONFIGURATION
            result.message = str(e)
            return result

        effective_parameters = dict(self.configured_parameters)
        effective_parameters["generations"] = generations
        result.effective_parameters = effective_parameters

        start = time.perf_counter()
        try:
            rng = np.random.RandomState(to_seed32(seed))
            champion, champion_f, evaluations, performed = self._evolve(problem, generations, rng)
        except Exception as e:
            logger.warning(f"{self._identity.family} run failed with seed {seed}: {e}")
            result.status = RunStatus.INTERNAL_ERROR
            result.message = str(e) or type(e).__name__
            return result
        elapsed = timedelta(seconds=time.perf_counter() - start)

        result.best_fitness = float(champion_f)
        result.best_solution = [float(v) for v in champion]
        result.budget_usage = BudgetUsage(
            function_evaluations=evaluations,
            generations=performed,
            wall_time=elapsed,
        )

        if not np.isfinite(champion_f):
            result.status = RunStatus.FAILED_EVALUATION
            result.message = "objective returned no finite value"
        elif budget.wall_time_exceeded(elapsed):
            result.status = RunStatus.BUDGET_EXCEEDED
            result.message = "wall-time budget exceeded"
        else:
            result.status = RunStatus.SUCCESS
            result.message = "optimization completed"

        logger.debug(
            f"{self._identity.family} finished: fitness={result.best_fitness}, "
            f"generations={performed}, evaluations={evaluations}")
        return result


def evaluate_population(problem: Problem, population: np.ndarray) -> np.ndarray:
    """Objective values of every row; NaN results are treated as +inf."""
    values = np.asarray(problem.evaluate_batch(population), dtype=float).copy()
    values[np.isnan(values)] = np.inf
    return values


def initial_population(problem: Problem, size: int, rng: np.random.RandomState,
                       lower: Optional[np.ndarray] = None,
                       upper: Optional[np.ndarray] = None) -> np.ndarray:
    lower = np.asarray(problem.lower_bounds() if lower is None else lower, dtype=float)
    upper = np.asarray(problem.upper_bounds() if upper is None else upper, dtype=float)
    return lower + rng.rand(size, lower.size) * (upper - lower)
