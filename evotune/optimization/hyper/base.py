import time
from abc import abstractmethod
from datetime import timedelta
from typing import Optional

from evotune.configs.budget import AlgorithmIdentity, Budget, RunStatus
from evotune.optimization.algorithms.base import (
    EvolutionaryAlgorithmFactory,
    HyperparameterOptimizationResult,
    HyperparameterOptimizer,
)
from evotune.optimization.search_space.parameter import (
    ParameterSet,
    ParameterSpace,
    ParameterValidationError,
)
from evotune.optimization.search_space.space import SearchSpace
from evotune.problems.base import Problem
from evotune.utils.logger import get_logger
from .tuning_bridge import HyperTuningProblem, fill_hyper_result, make_hyper_context, trial_counts

logger = get_logger(__name__)


class BridgedHyperOptimizer(HyperparameterOptimizer):
    """
    Base class for hyperparameter optimizers that search through the tuning bridge.

    ``optimize`` builds a fresh bridge context, lets ``_search`` drive the coded
    problem and turns the context into a result. It never mutates the optimizer,
    so one configured instance can serve several threads.

    Args:
        search_space: Optional overrides applied to the tuned algorithm's parameters
    """

    def __init__(self, search_space: Optional[SearchSpace] = None):
        self._parameter_space = self._make_parameter_space()
        self._identity = self._make_identity()
        self.configured_parameters: ParameterSet = self._parameter_space.apply_defaults({})
        self.search_space = search_space

    @classmethod
    @abstractmethod
    def _make_parameter_space(cls) -> ParameterSpace:
        pass

    @classmethod
    @abstractmethod
    def _make_identity(cls) -> AlgorithmIdentity:
        pass

    @abstractmethod
    def _search(self, problem: HyperTuningProblem, budget: Budget,
                parameters: ParameterSet, seed: int) -> int:
        """
        Minimize ``problem`` within ``budget``.

        Returns:
            Number of generations (iterations) performed
        """
        pass

    def identity(self) -> AlgorithmIdentity:
        return self._identity

    def parameter_space(self) -> ParameterSpace:
        return self._parameter_space

    def configure(self, parameters: ParameterSet) -> None:
        self.configured_parameters = self._parameter_space.apply_defaults(parameters)

    def set_search_space(self, search_space: Optional[SearchSpace]) -> None:
        self.search_space = search_space

    def _parallel_evaluations(self, parameters: ParameterSet) -> int:
        return 1

    def optimize(
        self,
        algorithm_factory: EvolutionaryAlgorithmFactory,
        problem: Problem,
        budget: Budget,
        seed: int,
        algorithm_budget: Optional[Budget] = None,
    ) -> HyperparameterOptimizationResult:
        parameters = dict(self.configured_parameters)

        if budget.function_evaluations == 0:
            raise ParameterValidationError("optimizer budget allows no function evaluations")

        context = make_hyper_context(
            algorithm_factory,
            problem,
            algorithm_budget if algorithm_budget is not None else budget,
            seed,
            self.search_space,
        )
        tuning_problem = HyperTuningProblem(context, self._parallel_evaluations(parameters))
        tuning_problem.get_bounds()

        logger.debug(
            f"{self._identity.family} tuning {algorithm_factory.identity().family} "
            f"over {tuning_problem.dimension()} dimensions, seed={seed}")

        start = time.perf_counter()
        status = RunStatus.SUCCESS
        message = ""
        generations = 0
        try:
            generations = self._search(tuning_problem, budget, parameters, seed)
        except ParameterValidationError:
            raise
        except Exception as e:
            logger.error(f"{self._identity.family} search failed with seed {seed}: {e}")
            status = RunStatus.INTERNAL_ERROR
            message = f"search raised {type(e).__name__}: {e}"
        elapsed = timedelta(seconds=time.perf_counter() - start)

        if status == RunStatus.SUCCESS and budget.wall_time_exceeded(elapsed):
            status = RunStatus.BUDGET_EXCEEDED
            message = "wall-time budget exceeded"

        result = fill_hyper_result(context, generations, elapsed, seed, parameters, status, message)
        logger.debug(
            f"{self._identity.family} finished: best={result.best_objective}, "
            f"trials={trial_counts(result.trials)}")
        return result


def evaluation_cap(budget: Budget, requested: int) -> int:
    """``requested`` evaluations capped by the budget's evaluation and generation limits."""
    count = requested
    if budget.function_evaluations is not None:
        count = min(count, budget.function_evaluations)
    if budget.generations is not None:
        count = min(count, budget.generations)
    return max(count, 0)
