import copy
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, Field

from evotune.configs.budget import AlgorithmIdentity, Budget, BudgetUsage, RunStatus
from evotune.optimization.search_space.parameter import ParameterSet, ParameterSpace
from evotune.problems.base import Problem


class OptimizationResult(BaseModel):
    """
    Result of one inner evolutionary algorithm run.
    """
    status: RunStatus = RunStatus.INTERNAL_ERROR
    best_fitness: float = math.inf
    best_solution: List[float] = Field(default_factory=list)
    budget_usage: BudgetUsage = Field(default_factory=BudgetUsage)
    effective_parameters: ParameterSet = Field(default_factory=dict)
    seed: int = 0
    message: str = ""

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCESS


class TrialRecord(BaseModel):
    """
    One evaluated hyperparameter candidate: the decoded configuration and the inner run it produced.
    """
    parameters: ParameterSet
    optimization_result: OptimizationResult


class HyperparameterOptimizationResult(BaseModel):
    """
    Result of one outer hyperparameter optimization run.
    """
    status: RunStatus = RunStatus.INTERNAL_ERROR
    best_parameters: ParameterSet = Field(default_factory=dict)
    best_objective: float = math.inf
    trials: List[TrialRecord] = Field(default_factory=list)
    budget_usage: BudgetUsage = Field(default_factory=BudgetUsage)
    seed: int = 0
    effective_optimizer_parameters: ParameterSet = Field(default_factory=dict)
    message: str = ""

    def trials_frame(self) -> pd.DataFrame:
        """
        Trial ledger as a DataFrame, one row per trial in evaluation order.

        Parameter columns are prefixed with ``param_``.
        """
        rows = []
        for index, trial in enumerate(self.trials):
            result = trial.optimization_result
            row: Dict[str, Any] = {
                'trial': index,
                'status': result.status.value,
                'best_fitness': result.best_fitness,
                'seed': result.seed,
                'function_evaluations': result.budget_usage.function_evaluations,
                'generations': result.budget_usage.generations,
                'wall_time_ms': result.budget_usage.wall_time_ms,
            }
            row.update({f"param_{name}": value for name, value in trial.parameters.items()})
            rows.append(row)
        return pd.DataFrame(rows)


class EvolutionaryAlgorithm(ABC):
    """
    Abstract base class for inner, population-based optimizers.
    """

    @abstractmethod
    def identity(self) -> AlgorithmIdentity:
        pass

    @abstractmethod
    def parameter_space(self) -> ParameterSpace:
        pass

    @abstractmethod
    def configure(self, parameters: ParameterSet) -> None:
        """
        Apply a configuration.

        Raises:
            ParameterValidationError: On a type or range mismatch or a missing required parameter.
        """
        pass

    @abstractmethod
    def run(self, problem: Problem, budget: Budget, seed: int) -> OptimizationResult:
        """
        Minimize ``problem`` within ``budget``. Run-time failures are reported through
        the result status, not raised.
        """
        pass

    def clone(self) -> "EvolutionaryAlgorithm":
        return copy.deepcopy(self)


class EvolutionaryAlgorithmFactory(ABC):
    """
    Creates fresh algorithm instances. ``create`` must be safe to call concurrently.
    """

    @abstractmethod
    def create(self) -> EvolutionaryAlgorithm:
        pass

    @abstractmethod
    def parameter_space(self) -> ParameterSpace:
        pass

    @abstractmethod
    def identity(self) -> AlgorithmIdentity:
        pass


class AlgorithmFactory(EvolutionaryAlgorithmFactory):
    """
    Factory for any algorithm class with a no-argument constructor.

    The parameter space and identity are read from one prototype instance.
    """

    def __init__(self, algorithm_cls: Callable[[], EvolutionaryAlgorithm]):
        self.algorithm_cls = algorithm_cls
        prototype = algorithm_cls()
        self._parameter_space = prototype.parameter_space()
        self._identity = prototype.identity()

    def create(self) -> EvolutionaryAlgorithm:
        return self.algorithm_cls()

    def parameter_space(self) -> ParameterSpace:
        return self._parameter_space

    def identity(self) -> AlgorithmIdentity:
        return self._identity


class HyperparameterOptimizer(ABC):
    """
    Abstract base class for outer optimizers whose search domain is an inner algorithm's configuration.
    """

    @abstractmethod
    def identity(self) -> AlgorithmIdentity:
        pass

    @abstractmethod
    def parameter_space(self) -> ParameterSpace:
        pass

    @abstractmethod
    def configure(self, parameters: ParameterSet) -> None:
        pass

    @abstractmethod
    def optimize(
        self,
        algorithm_factory: EvolutionaryAlgorithmFactory,
        problem: Problem,
        budget: Budget,
        seed: int,
        algorithm_budget: Optional[Budget] = None,
    ) -> HyperparameterOptimizationResult:
        """
        Tune the algorithm produced by ``algorithm_factory`` on ``problem``.

        Args:
            algorithm_factory: Source of fresh inner algorithm instances
            problem: Problem each inner run minimizes
            budget: Budget of the outer search
            seed: Base seed; inner runs receive seed, seed + 1, ...
            algorithm_budget: Budget of every inner run, defaults to ``budget``

        Must tolerate concurrent calls with distinct seeds.
        """
        pass
