"""
Bridge between an inner evolutionary algorithm and an outer optimizer.

Tuning algorithm A on problem P becomes a bounded minimization problem over a
flat real vector: one coordinate per hyperparameter that stays under
optimization, in the order of A's parameter space. Every evaluation of the
vector decodes it into a configuration, runs a fresh instance of A on P under
the inner budget and returns the run's best fitness.
"""

import copy
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from evotune.configs.budget import Budget, BudgetUsage, RunStatus
from evotune.optimization.algorithms.base import (
    EvolutionaryAlgorithmFactory,
    HyperparameterOptimizationResult,
    OptimizationResult,
    TrialRecord,
)
from evotune.optimization.search_space.parameter import (
    ContinuousRange,
    IntegerRange,
    ParameterSet,
    ParameterType,
    ParameterValidationError,
    ParameterValue,
)
from evotune.optimization.search_space.space import (
    EffectiveBounds,
    SearchMode,
    SearchSpace,
    apply_transform,
    transform_bounds,
)
from evotune.problems.base import Problem, ProblemMetadata
from evotune.utils.logger import get_logger

logger = get_logger(__name__)

# Ranges used for descriptors that declare none
FALLBACK_CONTINUOUS_RANGE = ContinuousRange(lower=-1.0, upper=1.0)
FALLBACK_INTEGER_RANGE = IntegerRange(lower=-100, upper=100)


def _fitness_key(value: float) -> float:
    return math.inf if math.isnan(value) else value


class TuningContext:
    """
    State shared by every evaluation of one ``optimize()`` call.

    The factory, problem, inner budget, base seed and search space are read-only.
    The trial ledger, best trial and evaluation counter are only touched under
    ``_lock``.
    """

    def __init__(
        self,
        algorithm_factory: EvolutionaryAlgorithmFactory,
        problem: Problem,
        algorithm_budget: Budget,
        base_seed: int,
        search_space: Optional[SearchSpace] = None,
    ):
        self.algorithm_factory = algorithm_factory
        self.problem = problem
        self.algorithm_budget = algorithm_budget
        self.base_seed = base_seed
        self.search_space = search_space if search_space is not None else SearchSpace()

        self._lock = threading.Lock()
        self._trials: List[TrialRecord] = []
        self._best_trial: Optional[TrialRecord] = None
        self._evaluations = 0

    def next_seed(self) -> int:
        """Seed of the next inner run: base seed plus the counter before increment."""
        with self._lock:
            seed = self.base_seed + self._evaluations
            self._evaluations += 1
        return seed

    def record(self, trial: TrialRecord) -> None:
        """Append a trial; it becomes the best only if strictly better than the current best."""
        fitness = _fitness_key(trial.optimization_result.best_fitness)
        with self._lock:
            self._trials.append(trial)
            if (self._best_trial is None
                    or fitness < _fitness_key(self._best_trial.optimization_result.best_fitness)):
                self._best_trial = trial

    def best_trial(self) -> Optional[TrialRecord]:
        with self._lock:
            return self._best_trial

    def evaluations(self) -> int:
        with self._lock:
            return self._evaluations

    def trials(self) -> List[TrialRecord]:
        with self._lock:
            return list(self._trials)


def make_hyper_context(
    algorithm_factory: EvolutionaryAlgorithmFactory,
    problem: Problem,
    budget: Budget,
    seed: int,
    search_space: Optional[SearchSpace] = None,
) -> TuningContext:
    """
    Create the shared state for one tuning run.

    The search space is validated against the algorithm's parameter space and
    its custom bounds are narrowed to the declared ranges on a private copy, so
    the caller's object is left untouched.

    Raises:
        ParameterValidationError: If the algorithm has no parameters, the problem
            has no dimensions, or the search space does not fit the algorithm.
    """
    parameter_space = algorithm_factory.parameter_space()
    if parameter_space.empty:
        raise ParameterValidationError("algorithm parameter space is empty")
    if problem.dimension() == 0:
        raise ParameterValidationError("problem dimension cannot be zero")

    resolved = copy.deepcopy(search_space) if search_space is not None else SearchSpace()
    resolved.validate_and_clamp(parameter_space)

    return TuningContext(algorithm_factory, problem, budget, seed, resolved)


class HyperTuningProblem(Problem):
    """
    The tuning task seen as a box-bounded minimization problem.

    Args:
        context: Shared state of the tuning run
        parallel_evaluations: Worker threads used by ``evaluate_batch``
    """

    def __init__(self, context: TuningContext, parallel_evaluations: int = 1):
        self.context = context
        self.parallel_evaluations = max(1, parallel_evaluations)
        self._parameter_space = context.algorithm_factory.parameter_space()
        self._effective: List[EffectiveBounds] = context.search_space.get_effective_bounds(self._parameter_space)
        self._bounds: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def get_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Lower and upper bounds of the coded vector.

        Raises:
            ParameterValidationError: If the parameter space is empty or every
                parameter is fixed or excluded.
        """
        if self._bounds is not None:
            return self._bounds

        if self._parameter_space.empty:
            raise ParameterValidationError("algorithm parameter space is empty")

        lower: List[float] = []
        upper: List[float] = []
        for bounds in self._effective:
            if bounds.mode != SearchMode.OPTIMIZE:
                continue
            lo, hi = self._coded_bounds(bounds)
            lower.append(lo)
            upper.append(hi)

        if not lower:
            raise ParameterValidationError("no parameters left to optimize: every parameter is fixed or excluded")

        self._bounds = (np.array(lower, dtype=float), np.array(upper, dtype=float))
        return self._bounds

    @staticmethod
    def _coded_bounds(bounds: EffectiveBounds) -> Tuple[float, float]:
        if bounds.param_type == ParameterType.CONTINUOUS:
            declared = bounds.continuous_bounds or FALLBACK_CONTINUOUS_RANGE
            coded = transform_bounds(declared, bounds.transform)
            return coded.lower, coded.upper

        if bounds.param_type == ParameterType.INTEGER:
            if bounds.has_custom_choices:
                return 0.0, float(bounds.discrete_choice_count - 1)
            declared = bounds.integer_bounds or FALLBACK_INTEGER_RANGE
            return float(declared.lower), float(declared.upper)

        if bounds.param_type == ParameterType.BOOLEAN:
            return 0.0, 1.0

        if not bounds.choices:
            raise ParameterValidationError(f"categorical parameter '{bounds.name}' has no choices")
        return 0.0, float(bounds.discrete_choice_count - 1)

    def decode(self, candidate: Sequence[float]) -> ParameterSet:
        """
        Configuration encoded by ``candidate``, completed with the algorithm's defaults.

        Fixed parameters are injected without consuming a coordinate; excluded
        ones are left for ``apply_defaults`` to fill. A non-finite coordinate
        decodes as the lower bound of its coded range.
        """
        expected = self.dimension()
        if len(candidate) != expected:
            raise ParameterValidationError(
                f"candidate has {len(candidate)} coordinates, expected {expected}")

        lower = self.get_bounds()[0]
        parameters: ParameterSet = {}
        slot = 0
        for bounds in self._effective:
            if bounds.mode == SearchMode.FIXED:
                parameters[bounds.name] = bounds.fixed_value
                continue
            if bounds.mode == SearchMode.EXCLUDE:
                continue

            value = float(candidate[slot])
            if not math.isfinite(value):
                value = float(lower[slot])
            parameters[bounds.name] = self._decode_value(bounds, value)
            slot += 1

        return self._parameter_space.apply_defaults(parameters)

    @staticmethod
    def _decode_value(bounds: EffectiveBounds, value: float) -> ParameterValue:
        if bounds.param_type == ParameterType.CONTINUOUS:
            declared = bounds.continuous_bounds or FALLBACK_CONTINUOUS_RANGE
            decoded = apply_transform(value, bounds.transform)
            return float(min(max(decoded, declared.lower), declared.upper))

        if bounds.param_type == ParameterType.INTEGER:
            if bounds.has_custom_choices:
                return _pick(bounds.choices, value)
            declared = bounds.integer_bounds or FALLBACK_INTEGER_RANGE
            return int(min(max(_round_half_away(value), declared.lower), declared.upper))

        if bounds.param_type == ParameterType.BOOLEAN:
            return value > 0.5

        return _pick(bounds.choices, value)

    def fitness(self, candidate: Sequence[float]) -> float:
        """
        Run one inner trial for ``candidate`` and return its best fitness.

        Failed runs are recorded like any other trial. The evaluation counter
        advances exactly once per call that gets past decoding.
        """
        context = self.context
        parameters = self.decode(candidate)
        algorithm = context.algorithm_factory.create()

        failure: Optional[OptimizationResult] = None
        try:
            algorithm.configure(parameters)
        except ValueError as e:
            failure = OptimizationResult(status=RunStatus.INVALID_CONFIGURATION,
                                         message=f"configuration rejected: {e}")
        except Exception as e:
            failure = OptimizationResult(status=RunStatus.INTERNAL_ERROR,
                                         message=f"configure raised {type(e).__name__}: {e}")

        seed = context.next_seed()

        if failure is not None:
            failure.seed = seed
            result = failure
        else:
            try:
                result = algorithm.run(context.problem, context.algorithm_budget, seed)
            except Exception as e:
                logger.warning(f"Inner run with seed {seed} raised {type(e).__name__}: {e}")
                result = OptimizationResult(status=RunStatus.INTERNAL_ERROR, seed=seed,
                                            message=f"run raised {type(e).__name__}: {e}")

        context.record(TrialRecord(parameters=parameters, optimization_result=result))
        logger.debug(f"Trial seed={seed} status={result.status.value} fitness={result.best_fitness}")
        return result.best_fitness

    def dimension(self) -> int:
        return len(self.get_bounds()[0])

    # Problem interface, so population-based algorithms can search the tuning task directly

    def metadata(self) -> ProblemMetadata:
        identity = self.context.algorithm_factory.identity()
        target = self.context.problem.metadata()
        return ProblemMetadata(
            id=f"tune_{identity.family}_on_{target.id}",
            family="hyperparameter_tuning",
            description=f"Hyperparameters of {identity.implementation} on {target.id}",
        )

    def lower_bounds(self) -> np.ndarray:
        return self.get_bounds()[0]

    def upper_bounds(self) -> np.ndarray:
        return self.get_bounds()[1]

    def evaluate(self, decision_vector: Sequence[float]) -> float:
        return self.fitness(decision_vector)

    def evaluate_batch(self, population: np.ndarray) -> np.ndarray:
        if self.parallel_evaluations == 1 or len(population) < 2:
            return super().evaluate_batch(population)

        with ThreadPoolExecutor(max_workers=min(self.parallel_evaluations, len(population))) as executor:
            values = list(executor.map(self.fitness, list(population)))
        return np.array(values, dtype=float)

    def is_stochastic(self) -> bool:
        return True


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _pick(choices: List[ParameterValue], value: float) -> ParameterValue:
    index = min(max(_round_half_away(value), 0), len(choices) - 1)
    return choices[index]


def fill_hyper_result(
    context: TuningContext,
    generations: int,
    elapsed: timedelta,
    seed: int,
    optimizer_parameters: Optional[ParameterSet] = None,
    status: RunStatus = RunStatus.SUCCESS,
    message: str = "",
) -> HyperparameterOptimizationResult:
    """
    Build the outer result from a finished tuning run.

    The best objective is the best trial's fitness, or ``inf`` when no trial ran.
    """
    trials = context.trials()
    best = context.best_trial()

    result = HyperparameterOptimizationResult(
        status=status,
        trials=trials,
        seed=seed,
        effective_optimizer_parameters=dict(optimizer_parameters or {}),
        budget_usage=BudgetUsage(
            function_evaluations=context.evaluations(),
            generations=generations,
            wall_time=elapsed,
        ),
        message=message,
    )

    if best is not None:
        result.best_parameters = dict(best.parameters)
        result.best_objective = best.optimization_result.best_fitness
    if not message:
        result.message = f"evaluated {len(trials)} trials"

    return result


def trial_counts(trials: Sequence[TrialRecord]) -> Dict[str, int]:
    """Number of trials per run status."""
    counts: Dict[str, int] = {}
    for trial in trials:
        key = trial.optimization_result.status.value
        counts[key] = counts.get(key, 0) + 1
    return counts
