"""
Experiment managers - repeated hyperparameter optimization runs.

A manager runs the outer optimizer ``trials_per_optimizer`` independent times
against one (problem, algorithm factory) pair, assigns every run its own seed
and streams every inner trial of every run to a RunLogger:
- SequentialExperimentManager runs the trials one after another
- ParallelExperimentManager spreads contiguous slices of trials over ``islands``
  worker threads

Both return the outer results ordered by trial index.
"""

import math
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from evotune.configs.experiment import ExperimentConfig
from evotune.problems.base import Problem
from evotune.reporting.run_logger import RunLogger, RunRecord
from evotune.utils.logger import get_logger
from .algorithms.base import (
    EvolutionaryAlgorithmFactory,
    HyperparameterOptimizationResult,
    HyperparameterOptimizer,
)
from .algorithms.budget_util import to_seed32
from .search_space.parameter import ParameterSet, ParameterValidationError

logger = get_logger(__name__)


class ExperimentResult(BaseModel):
    """Outer optimization results of one experiment, in trial order."""
    experiment_id: str
    optimizer_results: List[HyperparameterOptimizationResult] = Field(default_factory=list)
    algorithm_baseline_parameters: ParameterSet = Field(default_factory=dict)

    def best(self) -> Optional[HyperparameterOptimizationResult]:
        """Outer result with the lowest best objective; the earliest one on ties."""
        best = None
        for result in self.optimizer_results:
            if best is None or result.best_objective < best.best_objective:
                best = result
        return best

    def to_frame(self) -> pd.DataFrame:
        """All inner trials of all outer runs, with an ``optimizer_trial`` column."""
        frames = []
        for index, result in enumerate(self.optimizer_results):
            frame = result.trials_frame()
            frame.insert(0, 'optimizer_trial', index)
            frame.insert(1, 'optimizer_seed', result.seed)
            frames.append(frame)
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)


def draw_seeds(count: int, random_seed: Optional[int] = None) -> List[int]:
    """``count`` 32-bit seeds from a source seeded with ``random_seed`` (fresh entropy when None)."""
    rng = np.random.RandomState(None if random_seed is None else to_seed32(random_seed))
    return [int(seed) for seed in rng.randint(0, 2 ** 32, size=count, dtype=np.uint64)]


class _ExperimentManager:
    """Steps shared by both managers."""

    @staticmethod
    def _prepare(config: ExperimentConfig, optimizer: HyperparameterOptimizer,
                 algorithm_factory: EvolutionaryAlgorithmFactory) -> Tuple[ExperimentResult, ParameterSet]:
        if config.trials_per_optimizer == 0:
            raise ParameterValidationError("trials_per_optimizer must be greater than zero")

        optimizer_parameters = optimizer.parameter_space().apply_defaults(config.optimizer_parameters or {})
        optimizer.configure(optimizer_parameters)

        baseline: ParameterSet = {}
        if config.algorithm_baseline_parameters is not None:
            baseline = algorithm_factory.parameter_space().apply_defaults(config.algorithm_baseline_parameters)

        result = ExperimentResult(experiment_id=config.experiment_id, algorithm_baseline_parameters=baseline)
        return result, optimizer_parameters

    @staticmethod
    def _run_trial(config: ExperimentConfig, optimizer: HyperparameterOptimizer,
                   algorithm_factory: EvolutionaryAlgorithmFactory, problem: Problem,
                   seed: int, optimizer_parameters: ParameterSet) -> HyperparameterOptimizationResult:
        result = optimizer.optimize(
            algorithm_factory,
            problem,
            config.optimizer_budget,
            seed,
            algorithm_budget=config.algorithm_budget,
        )
        result.seed = seed
        result.effective_optimizer_parameters = dict(optimizer_parameters)
        return result

    @staticmethod
    def _log_trials(config: ExperimentConfig, optimizer: HyperparameterOptimizer,
                    algorithm_factory: EvolutionaryAlgorithmFactory, problem: Problem,
                    result: HyperparameterOptimizationResult, run_logger: RunLogger) -> None:
        problem_id = problem.metadata().id
        algorithm_identity = algorithm_factory.identity()
        optimizer_identity = optimizer.identity()

        for trial in result.trials:
            inner = trial.optimization_result
            run_logger.log(RunRecord(
                experiment_id=config.experiment_id,
                problem_id=problem_id,
                evolutionary_algorithm=algorithm_identity,
                hyper_optimizer=optimizer_identity,
                algorithm_parameters=trial.parameters,
                optimizer_parameters=result.effective_optimizer_parameters,
                status=inner.status,
                objective_value=inner.best_fitness,
                budget_usage=inner.budget_usage,
                algorithm_seed=inner.seed,
                optimizer_seed=result.seed,
                message=inner.message,
            ))


class SequentialExperimentManager(_ExperimentManager):
    """Runs the outer trials one after another on the calling thread."""

    def run_experiment(
        self,
        config: ExperimentConfig,
        optimizer: HyperparameterOptimizer,
        algorithm_factory: EvolutionaryAlgorithmFactory,
        problem: Problem,
        run_logger: RunLogger,
    ) -> ExperimentResult:
        """
        Run ``config.trials_per_optimizer`` outer optimizations.

        Args:
            config: Experiment settings
            optimizer: Outer optimizer, configured once with the defaulted overrides
            algorithm_factory: Source of inner algorithm instances
            problem: Problem every inner run minimizes
            run_logger: Receives one record per inner trial

        Returns:
            ExperimentResult with outer results in trial order

        Raises:
            ParameterValidationError: On zero trials or invalid parameter overrides
        """
        result, optimizer_parameters = self._prepare(config, optimizer, algorithm_factory)
        seeds = draw_seeds(config.trials_per_optimizer, config.random_seed)

        logger.info(f"Experiment '{config.experiment_id}': {len(seeds)} sequential trials")

        for index, seed in enumerate(seeds):
            trial_result = self._run_trial(config, optimizer, algorithm_factory, problem, seed,
                                            optimizer_parameters)
            self._log_trials(config, optimizer, algorithm_factory, problem, trial_result, run_logger)
            result.optimizer_results.append(trial_result)
            logger.info(
                f"Trial {index + 1}/{len(seeds)} finished: status={trial_result.status.value}, "
                f"best={trial_result.best_objective}")

        run_logger.flush()
        return result


class ParallelExperimentManager(_ExperimentManager):
    """
    Runs the outer trials on ``config.islands`` worker threads.

    Seeds are drawn up front, so which trial gets which seed does not depend on
    scheduling. Each worker owns a contiguous slice of ``ceil(N / islands)``
    trial indices. The optimizer and factory are shared by all workers and must
    tolerate concurrent use.
    """

    def run_experiment(
        self,
        config: ExperimentConfig,
        optimizer: HyperparameterOptimizer,
        algorithm_factory: EvolutionaryAlgorithmFactory,
        problem: Problem,
        run_logger: RunLogger,
    ) -> ExperimentResult:
        if config.islands == 0:
            raise ParameterValidationError("islands must be greater than zero")

        result, optimizer_parameters = self._prepare(config, optimizer, algorithm_factory)
        trials = config.trials_per_optimizer
        seeds = draw_seeds(trials, config.random_seed)

        num_islands = min(config.islands, trials)
        slice_size = math.ceil(trials / num_islands)
        results: List[Optional[HyperparameterOptimizationResult]] = [None] * trials
        log_lock = threading.Lock()

        logger.info(
            f"Experiment '{config.experiment_id}': {trials} trials on {num_islands} islands")

        def run_island(island: int) -> None:
            start = island * slice_size
            end = min(start + slice_size, trials)
            for index in range(start, end):
                trial_result = self._run_trial(config, optimizer, algorithm_factory, problem,
                                                seeds[index], optimizer_parameters)
                results[index] = trial_result
                with log_lock:
                    self._log_trials(config, optimizer, algorithm_factory, problem, trial_result, run_logger)
                logger.debug(f"Island {island} finished trial {index}")

        with ThreadPoolExecutor(max_workers=num_islands) as executor:
            futures = [executor.submit(run_island, island) for island in range(num_islands)]
        # the executor has joined every worker; re-raise the first failure
        for future in futures:
            future.result()

        result.optimizer_results = [r for r in results if r is not None]
        run_logger.flush()
        logger.info(f"Experiment '{config.experiment_id}' finished")
        return result
