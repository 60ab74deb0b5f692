"""
Tests for the sequential and parallel experiment managers.
"""

import threading

import pytest
from pydantic import ValidationError

from evotune.configs.budget import Budget, RunStatus
from evotune.configs.experiment import ExperimentConfig
from evotune.optimization.hyper.random_search import RandomSearchTuner
from evotune.optimization.orchestrator import (
    ExperimentResult,
    ParallelExperimentManager,
    SequentialExperimentManager,
    draw_seeds,
)
from evotune.optimization.search_space.parameter import ParameterValidationError


def make_config(**overrides):
    settings = {
        "experiment_id": "exp",
        "trials_per_optimizer": 5,
        "optimizer_parameters": {"trials": 3},
        "random_seed": 11,
    }
    settings.update(overrides)
    return ExperimentConfig(**settings)


class ExplodingTuner(RandomSearchTuner):
    """Raises from optimize() for one seed."""

    def __init__(self, bad_seed):
        super().__init__()
        self.bad_seed = bad_seed

    def optimize(self, algorithm_factory, problem, budget, seed, algorithm_budget=None):
        if seed == self.bad_seed:
            raise RuntimeError("worker failed")
        return super().optimize(algorithm_factory, problem, budget, seed, algorithm_budget)


class BudgetSpy(RandomSearchTuner):
    """Remembers the budgets optimize() was called with."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self._calls_lock = threading.Lock()

    def optimize(self, algorithm_factory, problem, budget, seed, algorithm_budget=None):
        with self._calls_lock:
            self.calls.append((budget, algorithm_budget))
        return super().optimize(algorithm_factory, problem, budget, seed, algorithm_budget)


class TestExperimentConfig:
    """Tests for ExperimentConfig validation."""

    def test_defaults(self):
        config = ExperimentConfig(experiment_id="e")
        assert config.islands == 1
        assert config.trials_per_optimizer == 1
        assert config.algorithm_budget.is_unlimited()
        assert config.random_seed is None

    def test_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            ExperimentConfig(experiment_id="")
        with pytest.raises(ValidationError):
            ExperimentConfig(experiment_id="e", islands=-1)
        with pytest.raises(ValidationError):
            ExperimentConfig(experiment_id="e", threads=4)


class TestDrawSeeds:
    """Tests for draw_seeds."""

    def test_reproducible_with_seed(self):
        assert draw_seeds(6, 123) == draw_seeds(6, 123)
        assert draw_seeds(6, 123) != draw_seeds(6, 124)

    def test_range(self):
        seeds = draw_seeds(50, 0)
        assert len(seeds) == 50
        assert all(0 <= seed < 2 ** 32 for seed in seeds)


class TestSequentialExperimentManager:
    """Tests for SequentialExperimentManager."""

    def test_runs_every_trial(self, toy_factory, sphere, recording_logger):
        config = make_config()
        result = SequentialExperimentManager().run_experiment(
            config, RandomSearchTuner(), toy_factory, sphere, recording_logger)

        assert isinstance(result, ExperimentResult)
        assert result.experiment_id == "exp"
        assert len(result.optimizer_results) == 5
        assert [r.seed for r in result.optimizer_results] == draw_seeds(5, 11)
        assert all(r.status == RunStatus.SUCCESS for r in result.optimizer_results)
        assert all(r.effective_optimizer_parameters == {"trials": 3} for r in result.optimizer_results)

        assert len(recording_logger.records) == 15
        assert recording_logger.flush_count == 1

    def test_records_describe_trials(self, toy_factory, sphere, recording_logger):
        result = SequentialExperimentManager().run_experiment(
            make_config(trials_per_optimizer=1), RandomSearchTuner(), toy_factory, sphere, recording_logger)

        outer = result.optimizer_results[0]
        for record, trial in zip(recording_logger.records, outer.trials):
            assert record.experiment_id == "exp"
            assert record.problem_id == "sphere_2d"
            assert record.evolutionary_algorithm.family == "Toy"
            assert record.hyper_optimizer.family == "RandomSearch"
            assert record.algorithm_parameters == trial.parameters
            assert record.objective_value == trial.optimization_result.best_fitness
            assert record.algorithm_seed == trial.optimization_result.seed
            assert record.optimizer_seed == outer.seed
            assert record.optimizer_parameters == {"trials": 3}

    def test_random_seed_reproducible(self, toy_factory, sphere, recording_logger):
        manager = SequentialExperimentManager()
        first = manager.run_experiment(make_config(), RandomSearchTuner(), toy_factory, sphere, recording_logger)
        second = manager.run_experiment(make_config(), RandomSearchTuner(), toy_factory, sphere, recording_logger)
        assert [r.best_objective for r in first.optimizer_results] == \
               [r.best_objective for r in second.optimizer_results]
        assert [r.best_parameters for r in first.optimizer_results] == \
               [r.best_parameters for r in second.optimizer_results]

    def test_zero_trials_rejected(self, toy_factory, sphere, recording_logger):
        with pytest.raises(ParameterValidationError, match="trials_per_optimizer"):
            SequentialExperimentManager().run_experiment(
                make_config(trials_per_optimizer=0), RandomSearchTuner(), toy_factory, sphere, recording_logger)

    def test_invalid_optimizer_override(self, toy_factory, sphere, recording_logger):
        with pytest.raises(ParameterValidationError):
            SequentialExperimentManager().run_experiment(
                make_config(optimizer_parameters={"trials": 0}), RandomSearchTuner(),
                toy_factory, sphere, recording_logger)

    def test_budgets_passed_through(self, toy_factory, sphere, recording_logger):
        config = make_config(
            trials_per_optimizer=2,
            optimizer_budget=Budget(function_evaluations=4),
            algorithm_budget=Budget(function_evaluations=2),
        )
        tuner = BudgetSpy()
        result = SequentialExperimentManager().run_experiment(config, tuner, toy_factory, sphere, recording_logger)

        assert tuner.calls == [(config.optimizer_budget, config.algorithm_budget)] * 2
        assert all(len(r.trials) == 3 for r in result.optimizer_results)
        assert all(rec.budget_usage.function_evaluations <= 2 for rec in recording_logger.records)

    def test_baseline_recorded(self, toy_factory, sphere, recording_logger):
        config = make_config(trials_per_optimizer=1, algorithm_baseline_parameters={"n": 4})
        result = SequentialExperimentManager().run_experiment(
            config, RandomSearchTuner(), toy_factory, sphere, recording_logger)
        assert result.algorithm_baseline_parameters == {"x": 0.5, "n": 4, "flag": False, "mode": "a"}

        with pytest.raises(ParameterValidationError):
            SequentialExperimentManager().run_experiment(
                make_config(algorithm_baseline_parameters={"n": 40}), RandomSearchTuner(),
                toy_factory, sphere, recording_logger)


class TestParallelExperimentManager:
    """Tests for ParallelExperimentManager."""

    def test_matches_seed_order(self, toy_factory, sphere, recording_logger):
        config = make_config(islands=2)
        result = ParallelExperimentManager().run_experiment(
            config, RandomSearchTuner(), toy_factory, sphere, recording_logger)

        assert [r.seed for r in result.optimizer_results] == draw_seeds(5, 11)
        assert len(recording_logger.records) == 15
        assert recording_logger.flush_count == 1

    def test_same_results_as_sequential(self, toy_factory, sphere, recording_logger):
        sequential = SequentialExperimentManager().run_experiment(
            make_config(), RandomSearchTuner(), toy_factory, sphere, recording_logger)
        parallel = ParallelExperimentManager().run_experiment(
            make_config(islands=3), RandomSearchTuner(), toy_factory, sphere, recording_logger)
        assert [r.best_objective for r in sequential.optimizer_results] == \
               [r.best_objective for r in parallel.optimizer_results]

    def test_more_islands_than_trials(self, toy_factory, sphere, recording_logger):
        result = ParallelExperimentManager().run_experiment(
            make_config(islands=16, trials_per_optimizer=3), RandomSearchTuner(),
            toy_factory, sphere, recording_logger)
        assert len(result.optimizer_results) == 3

    def test_zero_islands_rejected(self, toy_factory, sphere, recording_logger):
        with pytest.raises(ParameterValidationError, match="islands"):
            ParallelExperimentManager().run_experiment(
                make_config(islands=0), RandomSearchTuner(), toy_factory, sphere, recording_logger)

    def test_zero_trials_rejected(self, toy_factory, sphere, recording_logger):
        with pytest.raises(ParameterValidationError, match="trials_per_optimizer"):
            ParallelExperimentManager().run_experiment(
                make_config(islands=2, trials_per_optimizer=0), RandomSearchTuner(),
                toy_factory, sphere, recording_logger)

    def test_worker_failure_propagates(self, toy_factory, sphere, recording_logger):
        bad_seed = draw_seeds(5, 11)[3]
        with pytest.raises(RuntimeError, match="worker failed"):
            ParallelExperimentManager().run_experiment(
                make_config(islands=2), ExplodingTuner(bad_seed), toy_factory, sphere, recording_logger)


class TestExperimentResult:
    """Tests for ExperimentResult helpers."""

    def test_best_and_frame(self, toy_factory, sphere, recording_logger):
        result = SequentialExperimentManager().run_experiment(
            make_config(), RandomSearchTuner(), toy_factory, sphere, recording_logger)

        best = result.best()
        assert best.best_objective == min(r.best_objective for r in result.optimizer_results)

        frame = result.to_frame()
        assert len(frame) == 15
        assert list(frame.columns[:3]) == ["optimizer_trial", "optimizer_seed", "trial"]
        assert sorted(frame["optimizer_trial"].unique()) == [0, 1, 2, 3, 4]
        assert "param_mode" in frame.columns
        assert frame["best_fitness"].min() == best.best_objective

    def test_empty(self):
        result = ExperimentResult(experiment_id="e")
        assert result.best() is None
        assert result.to_frame().empty
