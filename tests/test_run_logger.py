"""
Tests for run record serialization, the JSONL logger and log loading.
"""

import json
import math

import pytest

from evotune.configs.budget import AlgorithmIdentity, BudgetUsage, RunStatus
from evotune.configs.experiment import ExperimentConfig
from evotune.optimization.hyper.random_search import RandomSearchTuner
from evotune.optimization.orchestrator import SequentialExperimentManager
from evotune.reporting.run_logger import JsonlLogger, RunRecord, load_run_log, serialize_run_record

DE_IDENTITY = AlgorithmIdentity(family="DifferentialEvolution", implementation="evotune.de", version="1.0")


@pytest.fixture
def record():
    return RunRecord(
        experiment_id="exp",
        problem_id="sphere_2d",
        evolutionary_algorithm=DE_IDENTITY,
        algorithm_parameters={"variant": 2, "crossover_rate": 0.9, "population_size": 50},
        optimizer_parameters={"trials": 10},
        status=RunStatus.SUCCESS,
        objective_value=0.25,
        budget_usage=BudgetUsage(function_evaluations=500, generations=9),
        algorithm_seed=42,
        optimizer_seed=7,
        message="optimization completed",
    )


class TestSerialization:
    """Tests for serialize_run_record."""

    def test_single_line_json(self, record):
        line = serialize_run_record(record)
        assert "\n" not in line
        payload = json.loads(line)
        assert payload["experiment_id"] == "exp"
        assert payload["status"] == "success"
        assert payload["objective_value"] == 0.25
        assert payload["evolutionary_algorithm"]["family"] == "DifferentialEvolution"
        assert payload["hyper_optimizer"] is None
        assert payload["budget_usage"] == {"function_evaluations": 500, "generations": 9, "wall_time_ms": 0}
        assert payload["algorithm_seed"] == 42
        assert payload["optimizer_seed"] == 7

    def test_parameter_keys_sorted(self, record):
        line = serialize_run_record(record)
        assert list(json.loads(line)["algorithm_parameters"]) == ["crossover_rate", "population_size", "variant"]
        assert line.index('"crossover_rate"') < line.index('"population_size"') < line.index('"variant"')

    def test_non_finite_values(self, record):
        record.objective_value = math.inf
        assert json.loads(serialize_run_record(record))["objective_value"] == 1e308

        record.objective_value = -math.inf
        assert json.loads(serialize_run_record(record))["objective_value"] == -1e308

        record.objective_value = math.nan
        record.algorithm_parameters = {"rate": math.nan, "scale": math.inf}
        payload = json.loads(serialize_run_record(record))
        assert payload["objective_value"] is None
        assert payload["algorithm_parameters"] == {"rate": None, "scale": 1e308}

    def test_booleans_stay_booleans(self, record):
        record.algorithm_parameters = {"elitism": True, "population_size": 1}
        payload = json.loads(serialize_run_record(record))
        assert payload["algorithm_parameters"]["elitism"] is True
        assert payload["algorithm_parameters"]["population_size"] == 1


class TestJsonlLogger:
    """Tests for JsonlLogger."""

    def test_creates_directories_and_appends(self, tmp_path, record):
        path = tmp_path / "logs" / "nested" / "runs.jsonl"
        with JsonlLogger(path) as run_logger:
            run_logger.log(record)
            run_logger.log(record)
            assert run_logger.records_written == 2

        with JsonlLogger(path) as run_logger:
            run_logger.log(record)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert all(json.loads(line)["experiment_id"] == "exp" for line in lines)

    def test_auto_flush(self, tmp_path, record):
        path = tmp_path / "runs.jsonl"
        run_logger = JsonlLogger(path, auto_flush=True)
        run_logger.log(record)
        assert len(path.read_text(encoding="utf-8").splitlines()) == 1
        run_logger.close()

    def test_log_after_close_reopens(self, tmp_path, record):
        path = tmp_path / "runs.jsonl"
        run_logger = JsonlLogger(path)
        run_logger.close()
        run_logger.log(record)
        run_logger.close()
        assert len(path.read_text(encoding="utf-8").splitlines()) == 1


class TestLoadRunLog:
    """Tests for load_run_log."""

    def test_flattened_columns(self, tmp_path, record):
        path = tmp_path / "runs.jsonl"
        with JsonlLogger(path) as run_logger:
            run_logger.log(record)

        frame = load_run_log(path)
        assert len(frame) == 1
        assert frame.loc[0, "budget_usage.function_evaluations"] == 500
        assert frame.loc[0, "algorithm_parameters.population_size"] == 50
        assert frame.loc[0, "evolutionary_algorithm.family"] == "DifferentialEvolution"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.jsonl"
        path.write_text("", encoding="utf-8")
        assert load_run_log(path).empty

    def test_experiment_end_to_end(self, tmp_path, toy_factory, sphere):
        path = tmp_path / "experiment.jsonl"
        config = ExperimentConfig(
            experiment_id="toy-run",
            trials_per_optimizer=2,
            optimizer_parameters={"trials": 4},
            log_file_path=path,
            random_seed=3,
        )
        with JsonlLogger(config.log_file_path) as run_logger:
            result = SequentialExperimentManager().run_experiment(
                config, RandomSearchTuner(), toy_factory, sphere, run_logger)

        frame = load_run_log(path)
        assert len(frame) == 8
        assert set(frame["experiment_id"]) == {"toy-run"}
        assert set(frame["optimizer_seed"]) == {r.seed for r in result.optimizer_results}
        assert frame["objective_value"].min() == pytest.approx(result.best().best_objective)
        assert set(frame["hyper_optimizer.family"]) == {"RandomSearch"}
