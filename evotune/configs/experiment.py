from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from evotune.configs.budget import Budget
from evotune.optimization.search_space.parameter import ParameterSet


class ExperimentConfig(BaseModel):
    """
    Settings of one experiment: repeated hyperparameter optimization of one
    algorithm on one problem.

    Attributes:
        experiment_id (str): Identifier written into every log record.
        islands (int): Worker threads used by the parallel manager.
        trials_per_optimizer (int): Independent outer optimization runs.
        algorithm_budget (Budget): Budget of every inner algorithm run.
        optimizer_budget (Budget): Budget of every outer optimizer run.
        optimizer_parameters (Optional[ParameterSet]): Overrides of the optimizer's defaults.
        algorithm_baseline_parameters (Optional[ParameterSet]): Reference configuration of the tuned algorithm.
        log_file_path (Optional[Path]): Destination of the JSONL run log.
        random_seed (Optional[int]): Seeds the manager's seed source; fresh entropy when None.
    """
    model_config = ConfigDict(extra="forbid")

    experiment_id: str = Field(..., min_length=1, description="Experiment identifier")
    islands: int = Field(1, ge=0, description="Worker threads of the parallel manager")
    trials_per_optimizer: int = Field(1, ge=0, description="Outer optimization runs")
    algorithm_budget: Budget = Field(default_factory=Budget, description="Budget of each inner run")
    optimizer_budget: Budget = Field(default_factory=Budget, description="Budget of each outer run")
    optimizer_parameters: Optional[ParameterSet] = Field(None, description="Optimizer parameter overrides")
    algorithm_baseline_parameters: Optional[ParameterSet] = Field(
        None, description="Reference configuration of the tuned algorithm")
    log_file_path: Optional[Path] = Field(None, description="JSONL run log destination")
    random_seed: Optional[int] = Field(None, ge=0, description="Seed of the manager's seed source")
