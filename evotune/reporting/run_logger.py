"""
Append-only run logs.

Every inner trial of an experiment is flattened into a RunRecord and handed to
a RunLogger. JsonlLogger writes one JSON object per line.
"""

import json
import math
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, Field

from evotune.configs.budget import AlgorithmIdentity, BudgetUsage, RunStatus
from evotune.optimization.search_space.parameter import ParameterSet
from evotune.utils.logger import get_logger

logger = get_logger(__name__)

SATURATED_FLOAT = 1e308


class RunRecord(BaseModel):
    """One inner trial, flattened for logging."""
    experiment_id: str
    problem_id: str
    evolutionary_algorithm: AlgorithmIdentity
    hyper_optimizer: Optional[AlgorithmIdentity] = None
    algorithm_parameters: ParameterSet = Field(default_factory=dict)
    optimizer_parameters: ParameterSet = Field(default_factory=dict)
    status: RunStatus = RunStatus.INTERNAL_ERROR
    objective_value: float = 0.0
    budget_usage: BudgetUsage = Field(default_factory=BudgetUsage)
    algorithm_seed: int = 0
    optimizer_seed: Optional[int] = None
    message: str = ""


class RunLogger(ABC):
    """Sink for run records. Implementations need not be thread-safe."""

    @abstractmethod
    def log(self, record: RunRecord) -> None:
        pass

    @abstractmethod
    def flush(self) -> None:
        pass


def _json_float(value: float) -> Optional[float]:
    if math.isnan(value):
        return None
    if math.isinf(value):
        return SATURATED_FLOAT if value > 0 else -SATURATED_FLOAT
    return value


def _json_parameters(parameters: ParameterSet) -> Dict[str, Any]:
    result = {}
    for name in sorted(parameters):
        value = parameters[name]
        if isinstance(value, float):
            value = _json_float(value)
        result[name] = value
    return result


def _json_identity(identity: Optional[AlgorithmIdentity]) -> Optional[Dict[str, str]]:
    if identity is None:
        return None
    return {
        "family": identity.family,
        "implementation": identity.implementation,
        "version": identity.version,
    }


def serialize_run_record(record: RunRecord) -> str:
    """
    One-line JSON encoding of ``record``.

    NaN becomes ``null``, infinities saturate to ``±1e308`` and parameter maps
    are emitted with their keys in lexicographic order.
    """
    payload = {
        "experiment_id": record.experiment_id,
        "problem_id": record.problem_id,
        "evolutionary_algorithm": _json_identity(record.evolutionary_algorithm),
        "hyper_optimizer": _json_identity(record.hyper_optimizer),
        "algorithm_parameters": _json_parameters(record.algorithm_parameters),
        "optimizer_parameters": _json_parameters(record.optimizer_parameters),
        "status": record.status.value,
        "objective_value": _json_float(record.objective_value),
        "budget_usage": {
            "function_evaluations": record.budget_usage.function_evaluations,
            "generations": record.budget_usage.generations,
            "wall_time_ms": record.budget_usage.wall_time_ms,
        },
        "algorithm_seed": record.algorithm_seed,
        "optimizer_seed": record.optimizer_seed,
        "message": record.message,
    }
    return json.dumps(payload, allow_nan=False, separators=(",", ":"))


class JsonlLogger(RunLogger):
    """
    Appends run records to a JSON Lines file.

    The file and its parent directories are created on construction. Usable as
    a context manager, which closes the file on exit.

    Args:
        file_path: Destination file, opened in append mode
        auto_flush: Flush after every record
    """

    def __init__(self, file_path: Union[str, Path], auto_flush: bool = False):
        self.file_path = Path(file_path)
        self.auto_flush = auto_flush
        self.records_written = 0
        self._lock = threading.Lock()

        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self._stream = open(self.file_path, "a", encoding="utf-8")

    def log(self, record: RunRecord) -> None:
        line = serialize_run_record(record)
        with self._lock:
            if self._stream.closed:
                self._stream = open(self.file_path, "a", encoding="utf-8")
            self._stream.write(line + "\n")
            self.records_written += 1
            if self.auto_flush:
                self._stream.flush()

    def flush(self) -> None:
        with self._lock:
            if not self._stream.closed:
                self._stream.flush()

    def close(self) -> None:
        with self._lock:
            if not self._stream.closed:
                self._stream.close()
        logger.debug(f"Closed run log {self.file_path} after {self.records_written} records")

    def __enter__(self) -> "JsonlLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def load_run_log(file_path: Union[str, Path]) -> pd.DataFrame:
    """
    Read a JSONL run log into a DataFrame, one row per record.

    Nested objects are flattened into dotted columns, e.g.
    ``budget_usage.function_evaluations`` or ``algorithm_parameters.population_size``.
    """
    rows: List[Dict[str, Any]] = []
    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                rows.append(json.loads(line))

    if not rows:
        return pd.DataFrame()
    return pd.json_normalize(rows)
