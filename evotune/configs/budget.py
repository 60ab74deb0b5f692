from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RunStatus(str, Enum):
    """Outcome of a single optimization attempt."""
    SUCCESS = "success"
    BUDGET_EXCEEDED = "budget_exceeded"
    FAILED_EVALUATION = "failed_evaluation"
    INVALID_CONFIGURATION = "invalid_configuration"
    INTERNAL_ERROR = "internal_error"


class Budget(BaseModel):
    """
    Caps on the resources a run may consume.

    Attributes:
        function_evaluations (Optional[int]): Maximum objective evaluations, unlimited when None.
        generations (Optional[int]): Maximum generations (iterations), unlimited when None.
        wall_time (Optional[timedelta]): Wall-clock limit, only checked after a run returns.
    """
    model_config = ConfigDict(extra="forbid")

    function_evaluations: Optional[int] = Field(None, ge=0, description="Cap on objective evaluations")
    generations: Optional[int] = Field(None, ge=0, description="Cap on generations")
    wall_time: Optional[timedelta] = Field(None, description="Cap on wall-clock time")

    def is_unlimited(self) -> bool:
        return self.function_evaluations is None and self.generations is None and self.wall_time is None

    def wall_time_exceeded(self, elapsed: timedelta) -> bool:
        return self.wall_time is not None and elapsed > self.wall_time


class BudgetUsage(BaseModel):
    """Post-hoc tally mirroring the shape of Budget."""
    model_config = ConfigDict(extra="forbid")

    function_evaluations: int = Field(0, ge=0)
    generations: int = Field(0, ge=0)
    wall_time: timedelta = Field(default_factory=timedelta)

    @property
    def wall_time_ms(self) -> int:
        return int(self.wall_time.total_seconds() * 1000)


class AlgorithmIdentity(BaseModel):
    """Who ran: algorithm family, concrete implementation and its version."""
    model_config = ConfigDict(frozen=True)

    family: str
    implementation: str
    version: str
