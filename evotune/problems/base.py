from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
from pydantic import BaseModel


class ProblemMetadata(BaseModel):
    id: str
    family: str
    description: str = ""


class Problem(ABC):
    """
    Abstract base class for single-objective, box-bounded minimization problems.

    Implementations must be safe to evaluate from several threads at once.
    """

    @abstractmethod
    def metadata(self) -> ProblemMetadata:
        pass

    @abstractmethod
    def dimension(self) -> int:
        pass

    @abstractmethod
    def lower_bounds(self) -> np.ndarray:
        pass

    @abstractmethod
    def upper_bounds(self) -> np.ndarray:
        pass

    @abstractmethod
    def evaluate(self, decision_vector: Sequence[float]) -> float:
        """
        Objective value of one decision vector (lower is better).
        """
        pass

    def evaluate_batch(self, population: np.ndarray) -> np.ndarray:
        """Objective values of every row of ``population``, in row order."""
        return np.array([self.evaluate(individual) for individual in population], dtype=float)

    def is_stochastic(self) -> bool:
        return False
