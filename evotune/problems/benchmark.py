"""
Standard continuous benchmark functions.

All functions have a global minimum of 0 inside their default bounds.
"""

from abc import abstractmethod
from typing import Callable, Optional, Sequence

import numpy as np

from .base import Problem, ProblemMetadata


class BoxBoundedProblem(Problem):
    """Shared plumbing for problems with uniform scalar bounds on every coordinate."""

    family = "benchmark"
    description = ""

    def __init__(self, dimension: int, lower_bound: float, upper_bound: float, problem_id: Optional[str] = None):
        if dimension <= 0:
            raise ValueError("problem dimension must be positive")
        if lower_bound >= upper_bound:
            raise ValueError(f"lower bound ({lower_bound}) must be < upper bound ({upper_bound})")

        self._dimension = int(dimension)
        self._lower = np.full(self._dimension, float(lower_bound))
        self._upper = np.full(self._dimension, float(upper_bound))
        self._metadata = ProblemMetadata(
            id=problem_id or f"{type(self).__name__.replace('Problem', '').lower()}_{self._dimension}d",
            family=self.family,
            description=self.description,
        )

    def metadata(self) -> ProblemMetadata:
        return self._metadata

    def dimension(self) -> int:
        return self._dimension

    def lower_bounds(self) -> np.ndarray:
        return self._lower.copy()

    def upper_bounds(self) -> np.ndarray:
        return self._upper.copy()

    def evaluate(self, decision_vector: Sequence[float]) -> float:
        x = np.asarray(decision_vector, dtype=float)
        if x.shape != (self._dimension,):
            raise ValueError(f"expected a vector of length {self._dimension}, got shape {x.shape}")
        return float(self._objective(x))

    @abstractmethod
    def _objective(self, x: np.ndarray) -> float:
        pass


class SphereProblem(BoxBoundedProblem):
    description = "sum of squares"

    def __init__(self, dimension: int, lower_bound: float = -5.0, upper_bound: float = 5.0):
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        return np.sum(x ** 2)


class RosenbrockProblem(BoxBoundedProblem):
    description = "narrow curved valley"

    def __init__(self, dimension: int, lower_bound: float = -5.0, upper_bound: float = 10.0):
        if dimension < 2:
            raise ValueError("rosenbrock requires at least 2 dimensions")
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        return np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2)


class RastriginProblem(BoxBoundedProblem):
    description = "highly multimodal with regular local minima"

    def __init__(self, dimension: int, lower_bound: float = -5.12, upper_bound: float = 5.12):
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        return 10.0 * x.size + np.sum(x ** 2 - 10.0 * np.cos(2.0 * np.pi * x))


class AckleyProblem(BoxBoundedProblem):
    description = "nearly flat outer region with a deep central funnel"

    def __init__(self, dimension: int, lower_bound: float = -32.768, upper_bound: float = 32.768):
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        n = x.size
        term1 = -20.0 * np.exp(-0.2 * np.sqrt(np.sum(x ** 2) / n))
        term2 = -np.exp(np.sum(np.cos(2.0 * np.pi * x)) / n)
        return term1 + term2 + 20.0 + np.e


class GriewankProblem(BoxBoundedProblem):
    description = "many widespread regular local minima"

    def __init__(self, dimension: int, lower_bound: float = -600.0, upper_bound: float = 600.0):
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        i = np.arange(1, x.size + 1)
        return np.sum(x ** 2) / 4000.0 - np.prod(np.cos(x / np.sqrt(i))) + 1.0


class SchwefelProblem(BoxBoundedProblem):
    description = "deceptive, global minimum far from the next best local minima"

    def __init__(self, dimension: int, lower_bound: float = -500.0, upper_bound: float = 500.0):
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        return 418.9828872724339 * x.size - np.sum(x * np.sin(np.sqrt(np.abs(x))))


class ZakharovProblem(BoxBoundedProblem):
    description = "plate-shaped, no local minima except the global one"

    def __init__(self, dimension: int, lower_bound: float = -5.0, upper_bound: float = 10.0):
        super().__init__(dimension, lower_bound, upper_bound)

    def _objective(self, x: np.ndarray) -> float:
        i = np.arange(1, x.size + 1)
        weighted = np.sum(0.5 * i * x)
        return np.sum(x ** 2) + weighted ** 2 + weighted ** 4


class CallableProblem(Problem):
    """
    Wrap a plain function as a Problem.

    Example:
        problem = CallableProblem(lambda x: float(np.sum(np.abs(x))), lower=[-1, -1], upper=[1, 1],
                                  problem_id="l1_2d")
    """

    def __init__(
        self,
        func: Callable[[np.ndarray], float],
        lower: Sequence[float],
        upper: Sequence[float],
        problem_id: str = "custom",
        family: str = "custom",
        description: str = "",
        stochastic: bool = False,
    ):
        self._func = func
        self._lower = np.asarray(lower, dtype=float)
        self._upper = np.asarray(upper, dtype=float)
        if self._lower.shape != self._upper.shape or self._lower.ndim != 1 or self._lower.size == 0:
            raise ValueError("lower and upper bounds must be non-empty vectors of equal length")
        if np.any(self._lower > self._upper):
            raise ValueError("lower bounds must not exceed upper bounds")
        self._stochastic = stochastic
        self._metadata = ProblemMetadata(id=problem_id, family=family, description=description)

    def metadata(self) -> ProblemMetadata:
        return self._metadata

    def dimension(self) -> int:
        return int(self._lower.size)

    def lower_bounds(self) -> np.ndarray:
        return self._lower.copy()

    def upper_bounds(self) -> np.ndarray:
        return self._upper.copy()

    def evaluate(self, decision_vector: Sequence[float]) -> float:
        return float(self._func(np.asarray(decision_vector, dtype=float)))

    def is_stochastic(self) -> bool:
        return self._stochastic
