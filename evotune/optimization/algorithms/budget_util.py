"""
Helpers shared by the inner algorithms: typed parameter access, generation
clamping against a Budget, and seed folding.
"""

from evotune.configs.budget import Budget
from evotune.optimization.search_space.parameter import (
    ParameterSet,
    is_boolean_value,
    is_continuous_value,
    is_integer_value,
)

SEED_MASK = 0xFFFFFFFF


def get_int_param(params: ParameterSet, name: str) -> int:
    if name not in params:
        raise ValueError(f"missing parameter: {name}")
    value = params[name]
    if not is_integer_value(value):
        raise ValueError(f"parameter '{name}' must be integer")
    if value < 0:
        raise ValueError(f"parameter '{name}' cannot be negative")
    return int(value)


def get_float_param(params: ParameterSet, name: str) -> float:
    if name not in params:
        raise ValueError(f"missing parameter: {name}")
    value = params[name]
    if not is_continuous_value(value):
        raise ValueError(f"parameter '{name}' must be float")
    return float(value)


def get_bool_param(params: ParameterSet, name: str) -> bool:
    if name not in params:
        raise ValueError(f"missing parameter: {name}")
    value = params[name]
    if not is_boolean_value(value):
        raise ValueError(f"parameter '{name}' must be boolean")
    return bool(value)


def compute_generations(params: ParameterSet, budget: Budget, population_size: int) -> int:
    """
    Number of generations a population-based run may perform.

    The configured ``generations`` is capped by ``budget.generations`` and by the
    evaluation budget. A run evaluates the initial population once and then one
    population per generation, so ``population_size * (generations + 1)`` never
    exceeds ``budget.function_evaluations``.

    Raises:
        ValueError: If the population is empty, ``generations`` is not positive,
            or the evaluation budget cannot cover the initial population.
    """
    if population_size <= 0:
        raise ValueError("population_size cannot be zero")

    generations = get_int_param(params, "generations")
    if generations == 0:
        raise ValueError("generations must be positive")

    if budget.generations is not None:
        generations = min(generations, budget.generations)

    if budget.function_evaluations is not None:
        if budget.function_evaluations < population_size:
            raise ValueError(
                f"function evaluation budget ({budget.function_evaluations}) "
                f"cannot cover the initial population ({population_size})")
        generations = min(generations, budget.function_evaluations // population_size - 1)

    return generations


def to_seed32(seed: int) -> int:
    """Fold an arbitrary non-negative seed into numpy's 32-bit seed range."""
    return int(seed) & SEED_MASK
