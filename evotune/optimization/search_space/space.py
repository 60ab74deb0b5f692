"""
Search space management for hyperparameter tuning.

A SearchSpace is an optional layer of per-parameter overrides on top of an
algorithm's ParameterSpace. Each entry fixes a parameter, excludes it (leaving
it to the algorithm's default), or keeps it under optimization with narrower
bounds, an explicit list of discrete choices, or a reparameterizing transform.
"""

import math
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .parameter import (
    ContinuousRange,
    IntegerRange,
    ParameterSpace,
    ParameterType,
    ParameterValidationError,
    ParameterValue,
)


class SearchMode(str, Enum):
    """How the tuner treats a parameter."""
    OPTIMIZE = "optimize"
    FIXED = "fixed"
    EXCLUDE = "exclude"


class Transform(str, Enum):
    """Reparameterizations of a continuous search dimension."""
    NONE = "none"
    LOG = "log"
    LOG2 = "log2"
    SQRT = "sqrt"


class ParameterConfig(BaseModel):
    """
    One search space entry.

    Args:
        mode: Whether the parameter is optimized, fixed or excluded
        fixed_value: Pinned value when mode is fixed
        continuous_bounds: Custom bounds for a continuous parameter
        integer_bounds: Custom bounds for an integer parameter
        discrete_choices: Explicit values to choose among (integer or categorical parameters)
        transform: Reparameterization of continuous bounds
    """
    model_config = ConfigDict(extra="forbid")

    mode: SearchMode = SearchMode.OPTIMIZE
    fixed_value: Optional[ParameterValue] = None
    continuous_bounds: Optional[ContinuousRange] = None
    integer_bounds: Optional[IntegerRange] = None
    discrete_choices: List[ParameterValue] = Field(default_factory=list)
    transform: Transform = Transform.NONE

    @model_validator(mode='after')
    def validate_config(self):
        if self.mode == SearchMode.FIXED and self.fixed_value is None:
            raise ValueError("fixed mode requires a fixed_value")
        if self.continuous_bounds is not None:
            validate_transform_bounds(self.continuous_bounds, self.transform)
        return self


class EffectiveBounds(BaseModel):
    """Resolved search treatment of one descriptor, as consumed by the tuning bridge."""
    name: str
    param_type: ParameterType
    mode: SearchMode
    continuous_bounds: Optional[ContinuousRange] = None
    integer_bounds: Optional[IntegerRange] = None
    choices: List[ParameterValue] = Field(default_factory=list)
    has_custom_choices: bool = False
    transform: Transform = Transform.NONE
    fixed_value: Optional[ParameterValue] = None

    @property
    def discrete_choice_count(self) -> int:
        return len(self.choices)


class SearchSpace:
    """
    Per-parameter overrides layered on a ParameterSpace.

    Entries are checked against a ParameterSpace only when ``validate`` or
    ``validate_and_clamp`` is called.

    Example:
        search = SearchSpace()
        search.fix("population_size", 100)
        search.optimize("scaling_factor", ContinuousRange(lower=0.3, upper=0.9))
        search.optimize("learning_rate", ContinuousRange(lower=1e-4, upper=1e-1), Transform.LOG)
        search.optimize_choices("variant", [1, 2, 5])
        search.exclude("ftol")
    """

    def __init__(self):
        self._configs: Dict[str, ParameterConfig] = {}

    def set(self, name: str, config: ParameterConfig) -> None:
        if config.continuous_bounds is not None:
            validate_transform_bounds(config.continuous_bounds, config.transform)
        self._configs[name] = config

    def fix(self, name: str, value: ParameterValue) -> None:
        self._configs[name] = ParameterConfig(mode=SearchMode.FIXED, fixed_value=value)

    def exclude(self, name: str) -> None:
        self._configs[name] = ParameterConfig(mode=SearchMode.EXCLUDE)

    def optimize(
        self,
        name: str,
        bounds: Union[ContinuousRange, IntegerRange],
        transform: Transform = Transform.NONE,
    ) -> None:
        """
        Keep a parameter under optimization with custom bounds.

        Args:
            name: Parameter name
            bounds: ContinuousRange for continuous parameters, IntegerRange for integer ones
            transform: Reparameterization, only meaningful for continuous bounds
        """
        if isinstance(bounds, ContinuousRange):
            validate_transform_bounds(bounds, transform)
            self._configs[name] = ParameterConfig(continuous_bounds=bounds, transform=transform)
        elif isinstance(bounds, IntegerRange):
            if transform != Transform.NONE:
                raise ParameterValidationError(f"transform for '{name}' requires continuous bounds")
            self._configs[name] = ParameterConfig(integer_bounds=bounds)
        else:
            raise ParameterValidationError(f"unsupported bounds for '{name}': {type(bounds).__name__}")

    def optimize_choices(self, name: str, choices: List[ParameterValue]) -> None:
        if not choices:
            raise ParameterValidationError(f"discrete choices for '{name}' cannot be empty")
        self._configs[name] = ParameterConfig(discrete_choices=list(choices))

    def get(self, name: str) -> Optional[ParameterConfig]:
        return self._configs.get(name)

    def has(self, name: str) -> bool:
        return name in self._configs

    @property
    def configs(self) -> Dict[str, ParameterConfig]:
        return dict(self._configs)

    @property
    def empty(self) -> bool:
        return not self._configs

    def validate(self, space: ParameterSpace) -> None:
        """
        Check every entry against the algorithm's parameter space.

        Raises:
            ParameterValidationError: On an unknown name, a fixed value of the wrong type
                or range, or bounds/choices that do not fit the parameter type.
        """
        for name, config in self._configs.items():
            if not space.contains(name):
                raise ParameterValidationError(f"search space references unknown parameter: {name}")

            descriptor = space.descriptor(name)

            if config.mode == SearchMode.FIXED:
                try:
                    space.validate_value(name, config.fixed_value)
                except ParameterValidationError as exc:
                    raise ParameterValidationError(f"fixed value for '{name}' is invalid: {exc}") from exc

            if config.mode == SearchMode.EXCLUDE and descriptor.required and descriptor.default_value is None:
                raise ParameterValidationError(
                    f"cannot exclude required parameter '{name}' that has no default")

            if config.continuous_bounds is not None and descriptor.param_type != ParameterType.CONTINUOUS:
                raise ParameterValidationError(
                    f"continuous bounds specified for non-continuous parameter: {name}")

            if config.integer_bounds is not None and descriptor.param_type != ParameterType.INTEGER:
                raise ParameterValidationError(
                    f"integer bounds specified for non-integer parameter: {name}")

            if config.discrete_choices:
                if descriptor.param_type not in (ParameterType.INTEGER, ParameterType.CATEGORICAL):
                    raise ParameterValidationError(
                        f"discrete choices specified for {descriptor.param_type.value} parameter: {name}")
                for choice in config.discrete_choices:
                    try:
                        space.validate_value(name, choice)
                    except ParameterValidationError as exc:
                        raise ParameterValidationError(f"discrete choice for '{name}' is invalid: {exc}") from exc

    def validate_and_clamp(self, space: ParameterSpace) -> None:
        """
        Validate, then narrow custom bounds to the declared ranges.

        Bounds are intersected with the descriptor's range, never widened. An
        intersection that is empty is an error.
        """
        self.validate(space)

        for name, config in list(self._configs.items()):
            if config.mode != SearchMode.OPTIMIZE:
                continue

            descriptor = space.descriptor(name)
            updates = {}

            if config.continuous_bounds is not None and descriptor.continuous_range is not None:
                clamped = clamp_bounds(config.continuous_bounds, descriptor.continuous_range, name)
                validate_transform_bounds(clamped, config.transform)
                updates["continuous_bounds"] = clamped

            if config.integer_bounds is not None and descriptor.integer_range is not None:
                updates["integer_bounds"] = clamp_bounds(config.integer_bounds, descriptor.integer_range, name)

            if updates:
                self._configs[name] = config.model_copy(update=updates)

    def get_effective_bounds(self, space: ParameterSpace) -> List[EffectiveBounds]:
        """
        Resolve the search treatment of every descriptor, in declaration order.

        Descriptors without an entry are optimized over their declared range.
        """
        result = []

        for descriptor in space.descriptors:
            config = self.get(descriptor.name)
            declared_choices = list(descriptor.categorical_choices)

            if config is None:
                result.append(EffectiveBounds(
                    name=descriptor.name,
                    param_type=descriptor.param_type,
                    mode=SearchMode.OPTIMIZE,
                    continuous_bounds=descriptor.continuous_range,
                    integer_bounds=descriptor.integer_range,
                    choices=declared_choices,
                ))
                continue

            bounds = EffectiveBounds(
                name=descriptor.name,
                param_type=descriptor.param_type,
                mode=config.mode,
                transform=config.transform,
            )

            if config.mode == SearchMode.FIXED:
                bounds.fixed_value = config.fixed_value
            elif config.mode == SearchMode.OPTIMIZE:
                if config.discrete_choices:
                    bounds.choices = list(config.discrete_choices)
                    bounds.has_custom_choices = True
                elif config.continuous_bounds is not None:
                    bounds.continuous_bounds = config.continuous_bounds
                elif config.integer_bounds is not None:
                    bounds.integer_bounds = config.integer_bounds
                else:
                    bounds.continuous_bounds = descriptor.continuous_range
                    bounds.integer_bounds = descriptor.integer_range

                if not bounds.has_custom_choices:
                    bounds.choices = declared_choices

            result.append(bounds)

        return result

    def get_optimization_dimension(self, space: ParameterSpace) -> int:
        """Number of descriptors that stay under optimization."""
        dim = 0
        for descriptor in space.descriptors:
            config = self.get(descriptor.name)
            if config is not None and config.mode in (SearchMode.FIXED, SearchMode.EXCLUDE):
                continue
            dim += 1
        return dim

    def __len__(self) -> int:
        return len(self._configs)

    def __repr__(self) -> str:
        entries = [f"{name}: {config.mode.value}" for name, config in self._configs.items()]
        return f"SearchSpace({', '.join(entries)})"


def validate_transform_bounds(bounds: ContinuousRange, transform: Transform) -> None:
    """Check that ``bounds`` lie in the domain of ``transform``."""
    if bounds.lower > bounds.upper:
        raise ParameterValidationError("invalid bounds: lower > upper")

    if transform in (Transform.LOG, Transform.LOG2):
        if bounds.lower <= 0.0:
            raise ParameterValidationError(
                f"log transform requires positive bounds, got lower={bounds.lower}")
    elif transform == Transform.SQRT:
        if bounds.lower < 0.0:
            raise ParameterValidationError(
                f"sqrt transform requires non-negative bounds, got lower={bounds.lower}")


def clamp_bounds(
    custom: Union[ContinuousRange, IntegerRange],
    constraint: Union[ContinuousRange, IntegerRange],
    name: str = "parameter",
) -> Union[ContinuousRange, IntegerRange]:
    """
    Intersect ``custom`` with ``constraint``.

    Returns a range of the same kind as ``custom``; an empty intersection raises.
    """
    lower = max(custom.lower, constraint.lower)
    upper = min(custom.upper, constraint.upper)
    if lower > upper:
        kind = "integer" if isinstance(custom, IntegerRange) else "continuous"
        raise ParameterValidationError(
            f"{kind} bounds for '{name}' do not overlap with parameter range "
            f"[{constraint.lower}, {constraint.upper}]")
    return type(custom)(lower=lower, upper=upper)


def apply_transform(value: float, transform: Transform) -> float:
    """Map a coded (search-space) value back to a parameter value."""
    if transform == Transform.LOG:
        return 10.0 ** value
    if transform == Transform.LOG2:
        return 2.0 ** value
    if transform == Transform.SQRT:
        return value * value
    return value


def reverse_transform(value: float, transform: Transform) -> float:
    """Map a parameter value into the coded search space."""
    if transform == Transform.LOG:
        return math.log10(value)
    if transform == Transform.LOG2:
        return math.log2(value)
    if transform == Transform.SQRT:
        return math.sqrt(value)
    return value


def transform_bounds(bounds: ContinuousRange, transform: Transform) -> ContinuousRange:
    """Encode a whole parameter range into search-space coordinates."""
    validate_transform_bounds(bounds, transform)
    return ContinuousRange(
        lower=reverse_transform(bounds.lower, transform),
        upper=reverse_transform(bounds.upper, transform),
    )
