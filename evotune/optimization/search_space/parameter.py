"""
Typed hyperparameter declarations for evolutionary algorithms using Pydantic.

A ParameterSpace is the ordered, name-indexed set of descriptors an algorithm
accepts. Its declaration order is the canonical order used when a candidate
configuration is encoded into a real vector.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, model_validator

ParameterValue = Union[bool, int, float, str]
ParameterSet = Dict[str, ParameterValue]


class ParameterValidationError(ValueError):
    """Raised when a parameter declaration, value or configuration is invalid."""


class ParameterType(str, Enum):
    """Types of parameters an algorithm can declare."""
    CONTINUOUS = "continuous"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    CATEGORICAL = "categorical"


class ContinuousRange(BaseModel):
    """Closed real interval [lower, upper]."""
    model_config = ConfigDict(frozen=True)

    lower: float
    upper: float

    @model_validator(mode='after')
    def validate_order(self):
        if self.lower > self.upper:
            raise ValueError(f"invalid bounds: lower ({self.lower}) > upper ({self.upper})")
        return self


class IntegerRange(BaseModel):
    """Closed integer interval [lower, upper]."""
    model_config = ConfigDict(frozen=True)

    lower: int
    upper: int

    @model_validator(mode='after')
    def validate_order(self):
        if self.lower > self.upper:
            raise ValueError(f"invalid bounds: lower ({self.lower}) > upper ({self.upper})")
        return self


def is_integer_value(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def is_continuous_value(value: Any) -> bool:
    return isinstance(value, (float, np.floating))


def is_boolean_value(value: Any) -> bool:
    return isinstance(value, (bool, np.bool_))


class ParameterDescriptor(BaseModel):
    """
    Declaration of a single algorithm hyperparameter.

    Args:
        name: Unique parameter name
        param_type: Type of the parameter (continuous, integer, boolean, categorical)
        continuous_range: Valid range for continuous parameters
        integer_range: Valid range for integer parameters
        categorical_choices: Allowed labels for categorical parameters
        default_value: Value used when a configuration does not set the parameter
        required: Whether a configuration must end up with a value for this parameter

    Examples:
        # Integer parameter with a default
        ParameterDescriptor(name="population_size", param_type=ParameterType.INTEGER,
                            integer_range=IntegerRange(lower=5, upper=2000), default_value=50)

        # Categorical parameter
        ParameterDescriptor(name="selection", param_type=ParameterType.CATEGORICAL,
                            categorical_choices=["tournament", "roulette"])
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    param_type: ParameterType
    continuous_range: Optional[ContinuousRange] = None
    integer_range: Optional[IntegerRange] = None
    categorical_choices: List[str] = Field(default_factory=list)
    default_value: Optional[ParameterValue] = None
    required: bool = False

    @model_validator(mode='after')
    def validate_descriptor(self):
        """Validate descriptor definition after initialization."""
        problem = _descriptor_problem(self)
        if problem is not None:
            raise ValueError(problem)
        return self


def _descriptor_problem(descriptor: ParameterDescriptor) -> Optional[str]:
    name = descriptor.name
    if descriptor.continuous_range is not None:
        if descriptor.param_type != ParameterType.CONTINUOUS:
            return f"Parameter '{name}': continuous range declared for {descriptor.param_type.value} parameter"
        if descriptor.continuous_range.lower > descriptor.continuous_range.upper:
            return f"Continuous parameter '{name}' has lower bound > upper bound"
    if descriptor.integer_range is not None:
        if descriptor.param_type != ParameterType.INTEGER:
            return f"Parameter '{name}': integer range declared for {descriptor.param_type.value} parameter"
        if descriptor.integer_range.lower > descriptor.integer_range.upper:
            return f"Integer parameter '{name}' has lower bound > upper bound"
    if descriptor.param_type == ParameterType.CATEGORICAL and not descriptor.categorical_choices:
        return f"Categorical parameter '{name}' requires at least one choice"
    return None


class ParameterSpace:
    """
    Ordered collection of parameter descriptors for one algorithm.

    Descriptors can only be added, never removed or replaced, so the encoding
    order is stable for the lifetime of the space.

    Example:
        space = ParameterSpace()
        space.add_integer("population_size", 5, 2000, default=50, required=True)
        space.add_continuous("crossover_rate", 0.0, 1.0, default=0.9)
        space.add_categorical("selection", ["tournament", "roulette"])
    """

    def __init__(self, descriptors: Optional[Sequence[ParameterDescriptor]] = None):
        self._descriptors: List[ParameterDescriptor] = []
        self._index: Dict[str, int] = {}
        for descriptor in descriptors or []:
            self.add_descriptor(descriptor)

    def add_descriptor(self, descriptor: ParameterDescriptor) -> "ParameterSpace":
        """
        Add a descriptor to the space.

        Args:
            descriptor: Descriptor to add

        Raises:
            ParameterValidationError: If the name is empty or taken, or the declaration is malformed.
        """
        if not descriptor.name:
            raise ParameterValidationError("Parameter descriptor name must not be empty")
        if descriptor.name in self._index:
            raise ParameterValidationError(f"Parameter descriptor already exists: {descriptor.name}")

        problem = _descriptor_problem(descriptor)
        if problem is not None:
            raise ParameterValidationError(problem)
        if descriptor.default_value is not None:
            self._check_value(descriptor, descriptor.default_value)

        self._index[descriptor.name] = len(self._descriptors)
        self._descriptors.append(descriptor)
        return self

    def add_continuous(self, name: str, lower: float, upper: float,
                       default: Optional[float] = None, required: bool = False) -> "ParameterSpace":
        return self.add_descriptor(ParameterDescriptor(
            name=name,
            param_type=ParameterType.CONTINUOUS,
            continuous_range=ContinuousRange(lower=lower, upper=upper),
            default_value=default,
            required=required,
        ))

    def add_integer(self, name: str, lower: int, upper: int,
                    default: Optional[int] = None, required: bool = False) -> "ParameterSpace":
        return self.add_descriptor(ParameterDescriptor(
            name=name,
            param_type=ParameterType.INTEGER,
            integer_range=IntegerRange(lower=lower, upper=upper),
            default_value=default,
            required=required,
        ))

    def add_boolean(self, name: str, default: Optional[bool] = None, required: bool = False) -> "ParameterSpace":
        return self.add_descriptor(ParameterDescriptor(
            name=name,
            param_type=ParameterType.BOOLEAN,
            default_value=default,
            required=required,
        ))

    def add_categorical(self, name: str, choices: List[str],
                        default: Optional[str] = None, required: bool = False) -> "ParameterSpace":
        return self.add_descriptor(ParameterDescriptor(
            name=name,
            param_type=ParameterType.CATEGORICAL,
            categorical_choices=list(choices),
            default_value=default,
            required=required,
        ))

    def contains(self, name: str) -> bool:
        return name in self._index

    def descriptor(self, name: str) -> ParameterDescriptor:
        """
        Get a descriptor by name.

        Raises:
            ParameterValidationError: If the name is unknown.
        """
        if name not in self._index:
            raise ParameterValidationError(f"Unknown parameter: {name}")
        return self._descriptors[self._index[name]]

    @property
    def descriptors(self) -> List[ParameterDescriptor]:
        """Descriptors in declaration order."""
        return list(self._descriptors)

    @property
    def empty(self) -> bool:
        return not self._descriptors

    def get_parameter_names(self) -> List[str]:
        return [d.name for d in self._descriptors]

    def validate(self, values: ParameterSet) -> None:
        """
        Type- and range-check a configuration, then check required parameters are present.

        Args:
            values: Parameter configuration to validate

        Raises:
            ParameterValidationError: On an unknown name, a bad value or a missing required parameter.
        """
        for name, value in values.items():
            self._check_value(self.descriptor(name), value)

        for descriptor in self._descriptors:
            if descriptor.required and descriptor.name not in values:
                raise ParameterValidationError(f"Missing required parameter: {descriptor.name}")

    def apply_defaults(self, overrides: Optional[ParameterSet] = None) -> ParameterSet:
        """
        Complete a configuration with declared defaults.

        The result holds every override (validated) plus the default of every
        descriptor that was not overridden. Descriptors with neither a default
        nor the required flag stay absent.

        Args:
            overrides: Values chosen by the caller

        Returns:
            New parameter set in declaration order

        Raises:
            ParameterValidationError: On a bad override or a required parameter left without a value.
        """
        overrides = overrides or {}
        for name, value in overrides.items():
            self._check_value(self.descriptor(name), value)

        result: ParameterSet = {}
        for descriptor in self._descriptors:
            if descriptor.name in overrides:
                result[descriptor.name] = overrides[descriptor.name]
            elif descriptor.default_value is not None:
                self._check_value(descriptor, descriptor.default_value)
                result[descriptor.name] = descriptor.default_value
            elif descriptor.required:
                raise ParameterValidationError(f"Missing required parameter: {descriptor.name}")

        return result

    def validate_value(self, name: str, value: Any) -> None:
        """Check one value against the descriptor called ``name``."""
        self._check_value(self.descriptor(name), value)

    @staticmethod
    def _check_value(descriptor: ParameterDescriptor, value: Any) -> None:
        prefix = f"Parameter '{descriptor.name}' expects type {descriptor.param_type.value}"
        mismatch = f"{prefix} but received mismatched type {type(value).__name__}"

        if descriptor.param_type == ParameterType.CONTINUOUS:
            if not is_continuous_value(value):
                raise ParameterValidationError(mismatch)
            bounds = descriptor.continuous_range
            if bounds is not None and not (bounds.lower <= value <= bounds.upper):
                raise ParameterValidationError(
                    f"{prefix} but {value} is outside bounds [{bounds.lower}, {bounds.upper}]")

        elif descriptor.param_type == ParameterType.INTEGER:
            if not is_integer_value(value):
                raise ParameterValidationError(mismatch)
            bounds = descriptor.integer_range
            if bounds is not None and not (bounds.lower <= value <= bounds.upper):
                raise ParameterValidationError(
                    f"{prefix} but {value} is outside bounds [{bounds.lower}, {bounds.upper}]")

        elif descriptor.param_type == ParameterType.BOOLEAN:
            if not is_boolean_value(value):
                raise ParameterValidationError(mismatch)

        elif descriptor.param_type == ParameterType.CATEGORICAL:
            if not isinstance(value, str):
                raise ParameterValidationError(mismatch)
            if value not in descriptor.categorical_choices:
                raise ParameterValidationError(f"{prefix} with invalid choice '{value}'")

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __iter__(self) -> Iterator[ParameterDescriptor]:
        return iter(list(self._descriptors))

    def __len__(self) -> int:
        return len(self._descriptors)

    def __repr__(self) -> str:
        param_info = []
        for d in self._descriptors:
            if d.continuous_range is not None:
                param_info.append(f"{d.name}: {d.param_type.value}[{d.continuous_range.lower}, {d.continuous_range.upper}]")
            elif d.integer_range is not None:
                param_info.append(f"{d.name}: {d.param_type.value}[{d.integer_range.lower}, {d.integer_range.upper}]")
            elif d.categorical_choices:
                param_info.append(f"{d.name}: {d.param_type.value}{d.categorical_choices}")
            else:
                param_info.append(f"{d.name}: {d.param_type.value}")
        return f"ParameterSpace({', '.join(param_info)})"
