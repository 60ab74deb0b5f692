"""
Parameter declarations and search space overrides.
"""

from .parameter import (
    ContinuousRange,
    IntegerRange,
    ParameterDescriptor,
    ParameterSet,
    ParameterSpace,
    ParameterType,
    ParameterValidationError,
    ParameterValue,
)
from .space import (
    EffectiveBounds,
    ParameterConfig,
    SearchMode,
    SearchSpace,
    Transform,
    apply_transform,
    clamp_bounds,
    reverse_transform,
    transform_bounds,
    validate_transform_bounds,
)

__all__ = [
    'ContinuousRange',
    'IntegerRange',
    'ParameterDescriptor',
    'ParameterSet',
    'ParameterSpace',
    'ParameterType',
    'ParameterValidationError',
    'ParameterValue',
    'EffectiveBounds',
    'ParameterConfig',
    'SearchMode',
    'SearchSpace',
    'Transform',
    'apply_transform',
    'clamp_bounds',
    'reverse_transform',
    'transform_bounds',
    'validate_transform_bounds',
]
