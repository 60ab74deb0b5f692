"""
Tests for search space overrides, clamping and transforms.
"""

import math

import pytest

from evotune.optimization.search_space.parameter import (
    ContinuousRange,
    IntegerRange,
    ParameterSpace,
    ParameterValidationError,
)
from evotune.optimization.search_space.space import (
    ParameterConfig,
    SearchMode,
    SearchSpace,
    Transform,
    apply_transform,
    clamp_bounds,
    reverse_transform,
    transform_bounds,
)


@pytest.fixture
def space():
    space = ParameterSpace()
    space.add_continuous("rate", 0.001, 1.0, default=0.1)
    space.add_integer("population_size", 5, 200, default=50, required=True)
    space.add_boolean("elitism", default=True)
    space.add_categorical("selection", ["tournament", "roulette", "rank"], default="tournament")
    return space


class TestBuilding:
    """Tests for recording overrides."""

    def test_fix_defers_validation(self, space):
        """Fixed values are only checked by validate()."""
        search = SearchSpace()
        search.fix("population_size", 1000)
        assert search.get("population_size").mode == SearchMode.FIXED
        with pytest.raises(ParameterValidationError, match="outside bounds"):
            search.validate(space)

    def test_fixed_type_checked(self, space):
        search = SearchSpace()
        search.fix("population_size", 50.0)
        with pytest.raises(ParameterValidationError, match="mismatched type"):
            search.validate(space)

    def test_transform_domain_checked_immediately(self):
        search = SearchSpace()
        with pytest.raises(ParameterValidationError, match="positive"):
            search.optimize("rate", ContinuousRange(lower=0.0, upper=1.0), Transform.LOG)
        with pytest.raises(ParameterValidationError, match="non-negative"):
            search.optimize("rate", ContinuousRange(lower=-1.0, upper=1.0), Transform.SQRT)
        assert search.empty

    def test_transform_requires_continuous_bounds(self):
        with pytest.raises(ParameterValidationError):
            SearchSpace().optimize("population_size", IntegerRange(lower=5, upper=10), Transform.LOG)

    def test_empty_choices_rejected(self):
        with pytest.raises(ParameterValidationError, match="cannot be empty"):
            SearchSpace().optimize_choices("selection", [])

    def test_fixed_config_requires_value(self):
        with pytest.raises(ValueError):
            ParameterConfig(mode=SearchMode.FIXED)

    def test_set_and_has(self):
        search = SearchSpace()
        search.set("rate", ParameterConfig(continuous_bounds=ContinuousRange(lower=0.01, upper=0.5)))
        assert search.has("rate")
        assert not search.has("elitism")
        assert len(search) == 1
        assert set(search.configs) == {"rate"}


class TestValidate:
    """Tests for SearchSpace.validate."""

    def test_unknown_parameter(self, space):
        search = SearchSpace()
        search.exclude("mutation")
        with pytest.raises(ParameterValidationError, match="unknown parameter"):
            search.validate(space)

    def test_bounds_kind_must_match(self, space):
        search = SearchSpace()
        search.optimize("population_size", ContinuousRange(lower=5.0, upper=10.0))
        with pytest.raises(ParameterValidationError, match="continuous bounds"):
            search.validate(space)

        search = SearchSpace()
        search.optimize("rate", IntegerRange(lower=0, upper=1))
        with pytest.raises(ParameterValidationError, match="integer bounds"):
            search.validate(space)

    def test_choices_only_on_discrete_parameters(self, space):
        search = SearchSpace()
        search.optimize_choices("elitism", [True])
        with pytest.raises(ParameterValidationError, match="discrete choices"):
            search.validate(space)

    def test_each_choice_validated(self, space):
        search = SearchSpace()
        search.optimize_choices("selection", ["tournament", "random"])
        with pytest.raises(ParameterValidationError, match="invalid choice"):
            search.validate(space)

    def test_excluding_required_without_default(self):
        space = ParameterSpace().add_integer("population_size", 5, 200, required=True)
        search = SearchSpace()
        search.exclude("population_size")
        with pytest.raises(ParameterValidationError, match="cannot exclude"):
            search.validate(space)

    def test_valid_space_passes(self, space):
        search = SearchSpace()
        search.fix("population_size", 50)
        search.exclude("elitism")
        search.optimize("rate", ContinuousRange(lower=0.01, upper=0.5), Transform.LOG)
        search.optimize_choices("selection", ["rank", "tournament"])
        search.validate(space)


class TestClamp:
    """Tests for SearchSpace.validate_and_clamp and clamp_bounds."""

    def test_narrows_never_widens(self, space):
        search = SearchSpace()
        search.optimize("rate", ContinuousRange(lower=0.0001, upper=0.5))
        search.optimize("population_size", IntegerRange(lower=1, upper=500))
        search.validate_and_clamp(space)

        assert search.get("rate").continuous_bounds == ContinuousRange(lower=0.001, upper=0.5)
        assert search.get("population_size").integer_bounds == IntegerRange(lower=5, upper=200)

    def test_inside_bounds_untouched(self, space):
        search = SearchSpace()
        search.optimize("population_size", IntegerRange(lower=10, upper=20))
        search.validate_and_clamp(space)
        assert search.get("population_size").integer_bounds == IntegerRange(lower=10, upper=20)

    def test_empty_integer_intersection(self, space):
        search = SearchSpace()
        search.optimize("population_size", IntegerRange(lower=300, upper=400))
        with pytest.raises(ParameterValidationError, match="do not overlap"):
            search.validate_and_clamp(space)

    def test_empty_continuous_intersection(self, space):
        search = SearchSpace()
        search.optimize("rate", ContinuousRange(lower=2.0, upper=3.0))
        with pytest.raises(ParameterValidationError, match="do not overlap"):
            search.validate_and_clamp(space)

    def test_transform_revalidated_after_clamp(self):
        space = ParameterSpace().add_continuous("shift", -1.0, 1.0)
        search = SearchSpace()
        search.optimize("shift", ContinuousRange(lower=0.5, upper=2.0), Transform.LOG)
        search.validate_and_clamp(space)
        assert search.get("shift").continuous_bounds == ContinuousRange(lower=0.5, upper=1.0)

    def test_clamp_bounds_keeps_kind(self):
        clamped = clamp_bounds(IntegerRange(lower=0, upper=8), IntegerRange(lower=2, upper=5))
        assert isinstance(clamped, IntegerRange)
        assert (clamped.lower, clamped.upper) == (2, 5)


class TestEffectiveBounds:
    """Tests for get_effective_bounds and get_optimization_dimension."""

    def test_defaults_to_declared_ranges(self, space):
        bounds = SearchSpace().get_effective_bounds(space)
        assert [b.name for b in bounds] == ["rate", "population_size", "elitism", "selection"]
        assert all(b.mode == SearchMode.OPTIMIZE for b in bounds)
        assert bounds[0].continuous_bounds == ContinuousRange(lower=0.001, upper=1.0)
        assert bounds[1].integer_bounds == IntegerRange(lower=5, upper=200)
        assert bounds[3].choices == ["tournament", "roulette", "rank"]
        assert not bounds[3].has_custom_choices

    def test_overrides_resolved(self, space):
        search = SearchSpace()
        search.fix("population_size", 40)
        search.exclude("elitism")
        search.optimize("rate", ContinuousRange(lower=0.01, upper=0.1), Transform.LOG)
        search.optimize_choices("selection", ["rank"])

        rate, population, elitism, selection = search.get_effective_bounds(space)
        assert rate.transform == Transform.LOG
        assert rate.continuous_bounds == ContinuousRange(lower=0.01, upper=0.1)
        assert population.mode == SearchMode.FIXED
        assert population.fixed_value == 40
        assert elitism.mode == SearchMode.EXCLUDE
        assert selection.choices == ["rank"]
        assert selection.has_custom_choices
        assert selection.discrete_choice_count == 1

    def test_optimization_dimension(self, space):
        search = SearchSpace()
        assert search.get_optimization_dimension(space) == 4
        search.fix("population_size", 40)
        search.exclude("elitism")
        assert search.get_optimization_dimension(space) == 2


class TestTransforms:
    """Tests for the module-level transform functions."""

    @pytest.mark.parametrize("transform", list(Transform))
    @pytest.mark.parametrize("value", [0.001, 0.5, 1.0, 7.25, 1000.0])
    def test_round_trip(self, transform, value):
        """Decoding an encoded value gives the value back."""
        assert apply_transform(reverse_transform(value, transform), transform) == pytest.approx(value)

    @pytest.mark.parametrize("transform", list(Transform))
    def test_bounds_round_trip(self, transform):
        bounds = ContinuousRange(lower=0.01, upper=100.0)
        coded = transform_bounds(bounds, transform)
        assert apply_transform(coded.lower, transform) == pytest.approx(bounds.lower)
        assert apply_transform(coded.upper, transform) == pytest.approx(bounds.upper)

    def test_encodings(self):
        assert reverse_transform(100.0, Transform.LOG) == pytest.approx(2.0)
        assert reverse_transform(8.0, Transform.LOG2) == pytest.approx(3.0)
        assert reverse_transform(9.0, Transform.SQRT) == pytest.approx(3.0)
        assert apply_transform(-3.0, Transform.LOG) == pytest.approx(0.001)
        assert apply_transform(-3.0, Transform.NONE) == -3.0

    def test_transform_bounds_validates_domain(self):
        with pytest.raises(ParameterValidationError):
            transform_bounds(ContinuousRange(lower=0.0, upper=1.0), Transform.LOG2)
        with pytest.raises(ParameterValidationError):
            transform_bounds(ContinuousRange(lower=-0.5, upper=1.0), Transform.SQRT)
        coded = transform_bounds(ContinuousRange(lower=0.0, upper=4.0), Transform.SQRT)
        assert (coded.lower, coded.upper) == (0.0, 2.0)

    def test_log_bounds_are_finite(self):
        coded = transform_bounds(ContinuousRange(lower=1e-6, upper=1.0), Transform.LOG)
        assert math.isfinite(coded.lower)
        assert coded.upper == pytest.approx(0.0)
