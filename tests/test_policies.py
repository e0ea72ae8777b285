"""Tests for scoring policies."""

import math

import pytest

from bidline.domain.policies import DefaultScoringPolicy


class TestWeightClamping:
    """Tests for DefaultScoringPolicy.clamp_weight."""

    def test_in_range_unchanged(self):
        policy = DefaultScoringPolicy()
        assert policy.clamp_weight(2.5) == 2.5

    def test_above_maximum(self):
        """Weights above 5 are capped at 5."""
        policy = DefaultScoringPolicy()
        assert policy.clamp_weight(100) == 5.0

    def test_negative(self):
        """Negative weights become 0."""
        policy = DefaultScoringPolicy()
        assert policy.clamp_weight(-3) == 0.0

    @pytest.mark.parametrize("weight", [math.nan, math.inf, -math.inf, None, "heavy"])
    def test_unusable_weights(self, weight):
        """Non-finite or non-numeric weights are treated as 0."""
        policy = DefaultScoringPolicy()
        assert policy.clamp_weight(weight) == 0.0

    def test_custom_range(self):
        policy = DefaultScoringPolicy(max_weight=10.0)
        assert policy.clamp_weight(7) == 7.0


class TestBlockPreference:
    """Tests for DefaultScoringPolicy.block_preference_score."""

    def test_exact_match(self):
        policy = DefaultScoringPolicy()
        assert policy.block_preference_score(3, 3, 5) == 100.0

    def test_linear_falloff_5day(self):
        """Each 5-day block away from the target costs a sixth."""
        policy = DefaultScoringPolicy()
        assert policy.block_preference_score(3, 0, 5) == pytest.approx(50.0)

    def test_linear_falloff_4day(self):
        """Each 4-day block away from the target costs an eighth."""
        policy = DefaultScoringPolicy()
        assert policy.block_preference_score(2, 4, 4) == pytest.approx(75.0)

    def test_floor_at_zero(self):
        policy = DefaultScoringPolicy()
        assert policy.block_preference_score(20, 0, 5) == 0.0

    def test_unsupported_length(self):
        policy = DefaultScoringPolicy()
        with pytest.raises(ValueError):
            policy.block_preference_score(1, 0, 3)


class TestExposure:
    """Tests for DefaultScoringPolicy.exposure_score."""

    def test_no_exposure(self):
        policy = DefaultScoringPolicy()
        assert policy.exposure_score(0, 8) == 100.0

    def test_full_exposure(self):
        policy = DefaultScoringPolicy()
        assert policy.exposure_score(8, 8) == 0.0

    def test_partial(self):
        policy = DefaultScoringPolicy()
        assert policy.exposure_score(2, 8) == pytest.approx(75.0)

    def test_no_weekends(self):
        """A period without weekends has nothing to penalize."""
        policy = DefaultScoringPolicy()
        assert policy.exposure_score(0, 0) == 100.0

    def test_ratio_capped(self):
        policy = DefaultScoringPolicy()
        assert policy.exposure_score(12, 8) == 0.0


class TestFallbacks:
    """Tests for the fallback scores."""

    def test_defaults(self):
        policy = DefaultScoringPolicy()
        assert policy.neutral_score() == 0.0
        assert policy.empty_schedule_score() == 0.0

    def test_custom(self):
        policy = DefaultScoringPolicy(neutral=50.0, empty_schedule=10.0)
        assert policy.neutral_score() == 50.0
        assert policy.empty_schedule_score() == 10.0
