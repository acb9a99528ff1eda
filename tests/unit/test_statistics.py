"""Unit tests for individuals chart constants and statistics.

Tests verify:
- The natural process limit factor matches 3 / d2
- Moving ranges and mean moving range
- Natural process limits, including the domain floor
- Degraded limits for single-point segments
- Least-squares trajectory fitting
"""

import math

import numpy as np
import pytest

from plotdots.utils import (
    INDIVIDUALS,
    NATURAL_PROCESS_LIMIT_FACTOR,
    calculate_natural_process_limits,
    fit_trajectory,
    moving_ranges,
)


class TestConstants:
    """Test individuals chart constants."""

    def test_limit_factor_is_fixed(self):
        assert NATURAL_PROCESS_LIMIT_FACTOR == 2.660

    def test_limit_factor_matches_three_over_d2(self):
        """E2 = 3 / d2 with d2 = 1.128 for span-2 moving ranges."""
        assert INDIVIDUALS.d2 == 1.128
        assert 3 / INDIVIDUALS.d2 == pytest.approx(INDIVIDUALS.E2, abs=0.001)


class TestMovingRanges:
    def test_known_values(self):
        assert moving_ranges([10, 12, 11, 13, 10]).tolist() == [2.0, 1.0, 2.0, 3.0]

    def test_single_value_has_no_moving_range(self):
        assert len(moving_ranges([4.0])) == 0

    def test_ranges_are_absolute(self):
        assert moving_ranges([5, 1, 5]).tolist() == [4.0, 4.0]


class TestNaturalProcessLimits:
    """Test mean and limit calculation for one segment."""

    def test_outlier_example(self):
        """Ten points, nine at 10 and one at 9.

        Expected:
        - mean = 9.9
        - MRs = [0]*7 + [1, 1] -> MR-bar = 2/9 = 0.222
        - UPL = 9.9 + 2.66 * 0.222 = 10.49
        - LPL = 9.9 - 2.66 * 0.222 = 9.31
        """
        limits = calculate_natural_process_limits([10, 10, 10, 10, 10, 10, 10, 10, 9, 10])

        assert limits.mean == pytest.approx(9.9)
        assert limits.mean_moving_range == pytest.approx(2 / 9)
        assert limits.upl == pytest.approx(10.491, abs=0.001)
        assert limits.lpl == pytest.approx(9.309, abs=0.001)
        assert limits.is_defined

    def test_matches_numpy_reference(self):
        values = [100.0, 102.0, 98.0, 101.0, 99.0, 103.0, 97.0, 100.5]
        limits = calculate_natural_process_limits(values)

        arr = np.asarray(values)
        mr_bar = np.mean(np.abs(np.diff(arr)))
        assert limits.mean == pytest.approx(np.mean(arr))
        assert limits.upl == pytest.approx(np.mean(arr) + 2.66 * mr_bar)
        assert limits.lpl == pytest.approx(np.mean(arr) - 2.66 * mr_bar)
        assert limits.sigma == pytest.approx(mr_bar / 1.128)

    def test_limits_bracket_mean(self):
        limits = calculate_natural_process_limits([3.0, 8.0, 1.0, 9.0, 4.0])
        assert limits.lpl <= limits.mean <= limits.upl

    def test_single_value_degrades_to_nan_limits(self):
        limits = calculate_natural_process_limits([42.0])

        assert limits.mean == 42.0
        assert math.isnan(limits.upl)
        assert math.isnan(limits.lpl)
        assert math.isnan(limits.mean_moving_range)
        assert not limits.is_defined

    def test_empty_segment_raises(self):
        with pytest.raises(ValueError, match="empty segment"):
            calculate_natural_process_limits([])

    def test_constant_values_have_exact_mean(self):
        """A flat segment's mean equals its values exactly."""
        limits = calculate_natural_process_limits([0.1] * 10)

        assert limits.mean == 0.1
        assert limits.upl == 0.1
        assert limits.lpl == 0.1


class TestDomainFloor:
    def test_floor_raises_lower_limit(self):
        # mean 2, MR-bar 2 -> raw LPL = 2 - 5.32 < 0
        limits = calculate_natural_process_limits([1, 3, 1, 3], domain_floor=0.0)

        assert limits.lpl == 0.0
        assert limits.upl == pytest.approx(2 + 2.66 * 2)

    def test_floor_below_raw_limit_has_no_effect(self):
        without = calculate_natural_process_limits([50, 52, 51, 53])
        with_floor = calculate_natural_process_limits([50, 52, 51, 53], domain_floor=0.0)

        assert with_floor.lpl == pytest.approx(without.lpl)

    def test_floor_above_mean_caps_at_mean(self):
        limits = calculate_natural_process_limits([1, 3, 1, 3], domain_floor=10.0)

        assert limits.lpl == limits.mean

    def test_floor_ignored_for_single_value(self):
        limits = calculate_natural_process_limits([5.0], domain_floor=0.0)
        assert math.isnan(limits.lpl)


class TestFitTrajectory:
    def test_linear_values_fit_exactly(self):
        intercept, slope = fit_trajectory([1.0, 2.0, 3.0, 4.0])

        assert intercept == pytest.approx(1.0)
        assert slope == pytest.approx(1.0)

    def test_single_value_is_flat(self):
        assert fit_trajectory([7.0]) == (7.0, 0.0)

    def test_decreasing_trend(self):
        intercept, slope = fit_trajectory([10.0, 8.0, 6.0])

        assert intercept == pytest.approx(10.0)
        assert slope == pytest.approx(-2.0)

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            fit_trajectory([])
