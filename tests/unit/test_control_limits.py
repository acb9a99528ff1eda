"""Unit tests for the control limit calculator and reference lines.

Tests verify:
- Per-segment limits from the calculator
- Degraded limits (and a warning) for single-point segments
- Target forward-filling
- Trajectory fitting and extrapolation from the anchor segment
"""

import math

import numpy as np
import pandas as pd
import pytest
from structlog.testing import capture_logs

from plotdots.core.engine.control_limits import (
    ControlLimitCalculator,
    target_values,
    trajectory_values,
)
from plotdots.core.engine.partitioner import Observation, partition_series
from plotdots.schemas.options import TrajectoryOptions


def _series(values, start: str = "2024-01-01") -> list[Observation]:
    dates = pd.date_range(start, periods=len(values), freq="MS")
    return [
        Observation(date=d, value=float(v), row=i)
        for i, (d, v) in enumerate(zip(dates, values))
    ]


def _segments(values, rebase_dates=()):
    return partition_series(_series(values), [pd.Timestamp(d) for d in rebase_dates])


class TestControlLimitCalculator:
    def test_calculates_segment_limits(self):
        [segment] = _segments([10.0, 12.0, 11.0, 13.0, 10.0])
        limits = ControlLimitCalculator().calculate(segment)

        assert limits.mean == pytest.approx(11.2)
        assert limits.mean_moving_range == pytest.approx(2.0)
        assert limits.upl == pytest.approx(16.52)
        assert limits.lpl == pytest.approx(5.88)

    def test_segments_are_independent(self):
        first, second = _segments([1, 2, 1, 2, 50, 60, 50, 60], ["2024-05-01"])
        calculator = ControlLimitCalculator()

        assert calculator.calculate(first).mean == pytest.approx(1.5)
        assert calculator.calculate(second).mean == pytest.approx(55.0)

    def test_domain_floor_applied(self):
        [segment] = _segments([1, 3, 1, 3])
        limits = ControlLimitCalculator(domain_floor=0.0).calculate(segment)
        assert limits.lpl == 0.0

    def test_single_point_segment_degrades_and_warns(self):
        _, short = _segments([1, 2, 3, 4, 9], ["2024-05-01"])

        with capture_logs() as logs:
            limits = ControlLimitCalculator().calculate(short)

        assert limits.mean == 9.0
        assert math.isnan(limits.upl) and math.isnan(limits.lpl)
        assert any(
            log["event"] == "segment_too_short_for_limits" and log["log_level"] == "warning"
            for log in logs
        )


class TestTargetValues:
    DATES = list(pd.date_range("2024-01-01", periods=8, freq="MS"))

    def test_no_target(self):
        assert np.isnan(target_values(self.DATES, None)).all()

    def test_constant_target(self):
        assert target_values(self.DATES, 95.0).tolist() == [95.0] * 8

    def test_mapping_is_forward_filled(self):
        target = {pd.Timestamp("2024-03-01"): 5.0, pd.Timestamp("2024-06-01"): 7.0}
        result = target_values(self.DATES, target)

        assert np.isnan(result[:2]).all()
        assert result[2:].tolist() == [5.0, 5.0, 5.0, 7.0, 7.0, 7.0]

    def test_mapping_key_between_dates(self):
        target = {pd.Timestamp("2024-02-15"): 3.0}
        result = target_values(self.DATES, target)

        assert np.isnan(result[:2]).all()
        assert result[2] == 3.0


class TestTrajectoryValues:
    def test_disabled_gives_nan(self):
        result = trajectory_values(_segments([1, 2, 3]), TrajectoryOptions())
        assert np.isnan(result).all()

    def test_line_fitted_to_whole_series(self):
        result = trajectory_values(_segments([1, 2, 3, 4]), TrajectoryOptions(enabled=True))
        assert result.tolist() == pytest.approx([1.0, 2.0, 3.0, 4.0])

    def test_first_segment_extrapolated_across_rebase(self):
        segments = _segments([1, 2, 3, 4, 10, 10], ["2024-05-01"])
        result = trajectory_values(segments, TrajectoryOptions(enabled=True))

        assert result.tolist() == pytest.approx([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])

    def test_anchor_selects_later_segment(self):
        segments = _segments([1, 2, 3, 4, 10, 12, 14], ["2024-05-01"])
        options = TrajectoryOptions(enabled=True, anchor=pd.Timestamp("2024-06-01"))
        result = trajectory_values(segments, options)

        assert np.isnan(result[:4]).all()
        assert result[4:].tolist() == pytest.approx([10.0, 12.0, 14.0])

    def test_anchor_before_series_uses_first_segment(self):
        segments = _segments([2, 4, 6])
        options = TrajectoryOptions(enabled=True, anchor=pd.Timestamp("2020-01-01"))

        assert trajectory_values(segments, options).tolist() == pytest.approx([2.0, 4.0, 6.0])

    def test_single_point_anchor_segment_is_flat(self):
        segments = _segments([1, 2, 3, 8], ["2024-04-01"])
        options = TrajectoryOptions(enabled=True, anchor=pd.Timestamp("2024-04-01"))
        result = trajectory_values(segments, options)

        assert result[3] == 8.0
