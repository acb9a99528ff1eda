"""Control limit calculation for baseline segments.

Each baseline segment gets one mean and one pair of natural process limits,
applied to every point in the segment. Limits come from the moving range
method for individuals (n=1):
- mean = mean of individual values
- MR-bar = mean of |x[i] - x[i-1]|
- UPL/LPL = mean +/- 2.660 * MR-bar

Target and trajectory reference lines are computed independently of the
limits, along the whole date axis of a category.
"""

from collections.abc import Sequence

import numpy as np
import pandas as pd
import structlog

from plotdots.core.engine.partitioner import BaselineSegment
from plotdots.schemas.options import TrajectoryOptions
from plotdots.utils.constants import MIN_POINTS_FOR_LIMITS
from plotdots.utils.statistics import (
    ControlLimits,
    calculate_natural_process_limits,
    fit_trajectory,
)

logger = structlog.get_logger(__name__)


class ControlLimitCalculator:
    """Calculates mean and natural process limits per baseline segment.

    Segments too short to form a moving range degrade to undefined (NaN)
    limits instead of raising.

    Args:
        domain_floor: Optional lower bound for the lower process limit

    Example:
        >>> calculator = ControlLimitCalculator(domain_floor=0.0)
        >>> limits = calculator.calculate(segment)
        >>> print(f"UPL: {limits.upl}, LPL: {limits.lpl}")
    """

    def __init__(self, domain_floor: float | None = None):
        self._domain_floor = domain_floor

    @property
    def domain_floor(self) -> float | None:
        return self._domain_floor

    def calculate(self, segment: BaselineSegment) -> ControlLimits:
        """Calculate limits for one baseline segment.

        Args:
            segment: Non-empty baseline segment

        Returns:
            ControlLimits shared by every observation of the segment
        """
        limits = calculate_natural_process_limits(segment.values, self._domain_floor)

        if len(segment) < MIN_POINTS_FOR_LIMITS:
            logger.warning(
                "segment_too_short_for_limits",
                category=segment.category,
                segment_id=segment.segment_id,
                points=len(segment),
                start=str(segment.start),
            )
        else:
            logger.debug(
                "segment_limits_calculated",
                category=segment.category,
                segment_id=segment.segment_id,
                points=len(segment),
                mean=limits.mean,
                upl=limits.upl,
                lpl=limits.lpl,
            )
        return limits


def target_values(
    dates: Sequence[pd.Timestamp],
    target: float | dict[pd.Timestamp, float] | None,
) -> np.ndarray:
    """Per-point target values along a category's date axis.

    A constant applies to every date. A {date: value} mapping is
    forward-filled: each date takes the value of the latest key on or before
    it, and dates before the first key have no target (NaN).

    Args:
        dates: Dates of the series in ascending order
        target: None, a constant, or a mapping sorted by date

    Returns:
        Float array aligned with dates
    """
    n = len(dates)
    if target is None:
        return np.full(n, np.nan)
    if not isinstance(target, dict):
        return np.full(n, float(target))

    keys = pd.DatetimeIndex(list(target.keys()))
    levels = np.asarray(list(target.values()), dtype=np.float64)
    positions = keys.searchsorted(pd.DatetimeIndex(dates), side="right") - 1

    result = np.full(n, np.nan)
    known = positions >= 0
    result[known] = levels[positions[known]]
    return result


def trajectory_values(
    segments: Sequence[BaselineSegment],
    trajectory: TrajectoryOptions,
) -> np.ndarray:
    """Straight-line trajectory extrapolated from an anchor segment.

    The line is fitted by least squares to the anchor segment's values and
    extended from that segment's first date to the end of the series. Dates
    before the anchor segment have no trajectory (NaN).

    The anchor segment is the last segment starting on or before the anchor
    date; without an anchor date (or with one before every segment) it is
    the first segment.

    Args:
        segments: All segments of one category, in order
        trajectory: Trajectory options

    Returns:
        Float array covering every observation of the category
    """
    n = sum(len(s) for s in segments)
    result = np.full(n, np.nan)
    if not trajectory.enabled or not segments:
        return result

    anchor = segments[0]
    if trajectory.anchor is not None:
        for segment in segments:
            if segment.start <= trajectory.anchor:
                anchor = segment

    intercept, slope = fit_trajectory(anchor.values)
    periods = np.arange(n - anchor.offset, dtype=np.float64)
    result[anchor.offset:] = intercept + slope * periods

    logger.debug(
        "trajectory_fitted",
        category=anchor.category,
        anchor_segment=anchor.segment_id,
        intercept=intercept,
        slope=slope,
    )
    return result
