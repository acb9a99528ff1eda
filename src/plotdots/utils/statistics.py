"""Statistical functions for individuals (XmR) process behaviour charts.

This module provides functions for:
- Moving range calculation (span 2)
- Natural process limit calculation from the mean moving range
- Least-squares trajectory lines
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .constants import INDIVIDUALS, MIN_POINTS_FOR_LIMITS, NATURAL_PROCESS_LIMIT_FACTOR


@dataclass(frozen=True)
class ControlLimits:
    """Natural process limits for one baseline segment.

    Limits are NaN when the segment is too short to form a moving range.

    Attributes:
        mean: Center line (average) of the segment
        mean_moving_range: Average absolute difference between consecutive values
        upl: Upper process limit (mean + 2.660 * mean_moving_range)
        lpl: Lower process limit (mean - 2.660 * mean_moving_range, floored if configured)
        sigma: Estimated process standard deviation (mean_moving_range / d2)
    """
    mean: float
    mean_moving_range: float
    upl: float
    lpl: float
    sigma: float

    @property
    def is_defined(self) -> bool:
        """True if upper and lower limits were computed."""
        return not (math.isnan(self.upl) or math.isnan(self.lpl))


def moving_ranges(values: Sequence[float]) -> np.ndarray:
    """Absolute differences between consecutive values.

    Args:
        values: Individual measurements in time order

    Returns:
        Array of length len(values) - 1 (empty for fewer than 2 values)

    Examples:
        >>> moving_ranges([10, 12, 11, 13, 10]).tolist()
        [2.0, 1.0, 2.0, 3.0]
    """
    arr = np.asarray(values, dtype=np.float64)
    return np.abs(np.diff(arr))


def calculate_natural_process_limits(
    values: Sequence[float],
    domain_floor: float | None = None,
) -> ControlLimits:
    """Calculate the mean and natural process limits of a baseline segment.

    Uses the moving range method with span=2:
    - mean = mean of individual values
    - MR-bar = mean of moving ranges
    - UPL = mean + 2.660 * MR-bar
    - LPL = mean - 2.660 * MR-bar, raised to domain_floor when given

    A floor above the mean would put LPL above the center line, so LPL is
    capped at the mean.

    Args:
        values: Individual measurements of one segment, in time order
        domain_floor: Optional lower bound for LPL (e.g. 0 for counts)

    Returns:
        ControlLimits; upl/lpl/mean_moving_range/sigma are NaN for a
        single value

    Raises:
        ValueError: If values is empty

    Examples:
        >>> limits = calculate_natural_process_limits([10, 12, 11, 13, 10])
        >>> round(limits.upl, 2)
        16.52
    """
    if len(values) == 0:
        raise ValueError("Cannot calculate limits for an empty segment")

    arr = np.asarray(values, dtype=np.float64)
    # Exact for a flat segment so no point compares off the center line
    mean = float(arr[0]) if np.ptp(arr) == 0 else float(np.mean(arr))

    if len(values) < MIN_POINTS_FOR_LIMITS:
        nan = float("nan")
        return ControlLimits(mean=mean, mean_moving_range=nan, upl=nan, lpl=nan, sigma=nan)

    mr_bar = float(np.mean(moving_ranges(values)))
    spread = NATURAL_PROCESS_LIMIT_FACTOR * mr_bar

    upl = mean + spread
    lpl = mean - spread
    if domain_floor is not None:
        lpl = min(max(lpl, domain_floor), mean)

    return ControlLimits(
        mean=mean,
        mean_moving_range=mr_bar,
        upl=upl,
        lpl=lpl,
        sigma=mr_bar / INDIVIDUALS.d2,
    )


def fit_trajectory(values: Sequence[float]) -> tuple[float, float]:
    """Fit a straight line to values against their period index.

    Args:
        values: Measurements in time order; index 0 is the anchor period

    Returns:
        Tuple of (intercept, slope per period). A single value gives a
        flat line through it.

    Raises:
        ValueError: If values is empty
    """
    if len(values) == 0:
        raise ValueError("Cannot fit a trajectory to an empty segment")

    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 1:
        return float(arr[0]), 0.0

    slope, intercept = np.polyfit(np.arange(len(arr), dtype=np.float64), arr, deg=1)
    return float(intercept), float(slope)
