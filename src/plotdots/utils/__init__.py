"""Utilities for plotdots statistical process control calculations."""

from .constants import (
    DEFAULT_RUN_LENGTH,
    INDIVIDUALS,
    MIN_POINTS_FOR_LIMITS,
    NATURAL_PROCESS_LIMIT_FACTOR,
    IndividualsConstants,
)

from .statistics import (
    ControlLimits,
    calculate_natural_process_limits,
    fit_trajectory,
    moving_ranges,
)

__all__ = [
    # Constants
    "IndividualsConstants",
    "INDIVIDUALS",
    "NATURAL_PROCESS_LIMIT_FACTOR",
    "DEFAULT_RUN_LENGTH",
    "MIN_POINTS_FOR_LIMITS",
    # Data classes
    "ControlLimits",
    # Calculations
    "moving_ranges",
    "calculate_natural_process_limits",
    "fit_trajectory",
]
