"""Option schemas for plotdots."""

from .chart import ChartOptions
from .options import (
    ImprovementDirection,
    SpcOptions,
    SpecialCause,
    TrajectoryOptions,
    load_options,
    localize_options,
)

__all__ = [
    "ChartOptions",
    "ImprovementDirection",
    "SpcOptions",
    "SpecialCause",
    "TrajectoryOptions",
    "load_options",
    "localize_options",
]
