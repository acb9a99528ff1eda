"""plotdots - "plot the dots" statistical process control for pandas tables."""

from plotdots.core.engine import (
    ControlLimitCalculator,
    SPCEngine,
    SpcResult,
    VariationClassifier,
    VariationFlag,
    spc,
)
from plotdots.core.exceptions import ConfigurationError
from plotdots.core.logging import configure_logging
from plotdots.schemas import (
    ChartOptions,
    ImprovementDirection,
    SpcOptions,
    SpecialCause,
    TrajectoryOptions,
)
from plotdots.utils.statistics import ControlLimits

__version__ = "0.1.0"

__all__ = [
    "spc",
    "SpcResult",
    "SPCEngine",
    "ControlLimitCalculator",
    "VariationClassifier",
    "VariationFlag",
    "ControlLimits",
    "ConfigurationError",
    "SpcOptions",
    "ChartOptions",
    "TrajectoryOptions",
    "ImprovementDirection",
    "SpecialCause",
    "configure_logging",
]
