"""SPC Engine - "plot the dots" statistical process control calculations."""

from .control_limits import ControlLimitCalculator, target_values, trajectory_values
from .partitioner import (
    BaselineSegment,
    Observation,
    check_series_dates,
    ingest_series,
    partition_series,
)
from .spc_engine import SeriesResult, SpcResult, SPCEngine, assemble, spc
from .variation_rules import (
    ClassificationResult,
    OutlierRule,
    ShiftRule,
    VariationClassifier,
    VariationFlag,
    interpret,
    special_cause_markers,
)

__all__ = [
    # SPC Engine
    "SPCEngine",
    "SeriesResult",
    "SpcResult",
    "assemble",
    "spc",
    # Partitioning
    "Observation",
    "BaselineSegment",
    "partition_series",
    "check_series_dates",
    "ingest_series",
    # Control Limits
    "ControlLimitCalculator",
    "target_values",
    "trajectory_values",
    # Variation Rules
    "VariationFlag",
    "ClassificationResult",
    "OutlierRule",
    "ShiftRule",
    "VariationClassifier",
    "interpret",
    "special_cause_markers",
]
