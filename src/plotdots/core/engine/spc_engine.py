"""SPC engine orchestrating the "plot the dots" pipeline.

This module provides the SPCEngine class, which runs one category series
through partitioning, limit calculation and classification, and the spc()
entry point, which validates input, fans categories out (optionally on a
thread pool) and assembles the decorated output table.
"""

from collections.abc import Hashable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import structlog

from plotdots.core.config import get_settings
from plotdots.core.engine.control_limits import (
    ControlLimitCalculator,
    target_values,
    trajectory_values,
)
from plotdots.core.engine.partitioner import (
    BaselineSegment,
    Observation,
    ingest_series,
    partition_series,
)
from plotdots.core.engine.variation_rules import (
    ClassificationResult,
    VariationClassifier,
    special_cause_markers,
)
from plotdots.core.exceptions import ConfigurationError
from plotdots.schemas.chart import ChartOptions
from plotdots.schemas.options import SpcOptions, load_options, localize_options
from plotdots.utils.statistics import ControlLimits

logger = structlog.get_logger(__name__)

# Output columns added to the input table, in order
OUTPUT_COLUMNS = [
    "x",
    "y",
    "category",
    "segment",
    "mean",
    "upl",
    "lpl",
    "target",
    "trajectory",
    "specialCauseImprovement",
    "specialCauseConcern",
]
DIAGNOSTIC_COLUMNS = ["runsAbove", "runsBelow", "flag"]


@dataclass
class SeriesResult:
    """Result of processing one category series.

    Attributes:
        category: Category of the series (None when ungrouped)
        segments: Baseline segments, with observations carrying segment ids
        limits: ControlLimits of each segment, by segment id
        classifications: Classification of every observation, in date order
        target: Target value of every observation
        trajectory: Trajectory value of every observation
    """

    category: Hashable | None
    segments: list[BaselineSegment]
    limits: list[ControlLimits]
    classifications: list[ClassificationResult]
    target: np.ndarray
    trajectory: np.ndarray

    @property
    def special_cause_count(self) -> int:
        return sum(1 for c in self.classifications if c.flag.is_special_cause)


@dataclass
class SpcResult:
    """Decorated table plus the validated options that produced it.

    Attributes:
        data: Input rows with the SPC columns added, ordered by category
            (first appearance) then date
        options: Validated options
        limits: ControlLimits per (category, segment id)
    """

    data: pd.DataFrame
    options: SpcOptions
    limits: dict[tuple[Hashable | None, int], ControlLimits] = field(default_factory=dict)

    @property
    def chart(self) -> ChartOptions:
        """Cosmetic options for a renderer."""
        return self.options.chart


class SPCEngine:
    """Runs category series through the SPC pipeline.

    Pipeline per series:
    1. Partition into baseline segments at rebase dates
    2. Calculate mean and natural process limits per segment
    3. Classify each segment's points with the outlier and shift rules
    4. Compute target and trajectory reference lines

    The engine holds no per-series state, so one instance can process
    several series concurrently.

    Args:
        options: Validated options
    """

    def __init__(self, options: SpcOptions):
        self._options = options
        self._calculator = ControlLimitCalculator(domain_floor=options.domain_floor)
        self._classifier = VariationClassifier(options.run_length_threshold)

    @property
    def options(self) -> SpcOptions:
        return self._options

    def process_series(self, series: Sequence[Observation]) -> SeriesResult:
        """Process one category's observations.

        Args:
            series: Observations of a single category in ascending date order

        Returns:
            SeriesResult for the category
        """
        segments = partition_series(series, self._options.rebase_dates)

        limits = []
        classifications = []
        for segment in segments:
            segment_limits = self._calculator.calculate(segment)
            limits.append(segment_limits)
            classifications.extend(
                self._classifier.classify(segment.values, segment_limits)
            )

        dates = [o.date for o in series]
        return SeriesResult(
            category=series[0].category if series else None,
            segments=segments,
            limits=limits,
            classifications=classifications,
            target=target_values(dates, self._options.target),
            trajectory=trajectory_values(segments, self._options.trajectory),
        )


def assemble(
    data: pd.DataFrame,
    results: Sequence[SeriesResult],
    options: SpcOptions,
) -> pd.DataFrame:
    """Merge per-category results into one decorated table.

    Rows follow the order of results (one block per category, dates
    ascending within each). Input columns pass through unchanged, keeping
    their original index labels.

    Args:
        data: The original input table
        results: Series results in output order
        options: Validated options

    Returns:
        Input rows with the SPC output columns added
    """
    rows, x, y, categories, segment_ids = [], [], [], [], []
    means, upls, lpls, targets, trajectories, classifications = [], [], [], [], [], []

    for result in results:
        for segment, limits in zip(result.segments, result.limits):
            for obs in segment.observations:
                rows.append(obs.row)
                x.append(obs.date)
                y.append(obs.value)
                categories.append(obs.category)
                segment_ids.append(segment.segment_id)
                means.append(limits.mean)
                upls.append(limits.upl)
                lpls.append(limits.lpl)
        targets.extend(result.target)
        trajectories.extend(result.trajectory)
        classifications.extend(result.classifications)

    flags = [c.flag for c in classifications]
    improvement, concern = special_cause_markers(y, flags, options.improvement_direction)

    out = data.iloc[rows].copy()
    out["x"] = pd.DatetimeIndex(x)
    out["y"] = np.asarray(y, dtype=np.float64)
    out["category"] = pd.Series(categories, dtype=object).to_numpy()
    out["segment"] = np.asarray(segment_ids, dtype=np.int64)
    out["mean"] = np.asarray(means, dtype=np.float64)
    out["upl"] = np.asarray(upls, dtype=np.float64)
    out["lpl"] = np.asarray(lpls, dtype=np.float64)
    out["target"] = np.asarray(targets, dtype=np.float64)
    out["trajectory"] = np.asarray(trajectories, dtype=np.float64)
    out["specialCauseImprovement"] = np.asarray(improvement, dtype=np.float64)
    out["specialCauseConcern"] = np.asarray(concern, dtype=np.float64)

    if options.include_diagnostics:
        out["runsAbove"] = np.asarray([c.runs_above for c in classifications], dtype=np.int64)
        out["runsBelow"] = np.asarray([c.runs_below for c in classifications], dtype=np.int64)
        out["flag"] = pd.Series([f.value for f in flags], dtype=object).to_numpy()

    return out


def spc(
    data: pd.DataFrame,
    value_field: str,
    date_field: str,
    category_field: str | None = None,
    options: SpcOptions | Mapping | None = None,
    max_workers: int | None = None,
) -> SpcResult:
    """Apply "plot the dots" SPC logic to a table.

    Each category is an independent series: it is split into baseline
    segments at rebase dates, every segment gets a mean and natural process
    limits, and every point is classified as common-cause or special-cause
    variation.

    Args:
        data: Table with a value column, a date column and optionally a
            category column; other columns pass through
        value_field: Name of the value column
        date_field: Name of the date column
        category_field: Optional name of the category column
        options: SpcOptions or a mapping of option keys (see SpcOptions)
        max_workers: Threads used to process categories; defaults to the
            PLOTDOTS_MAX_WORKERS setting

    Returns:
        SpcResult holding the decorated table

    Raises:
        ConfigurationError: Listing every problem with the options or input,
            before any computation

    Example:
        >>> result = spc(df, "admissions", "month", options={"improvementDirection": "decrease"})
        >>> result.data[["x", "y", "mean", "upl", "lpl"]]
    """
    violations = []
    spc_options = None
    try:
        spc_options = load_options(options)
    except ConfigurationError as e:
        violations.extend(e.violations)

    series = {}
    try:
        series = ingest_series(
            data,
            value_field,
            date_field,
            category_field,
            frequency=spc_options.frequency if spc_options is not None else None,
        )
    except ConfigurationError as e:
        violations.extend(e.violations)

    if spc_options is not None and series:
        # Every observation of the table shares the date column's time zone
        first = next(iter(series.values()))[0]
        try:
            spc_options = localize_options(spc_options, first.date.tz)
        except ConfigurationError as e:
            violations.extend(e.violations)

    if max_workers is None:
        max_workers = get_settings().max_workers
    if max_workers < 1:
        violations.append(f"max_workers must be at least 1, got {max_workers}")

    if violations:
        raise ConfigurationError(violations)

    logger.info(
        "spc_started",
        rows=len(data),
        categories=len(series),
        rebase_dates=len(spc_options.rebase_dates),
        max_workers=max_workers,
    )

    engine = SPCEngine(spc_options)
    if max_workers > 1 and len(series) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = {
                category: pool.submit(engine.process_series, observations)
                for category, observations in series.items()
            }
            # Keyed by category in input order, so completion order is irrelevant
            results = {category: future.result() for category, future in futures.items()}
    else:
        results = {
            category: engine.process_series(observations)
            for category, observations in series.items()
        }

    table = assemble(data, list(results.values()), spc_options)
    limits = {
        (category, segment_id): segment_limits
        for category, result in results.items()
        for segment_id, segment_limits in enumerate(result.limits)
    }

    logger.info(
        "spc_completed",
        rows=len(table),
        segments=len(limits),
        special_cause_points=sum(r.special_cause_count for r in results.values()),
    )
    return SpcResult(data=table, options=spc_options, limits=limits)
