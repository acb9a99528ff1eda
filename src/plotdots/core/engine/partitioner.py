"""Series partitioning for SPC baselines.

Turns an input table into one ordered series of observations per category
and splits each series into baseline segments at rebase dates. Each segment
later receives its own mean and natural process limits.
"""

import bisect
from collections.abc import Hashable, Sequence
from dataclasses import dataclass, replace

import pandas as pd
import structlog

from plotdots.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# Row positions quoted in validation messages before truncating
_MAX_ROWS_REPORTED = 5


@dataclass(frozen=True)
class Observation:
    """One measurement of a series.

    Attributes:
        date: Reporting period of the measurement
        value: Measured value
        category: Group the series belongs to; None when the input is ungrouped
        segment_id: Baseline segment index within the category (None until partitioned)
        row: Position of the originating row in the input table
    """
    date: pd.Timestamp
    value: float
    category: Hashable | None = None
    segment_id: int | None = None
    row: int = -1


@dataclass(frozen=True)
class BaselineSegment:
    """Contiguous run of observations sharing one mean and set of limits.

    Attributes:
        category: Category of every observation in the segment
        segment_id: Index of the segment within its category (0-based)
        offset: Position of the first observation within the category series
        observations: Observations of the segment in date order
    """
    category: Hashable | None
    segment_id: int
    offset: int
    observations: tuple[Observation, ...]

    def __len__(self) -> int:
        return len(self.observations)

    @property
    def values(self) -> list[float]:
        return [o.value for o in self.observations]

    @property
    def start(self) -> pd.Timestamp:
        return self.observations[0].date

    @property
    def end(self) -> pd.Timestamp:
        return self.observations[-1].date


def partition_series(
    series: Sequence[Observation],
    rebase_dates: Sequence[pd.Timestamp] = (),
) -> list[BaselineSegment]:
    """Split a date-ordered series into baseline segments.

    A rebase date starts a new segment at the first observation on or after
    that date. Rebase dates before the first or after the last observation
    are ignored, as is a second rebase date landing on an observation that
    already starts a segment.

    Args:
        series: Observations of one category, strictly increasing by date
        rebase_dates: Strictly increasing dates at which new baselines start

    Returns:
        Segments covering the whole series in order, with no gaps or overlaps.
        Observations are copied with their segment_id set.

    Example:
        >>> segments = partition_series(obs, [pd.Timestamp("2024-06-01")])
        >>> [len(s) for s in segments]
        [5, 7]
    """
    if not series:
        return []

    dates = [o.date for o in series]
    boundaries = [0]
    for rebase in rebase_dates:
        position = bisect.bisect_left(dates, rebase)
        if 0 < position < len(series) and position != boundaries[-1]:
            boundaries.append(position)
    boundaries.append(len(series))

    segments = []
    for segment_id, (start, stop) in enumerate(zip(boundaries, boundaries[1:])):
        segments.append(BaselineSegment(
            category=series[0].category,
            segment_id=segment_id,
            offset=start,
            observations=tuple(
                replace(o, segment_id=segment_id) for o in series[start:stop]
            ),
        ))
    return segments


def _calendar_month_step(index: pd.DatetimeIndex) -> int | None:
    """Whole-month step of a series anchored on its first date, if it has one.

    Covers monthly, quarterly and yearly reporting on any day of the month
    (e.g. the 15th), which pandas cannot name as a frequency. Day-of-month
    overflow is clipped, so a series starting on the 31st steps through
    month ends.
    """
    first = index[0]
    step = (index[1].year - first.year) * 12 + index[1].month - first.month
    if step < 1:
        return None
    expected = pd.DatetimeIndex(
        [first + pd.DateOffset(months=k * step) for k in range(len(index))]
    )
    return step if (expected == index).all() else None


def check_series_dates(
    dates: Sequence[pd.Timestamp],
    frequency: str | None = None,
) -> list[str]:
    """Check a category's dates form a contiguous, evenly stepped series.

    Args:
        dates: Dates of one category, sorted ascending
        frequency: Expected reporting step as a pandas offset alias. When
            None the step is inferred with pandas, falling back to a
            whole-month step from the first date; three or more dates with
            neither are reported as having a gap.

    Returns:
        List of violation messages (empty when the dates are valid)
    """
    index = pd.DatetimeIndex(dates)
    duplicated = index[index.duplicated()].unique()
    if len(duplicated) > 0:
        shown = ", ".join(str(d.date()) for d in duplicated[:_MAX_ROWS_REPORTED])
        return [f"duplicate dates: {shown}"]
    if not index.is_monotonic_increasing:
        return ["dates are not in ascending order"]

    if len(index) < 2:
        return []

    if frequency is not None:
        expected = pd.date_range(index[0], index[-1], freq=frequency)
        violations = []
        off_step = index.difference(expected)
        if len(off_step) > 0:
            shown = ", ".join(str(d) for d in off_step[:_MAX_ROWS_REPORTED])
            violations.append(f"dates not on the {frequency!r} reporting step: {shown}")
        missing = expected.difference(index)
        if len(missing) > 0:
            shown = ", ".join(str(d) for d in missing[:_MAX_ROWS_REPORTED])
            violations.append(f"{len(missing)} missing period(s) in date series: {shown}")
        return violations

    if len(index) < 3:
        return []

    if pd.infer_freq(index) is None and _calendar_month_step(index) is None:
        return [
            "dates are not evenly spaced between "
            f"{index[0]} and {index[-1]}; the series has a gap or an irregular step"
        ]
    return []


def _rows(mask: pd.Series) -> str:
    positions = [i for i, flagged in enumerate(mask) if flagged]
    shown = ", ".join(str(p) for p in positions[:_MAX_ROWS_REPORTED])
    if len(positions) > _MAX_ROWS_REPORTED:
        shown += f", ... ({len(positions)} rows)"
    return shown


def ingest_series(
    data: pd.DataFrame,
    value_field: str,
    date_field: str,
    category_field: str | None = None,
    frequency: str | None = None,
) -> dict[Hashable | None, tuple[Observation, ...]]:
    """Build one date-ordered series per category from an input table.

    Extra columns are ignored here; the assembler passes them through.

    Args:
        data: Input table
        value_field: Column holding the measured values
        date_field: Column holding the reporting dates
        category_field: Optional column splitting the table into
            independent series
        frequency: Optional expected reporting step (pandas offset alias)

    Returns:
        Mapping of category (None when ungrouped) to its observations, in
        order of each category's first appearance in the input

    Raises:
        ConfigurationError: Listing every problem found in the input
    """
    if not isinstance(data, pd.DataFrame):
        raise ConfigurationError(f"data must be a pandas DataFrame, got {type(data).__name__}")

    fields = {"value": value_field, "date": date_field}
    if category_field is not None:
        fields["category"] = category_field
    missing = [
        f"{role} column {name!r} not found in data"
        for role, name in fields.items()
        if name not in data.columns
    ]
    if missing:
        raise ConfigurationError(missing)

    violations = []
    raw_values = data[value_field]
    values = pd.to_numeric(raw_values, errors="coerce")
    if (values.isna() & raw_values.notna()).any():
        violations.append(
            f"value column {value_field!r} has non-numeric entries at rows "
            + _rows(values.isna() & raw_values.notna())
        )
    if raw_values.isna().any():
        violations.append(
            f"value column {value_field!r} has missing values at rows " + _rows(raw_values.isna())
        )

    dates = pd.to_datetime(data[date_field], errors="coerce")
    if dates.isna().any():
        violations.append(
            f"date column {date_field!r} has missing or unparseable dates at rows "
            + _rows(dates.isna())
        )

    if category_field is not None:
        categories = data[category_field]
        if categories.isna().any():
            violations.append(
                f"category column {category_field!r} has missing values at rows "
                + _rows(categories.isna())
            )
    else:
        categories = pd.Series([None] * len(data), index=data.index, dtype=object)

    if violations:
        raise ConfigurationError(violations)

    frame = pd.DataFrame({
        "row": range(len(data)),
        "date": dates.array,
        "value": values.to_numpy(dtype="float64"),
        "category": categories.to_numpy(dtype=object),
    })

    series: dict[Hashable | None, tuple[Observation, ...]] = {}
    for category in pd.unique(frame["category"]):
        if category is None:
            group = frame
        else:
            group = frame[frame["category"] == category]
        group = group.sort_values("date", kind="mergesort")

        problems = check_series_dates(list(group["date"]), frequency)
        if problems:
            prefix = "" if category is None else f"category {category!r}: "
            violations.extend(prefix + p for p in problems)
            continue

        series[category] = tuple(
            Observation(date=d, value=float(v), category=category, row=int(r))
            for r, d, v in zip(group["row"], group["date"], group["value"])
        )

    if violations:
        raise ConfigurationError(violations)

    logger.debug("series_ingested", rows=len(data), categories=len(series))
    return series
