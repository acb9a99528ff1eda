"""Typed configuration for an SPC run.

Options arrive as a loosely shaped mapping (camelCase keys, several keys
accepting more than one shape). They are validated once, here, into an
SpcOptions instance; nothing downstream re-interprets raw option values.
"""

import math
from collections.abc import Mapping
from datetime import date
from enum import Enum, IntEnum
from numbers import Real
from typing import Any

import pandas as pd
from pandas.tseries.frequencies import to_offset
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from typing_extensions import Self

from plotdots.core.exceptions import ConfigurationError
from plotdots.schemas.chart import ChartOptions
from plotdots.utils.constants import DEFAULT_RUN_LENGTH


class ImprovementDirection(IntEnum):
    """Which direction of change counts as an improvement."""
    INCREASE = 1
    DECREASE = -1


class SpecialCause(str, Enum):
    """Interpretation of a special-cause signal under an improvement direction."""
    IMPROVEMENT = "improvement"
    CONCERN = "concern"


def to_timestamp(value: Any) -> pd.Timestamp:
    """Parse a date-like value, rejecting missing values."""
    if isinstance(value, bool):
        raise ValueError(f"not a date: {value!r}")
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"not a date: {value!r}") from e
    if pd.isna(ts):
        raise ValueError("date must not be missing")
    return ts


def _check_same_awareness(stamps, what: str) -> None:
    if len({ts.tz is None for ts in stamps}) > 1:
        raise ValueError(f"{what} mix timezone-aware and timezone-naive dates")


def _to_number(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValueError(f"{what} must be a number, got {value!r}")
    number = float(value)
    if math.isnan(number):
        raise ValueError(f"{what} must not be NaN")
    return number


class TrajectoryOptions(BaseModel):
    """Straight-line trajectory reference.

    Attributes:
        enabled: Whether to compute a trajectory column
        anchor: Date inside the baseline segment the line is fitted to and
            extrapolated from; None anchors at the first segment
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="ignore")

    enabled: bool = False
    anchor: pd.Timestamp | None = None

    @field_validator("anchor", mode="before")
    @classmethod
    def parse_anchor(cls, value):
        return None if value is None else to_timestamp(value)


class SpcOptions(BaseModel):
    """Validated options for spc().

    Keys are accepted in camelCase (improvementDirection) or snake_case
    (improvement_direction). Unknown keys are ignored. Cosmetic chart keys may
    be given under `chart` or at the top level.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        arbitrary_types_allowed=True,
    )

    improvement_direction: ImprovementDirection = ImprovementDirection.INCREASE
    rebase_dates: list[pd.Timestamp] = Field(default_factory=list)
    target: float | dict[pd.Timestamp, float] | None = None
    trajectory: TrajectoryOptions = Field(default_factory=TrajectoryOptions)
    run_length_threshold: int = Field(DEFAULT_RUN_LENGTH, ge=2)
    domain_floor: float | None = None
    frequency: str | None = None
    include_diagnostics: bool = False
    chart: ChartOptions = Field(default_factory=ChartOptions)

    @model_validator(mode="before")
    @classmethod
    def lift_chart_keys(cls, data):
        """Move top-level cosmetic keys into the `chart` sub-mapping."""
        if not isinstance(data, Mapping):
            return data
        chart_keys = ChartOptions.accepted_keys()
        lifted = {k: v for k, v in data.items() if k in chart_keys}
        if not lifted:
            return data
        remaining = {k: v for k, v in data.items() if k not in chart_keys}
        chart = remaining.get("chart")
        if isinstance(chart, ChartOptions):
            chart = chart.model_dump(by_alias=True)
        if chart is None or isinstance(chart, Mapping):
            remaining["chart"] = {**lifted, **(chart or {})}
        return remaining

    @field_validator("improvement_direction", mode="before")
    @classmethod
    def parse_improvement_direction(cls, value):
        if isinstance(value, ImprovementDirection):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key == "increase":
                return ImprovementDirection.INCREASE
            if key == "decrease":
                return ImprovementDirection.DECREASE
        elif isinstance(value, Real) and not isinstance(value, bool) and value in (1, -1):
            return ImprovementDirection(int(value))
        raise ValueError(
            f"must be 'increase', 'decrease', 1 or -1, got {value!r}"
        )

    @field_validator("rebase_dates", mode="before")
    @classmethod
    def parse_rebase_dates(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, date)) or not hasattr(value, "__iter__"):
            value = [value]
        return [to_timestamp(v) for v in value]

    @field_validator("rebase_dates")
    @classmethod
    def validate_rebase_order(cls, value: list[pd.Timestamp]) -> list[pd.Timestamp]:
        """Rebase dates must be strictly increasing."""
        _check_same_awareness(value, "rebase dates")
        out_of_order = [
            f"{prev.date()} >= {cur.date()}"
            for prev, cur in zip(value, value[1:])
            if cur <= prev
        ]
        if out_of_order:
            raise ValueError(
                "rebase dates must be strictly increasing ("
                + ", ".join(out_of_order) + ")"
            )
        return value

    @field_validator("target", mode="before")
    @classmethod
    def parse_target(cls, value):
        """Accept a constant or a {date: value} mapping (a Series works too)."""
        if value is None:
            return None
        if isinstance(value, pd.Series):
            value = value.to_dict()
        if isinstance(value, Mapping):
            parsed = {to_timestamp(k): _to_number(v, "target value") for k, v in value.items()}
            _check_same_awareness(parsed, "target dates")
            return dict(sorted(parsed.items()))
        return _to_number(value, "target")

    @field_validator("trajectory", mode="before")
    @classmethod
    def parse_trajectory(cls, value):
        """Accept a boolean, an anchor date, or {enabled, anchor}."""
        if value is None or value is False:
            return TrajectoryOptions()
        if value is True:
            return TrajectoryOptions(enabled=True)
        if isinstance(value, (TrajectoryOptions, Mapping)):
            return value
        return TrajectoryOptions(enabled=True, anchor=to_timestamp(value))

    @field_validator("domain_floor", mode="before")
    @classmethod
    def parse_domain_floor(cls, value):
        return None if value is None else _to_number(value, "domain floor")

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                to_offset(value)
            except ValueError as e:
                raise ValueError(f"not a valid date frequency: {value!r}") from e
        return value

    @model_validator(mode="after")
    def validate_trajectory_anchor(self) -> Self:
        """An anchor only makes sense when the trajectory is enabled."""
        if self.trajectory.anchor is not None and not self.trajectory.enabled:
            raise ValueError("trajectory anchor given but trajectory is not enabled")
        return self


def _format_error(error: dict) -> str:
    location = ".".join(str(part) for part in error["loc"])
    message = error["msg"].removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


def load_options(options: SpcOptions | Mapping | None) -> SpcOptions:
    """Validate raw options into an SpcOptions instance.

    Args:
        options: None for defaults, an SpcOptions, or a mapping of option keys

    Returns:
        Validated SpcOptions

    Raises:
        ConfigurationError: Listing every malformed option value
    """
    if options is None:
        return SpcOptions()
    if isinstance(options, SpcOptions):
        return options
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"options must be a mapping, got {type(options).__name__}"
        )
    try:
        return SpcOptions.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError([_format_error(err) for err in e.errors()]) from e


def localize_options(options: SpcOptions, tz) -> SpcOptions:
    """Express option dates in the time zone of the data's dates.

    Naive option dates are localized to tz and aware ones converted to it.
    Aware option dates against naive data dates cannot be compared and are
    reported.

    Args:
        options: Validated options
        tz: Time zone of the data's dates, or None when they are naive

    Returns:
        SpcOptions whose rebase dates, target keys and trajectory anchor
        compare with the data's dates

    Raises:
        ConfigurationError: Listing every aware option date given for naive data
    """
    violations = []

    def localize(ts: pd.Timestamp, where: str) -> pd.Timestamp:
        if ts.tz is None:
            return ts if tz is None else ts.tz_localize(tz)
        if tz is None:
            violations.append(f"{where}: {ts} has a time zone but the data dates do not")
            return ts
        return ts.tz_convert(tz)

    rebase_dates = [localize(d, "rebaseDates") for d in options.rebase_dates]
    target = options.target
    if isinstance(target, dict):
        target = {localize(k, "target"): v for k, v in target.items()}
    trajectory = options.trajectory
    if trajectory.anchor is not None:
        trajectory = trajectory.model_copy(
            update={"anchor": localize(trajectory.anchor, "trajectory.anchor")}
        )

    if violations:
        raise ConfigurationError(violations)
    return options.model_copy(
        update={"rebase_dates": rebase_dates, "target": target, "trajectory": trajectory}
    )
