"""Cosmetic chart options handed through to a rendering collaborator.

None of these options alters a numeric or classification value; they are
validated here so a renderer can consume them without re-checking.
"""

from numbers import Real
from typing import Literal

from pandas.tseries.frequencies import to_offset
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ChartOptions(BaseModel):
    """Titles, axes and sizing for a rendered SPC chart."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    main_title: str = "SPC Chart"
    x_axis_label: str = "Date"
    y_axis_label: str = "Value"
    x_axis_date_format: str = "%d/%m/%Y"
    x_axis_breaks: str | None = Field(None, description="Pandas offset alias, e.g. '3MS'")
    y_axis_breaks: float | None = Field(None, gt=0)
    point_size: float = Field(2.0, gt=0)
    percentage_y_axis: float = Field(
        0.0,
        ge=0,
        description="Percent axis break interval; 0 disables percentage formatting",
    )
    fixed_x_axis: bool = Field(
        True,
        validation_alias=AliasChoices("fixedXAxis", "fixedXAxisMultiple", "fixed_x_axis"),
    )
    fixed_y_axis: bool = Field(
        True,
        validation_alias=AliasChoices("fixedYAxis", "fixedYAxisMultiple", "fixed_y_axis"),
    )
    output_chart: bool = True

    @field_validator("x_axis_breaks")
    @classmethod
    def validate_x_axis_breaks(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                to_offset(value)
            except ValueError as e:
                raise ValueError(f"not a valid date frequency: {value!r}") from e
        return value

    @field_validator("y_axis_breaks", mode="before")
    @classmethod
    def validate_y_axis_breaks(cls, value):
        """Y axis breaks must be numeric."""
        if value is not None and (isinstance(value, bool) or not isinstance(value, Real)):
            raise ValueError("Y axis break option must be numeric")
        return value

    @field_validator("percentage_y_axis", mode="before")
    @classmethod
    def coerce_percentage_y_axis(cls, value):
        """Accept a boolean (True means 10% breaks) or an explicit interval."""
        if value is None:
            return 0.0
        if isinstance(value, bool):
            return 0.1 if value else 0.0
        if not isinstance(value, Real):
            raise ValueError("percentage y axis option must be a boolean or a number")
        return value

    @property
    def facet_scales(self) -> Literal["fixed", "free_x", "free_y", "free"]:
        """Shared/free axis scaling across category panels."""
        if self.fixed_x_axis and self.fixed_y_axis:
            return "fixed"
        if self.fixed_y_axis:
            return "free_x"
        if self.fixed_x_axis:
            return "free_y"
        return "free"

    @classmethod
    def accepted_keys(cls) -> frozenset[str]:
        """Every key (field name or alias) this model reads from a mapping."""
        keys: set[str] = set()
        for name, info in cls.model_fields.items():
            keys.add(name)
            if info.alias:
                keys.add(info.alias)
            if isinstance(info.validation_alias, AliasChoices):
                keys.update(c for c in info.validation_alias.choices if isinstance(c, str))
        return frozenset(keys)
