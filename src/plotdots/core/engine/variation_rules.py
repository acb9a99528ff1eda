"""Variation rules for "plot the dots" special-cause detection.

Two rules are applied, in precedence order, to each point of a baseline
segment during a single left-to-right scan:

1. Outlier: a point above the upper or below the lower process limit.
2. Shift: a run of consecutive points strictly on one side of the mean
   reaching the run-length threshold. Every point of the run, from its first
   point onwards, is flagged once the threshold is reached.

A point already flagged as an outlier keeps its outlier flag. Points
matching no rule show common-cause variation.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from plotdots.schemas.options import ImprovementDirection, SpecialCause
from plotdots.utils.constants import DEFAULT_RUN_LENGTH
from plotdots.utils.statistics import ControlLimits


class VariationFlag(str, Enum):
    """Rule outcome for a single point."""
    NONE = "none"
    OUTLIER_HIGH = "outlierHigh"
    OUTLIER_LOW = "outlierLow"
    SHIFT_HIGH = "shiftHigh"
    SHIFT_LOW = "shiftLow"

    @property
    def is_special_cause(self) -> bool:
        return self is not VariationFlag.NONE

    @property
    def is_high(self) -> bool:
        return self in (VariationFlag.OUTLIER_HIGH, VariationFlag.SHIFT_HIGH)


@dataclass(frozen=True)
class ClassificationResult:
    """Classification of one point.

    Attributes:
        runs_above: Consecutive points strictly above the mean, ending here
        runs_below: Consecutive points strictly below the mean, ending here
        flag: Rule that fired for this point
    """
    runs_above: int
    runs_below: int
    flag: VariationFlag


class OutlierRule:
    """Rule 1: one point outside the natural process limits.

    Never fires when the segment's limits are undefined.
    """

    rule_name = "Outlier"

    def check(self, value: float, limits: ControlLimits) -> VariationFlag | None:
        """Return the outlier flag for value, if any."""
        if not limits.is_defined:
            return None
        if value > limits.upl:
            return VariationFlag.OUTLIER_HIGH
        if value < limits.lpl:
            return VariationFlag.OUTLIER_LOW
        return None


class ShiftRule:
    """Rule 2: a run of points on the same side of the mean.

    A point equal to the mean belongs to neither side and ends any run.

    Args:
        run_length: Points in a run that signal a shift (default: 7)
    """

    rule_name = "Shift"

    def __init__(self, run_length: int = DEFAULT_RUN_LENGTH):
        if run_length < 2:
            raise ValueError(f"run_length must be at least 2, got {run_length}")
        self.run_length = run_length

    def check(self, runs_above: int, runs_below: int) -> VariationFlag | None:
        """Return the shift flag for the current run lengths, if any."""
        if runs_above >= self.run_length:
            return VariationFlag.SHIFT_HIGH
        if runs_below >= self.run_length:
            return VariationFlag.SHIFT_LOW
        return None


class VariationClassifier:
    """Classifies every point of a baseline segment.

    Args:
        run_length_threshold: Points in a run that signal a shift (default: 7)

    Example:
        >>> classifier = VariationClassifier(run_length_threshold=7)
        >>> results = classifier.classify(values, limits)
        >>> [r.flag.value for r in results]
    """

    def __init__(self, run_length_threshold: int = DEFAULT_RUN_LENGTH):
        self._outlier_rule = OutlierRule()
        self._shift_rule = ShiftRule(run_length_threshold)

    @property
    def run_length_threshold(self) -> int:
        return self._shift_rule.run_length

    def classify(
        self,
        values: Sequence[float],
        limits: ControlLimits,
    ) -> list[ClassificationResult]:
        """Scan a segment's values in time order.

        Args:
            values: Values of one baseline segment in date order
            limits: The segment's mean and process limits

        Returns:
            One ClassificationResult per value
        """
        mean = limits.mean
        flags = [VariationFlag.NONE] * len(values)
        runs = []

        above = below = 0
        run_start = 0
        for i, value in enumerate(values):
            if value > mean:
                above, below = above + 1, 0
            elif value < mean:
                above, below = 0, below + 1
            else:
                above = below = 0
            if above == 1 or below == 1:
                run_start = i
            runs.append((above, below))

            outlier = self._outlier_rule.check(value, limits)
            if outlier is not None:
                flags[i] = outlier

            shift = self._shift_rule.check(above, below)
            if shift is not None:
                # Reaching the threshold flags the run back to its first point
                run_length = max(above, below)
                first = run_start if run_length == self.run_length_threshold else i
                for j in range(first, i + 1):
                    if flags[j] is VariationFlag.NONE:
                        flags[j] = shift

        return [
            ClassificationResult(runs_above=a, runs_below=b, flag=flag)
            for (a, b), flag in zip(runs, flags)
        ]


def interpret(flag: VariationFlag, direction: ImprovementDirection) -> SpecialCause | None:
    """Translate a rule flag into improvement or concern.

    Args:
        flag: Flag from the classifier
        direction: Which direction of change is an improvement

    Returns:
        SpecialCause, or None for common-cause variation
    """
    if not flag.is_special_cause:
        return None
    higher_is_better = direction == ImprovementDirection.INCREASE
    if flag.is_high == higher_is_better:
        return SpecialCause.IMPROVEMENT
    return SpecialCause.CONCERN


def special_cause_markers(
    values: Sequence[float],
    flags: Sequence[VariationFlag],
    direction: ImprovementDirection,
) -> tuple[list[float], list[float]]:
    """Values to overplot as improvement and concern markers.

    Args:
        values: Point values
        flags: Flag of each point
        direction: Which direction of change is an improvement

    Returns:
        Tuple of (improvement, concern) lists holding the point's value where
        the point signals that cause and NaN elsewhere
    """
    improvement, concern = [], []
    for value, flag in zip(values, flags):
        cause = interpret(flag, direction)
        improvement.append(value if cause is SpecialCause.IMPROVEMENT else math.nan)
        concern.append(value if cause is SpecialCause.CONCERN else math.nan)
    return improvement, concern
