"""Statistical constants for individuals (XmR) process behaviour charts.

Constants from ASTM E2587 and the NIST Engineering Statistics Handbook.
"Plot the dots" charts are individuals charts: each point is a single value
and dispersion is estimated from moving ranges of span 2.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class IndividualsConstants:
    """Constants for an individuals chart built from span-2 moving ranges.

    Attributes:
        d2: Average range factor for a moving range of span 2
        E2: Natural process limit factor (3 / d2) applied to the mean moving range
    """
    d2: float
    E2: float


INDIVIDUALS = IndividualsConstants(d2=1.128, E2=2.660)

# Fixed by the methodology; not user-configurable.
NATURAL_PROCESS_LIMIT_FACTOR = INDIVIDUALS.E2

# Consecutive points on one side of the mean that signal a shift
DEFAULT_RUN_LENGTH = 7

# Fewest points from which a moving range (and so limits) can be formed
MIN_POINTS_FOR_LIMITS = 2
