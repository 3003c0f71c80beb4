"""Numeric helpers shared by the scoring and aggregation stages.

All functions are total: an empty sample yields 0 instead of raising.
"""

import math
from collections.abc import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sample."""
    if not values:
        return 0
    return sum(values) / len(values)


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile of a sample.

    The sample is sorted ascending and indexed at ``ceil(p / 100 * n) - 1``,
    clamped into ``[0, n - 1]``. No interpolation happens between samples, so
    ``percentile([10, 20, 30, 40], 95)`` is ``40``.

    Args:
        values: Sample to rank
        p: Percentile between 0 and 100

    Returns:
        The selected sample, or 0 for an empty sample

    """
    if not values:
        return 0
    ordered = sorted(values)
    index = math.ceil((p / 100) * len(ordered)) - 1
    return ordered[int(clamp(index, 0, len(ordered) - 1))]


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation (divides by n), 0 for an empty sample."""
    if not values:
        return 0
    centre = mean(values)
    return math.sqrt(mean([(value - centre) ** 2 for value in values]))


def round_to(value: float, digits: int = 2) -> float:
    """Round half-up to a number of decimal places via power-of-ten scaling.

    Infinite and NaN values are returned unchanged.
    """
    if not math.isfinite(value):
        return value
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, low: float, high: float) -> float:
    """Constrain a value to the inclusive range ``[low, high]``."""
    return min(high, max(low, value))
