"""
Annual return statistics for one (ticker, year) group.
Pure functions for highest monthly return and maximum draw-up.
"""

import math
import numpy as np
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Sequence

from analysis.records import ReturnRecord


DRAWUP_DECIMALS = 4


class AggregationError(Exception):
    """Raised when annual statistics cannot be calculated."""
    pass


@dataclass(frozen=True)
class AnnualStats:
    """Statistics for one group of monthly returns."""
    highest_return: float
    max_drawup: float


def highest_return(values: Sequence[float]) -> float:
    """
    Highest single-month return.

    Args:
        values: Monthly returns

    Returns:
        Maximum value

    Raises:
        AggregationError: If values is empty
    """
    if len(values) == 0:
        raise AggregationError("Insufficient data: need at least 1 return")

    return float(max(values))


def max_drawup(values: Sequence[float]) -> float:
    """
    Largest gain from a trough to a later peak.

    Single forward pass keeping the lowest value seen so far. A value that
    sets a new trough never realizes a gain in the same step, so the buy
    point always precedes the sell point.

    Args:
        values: Monthly returns in chronological order

    Returns:
        Maximum draw-up (>= 0), unrounded

    Example:
        [0.0552, 0.0448, 0.097]:
        - 0.0552 sets the trough
        - 0.0448 < trough, new trough
        - 0.097 - 0.0448 = 0.0522
        Returns: 0.0522
    """
    trough = math.inf
    best = 0.0

    for value in values:
        if value < trough:
            trough = value
        else:
            best = max(best, value - trough)

    return best


def max_drawup_vectorized(values: Sequence[float]) -> float:
    """
    Maximum draw-up using numpy running minimum.

    Matches max_drawup: a point that is its own running minimum contributes
    a gain of 0.

    Args:
        values: Monthly returns in chronological order

    Returns:
        Maximum draw-up (>= 0), unrounded
    """
    if len(values) < 2:
        return 0.0

    values_array = np.asarray(values, dtype=float)
    running_min = np.minimum.accumulate(values_array)
    gains = values_array - running_min

    return max(float(gains.max()), 0.0)


def round_drawup(value: float, places: int = DRAWUP_DECIMALS) -> float:
    """
    Round to fixed decimal places, halves away from zero.

    Rounds the shortest decimal repr of the float, so 0.00005 becomes
    0.0001 and 0.12345 becomes 0.1235. Values with no digits beyond the
    requested places, and non-finite values, are returned unchanged.

    Args:
        value: Value to round
        places: Decimal places to keep

    Returns:
        Rounded value
    """
    value = float(value)
    if not math.isfinite(value):
        return value

    exact = Decimal(str(value))
    if exact.as_tuple().exponent >= -places:
        return value

    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def aggregate(group: Sequence[ReturnRecord]) -> AnnualStats:
    """
    Reduce one chronologically ordered group to its annual statistics.

    Args:
        group: Records for one ticker and year, ascending by period

    Returns:
        AnnualStats with highest return and draw-up rounded to 4 places

    Raises:
        AggregationError: If the group is empty
    """
    if len(group) == 0:
        raise AggregationError("Cannot aggregate empty group")

    values = [float(record.value) for record in group]

    return AnnualStats(
        highest_return=highest_return(values),
        max_drawup=round_drawup(max_drawup(values)),
    )
