"""
Core validators for canonical return records.
Pure functions - no IO, network, or side effects.
"""

import re
import math
import numbers
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Tuple

from analysis.records import GroupKey, Period, ReturnRecord


# YYYY-MM or YYYY-MM-DD, zero padded
PERIOD_PATTERN = re.compile(r'(\d{4})-(\d{2})(?:-(\d{2}))?', re.ASCII)


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


class MalformedRecordError(ValidationError):
    """Raised when a return record cannot be grouped or aggregated."""
    pass


def parse_period(period: Period) -> date:
    """
    Convert a record period to a calendar date.

    Date values are used as-is (datetimes are truncated to their date).
    Strings must be zero-padded 'YYYY-MM-DD' or 'YYYY-MM'; a year-month
    period maps to the first day of that month.

    Args:
        period: Date or ISO date string

    Returns:
        Calendar date of the period

    Raises:
        MalformedRecordError: If the period is not a date or valid ISO date string
    """
    if isinstance(period, datetime):
        return period.date()

    if isinstance(period, date):
        return period

    if not isinstance(period, str):
        raise MalformedRecordError(f"period must be date or string, got {type(period)}")

    match = PERIOD_PATTERN.fullmatch(period)
    if match is None:
        raise MalformedRecordError(f"period must be YYYY-MM or YYYY-MM-DD, got {period!r}")

    year, month, day = match.groups()
    try:
        return date(int(year), int(month), int(day or 1))
    except ValueError as e:
        raise MalformedRecordError(f"period is not a valid date: {period!r}") from e


def period_year(period: Period) -> int:
    """
    Extract the calendar year from a record period.

    Args:
        period: Date or ISO date string

    Returns:
        Calendar year

    Raises:
        MalformedRecordError: If the period cannot be parsed
    """
    return parse_period(period).year


def period_sort_key(period: Period) -> date:
    """Chronological sort key for a period."""
    return parse_period(period)


def validate_return_record(record: ReturnRecord) -> GroupKey:
    """
    Validate a canonical return record and derive its group key.

    Args:
        record: ReturnRecord to check

    Returns:
        GroupKey for the record

    Raises:
        MalformedRecordError: If validation fails
    """
    instrument = record.instrument
    if not isinstance(instrument, str) or not instrument:
        raise MalformedRecordError(f"instrument must be non-empty string, got {instrument!r}")

    value = record.value
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        raise MalformedRecordError(f"value must be numeric, got {type(value)}")

    finite = value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)
    if not finite:
        raise MalformedRecordError(f"value must be finite, got {value}")

    return GroupKey(instrument, period_year(record.period))


def find_duplicate_periods(records: List[ReturnRecord]) -> List[Tuple[str, str]]:
    """
    List (instrument, period) pairs that occur more than once.

    Duplicates are not an error; callers use this to report them.

    Args:
        records: Return records in any order

    Returns:
        Duplicate (instrument, period) pairs in first-seen order
    """
    counts: Dict[Tuple[str, str], int] = {}
    for record in records:
        pk = (record.instrument, period_sort_key(record.period).isoformat())
        counts[pk] = counts.get(pk, 0) + 1

    return [pk for pk, count in counts.items() if count > 1]
