"""
Normalizers for transforming provider rows to canonical ReturnRecords.
Pure functions - no IO, network, or side effects.
Minimal normalization - only when necessary.
"""

from typing import Any, Dict, List

from analysis.records import ReturnRecord
from ingestion.transforms.validators import MalformedRecordError


def normalize_return_row(raw: Dict[str, Any]) -> ReturnRecord:
    """
    Transform one provider row to a canonical ReturnRecord.

    Minimal normalization:
    - Field name mapping (ticker/date/monthly_return to instrument/period/value)
    - Return strings to float (CSV gives text)

    Ticker and date are kept exactly as provided; tickers are compared
    case- and format-sensitively downstream.

    Args:
        raw: Row with 'ticker', 'date' and 'monthly_return' keys

    Returns:
        Canonical ReturnRecord

    Raises:
        MalformedRecordError: If a field is missing or the return is not numeric
    """
    missing = {'ticker', 'date', 'monthly_return'} - set(raw.keys())
    if missing:
        raise MalformedRecordError(f"Missing required keys: {sorted(missing)}")

    value_raw = raw['monthly_return']
    try:
        value = float(value_raw)
    except (TypeError, ValueError) as e:
        raise MalformedRecordError(f"monthly_return is not numeric: {value_raw!r}") from e

    return ReturnRecord(
        instrument=raw['ticker'],
        period=raw['date'],
        value=value,
    )


def normalize_returns(raw_rows: List[Dict[str, Any]]) -> List[ReturnRecord]:
    """
    Transform provider rows to canonical ReturnRecords.

    No deduplication: repeated (ticker, date) rows are all kept and
    resolved by the grouping order.

    Args:
        raw_rows: List of provider rows

    Returns:
        List of ReturnRecords in input order

    Raises:
        MalformedRecordError: If any row cannot be normalized
    """
    if not raw_rows:
        return []

    return [normalize_return_row(raw) for raw in raw_rows]
