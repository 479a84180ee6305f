"""
Grouping of monthly returns into (ticker, calendar year) series.
Pure functions - the result depends only on the records, not their order.
"""

from typing import Dict, Iterable, List, Tuple

from analysis.records import GroupKey, ReturnRecord
from ingestion.transforms.validators import period_sort_key, validate_return_record


def group_returns(
    records: Iterable[ReturnRecord]
) -> Dict[GroupKey, Tuple[ReturnRecord, ...]]:
    """
    Partition return records into chronologically ordered groups.

    Each record belongs to exactly one group keyed by its instrument and
    the year of its period. Within a group records are sorted ascending
    by period; records sharing a period keep their input order (stable
    sort), so duplicates are all retained.

    Args:
        records: Return records in any order

    Returns:
        Mapping of GroupKey to ordered records, keys in first-seen order

    Raises:
        MalformedRecordError: If any record fails validation
    """
    buckets: Dict[GroupKey, List[ReturnRecord]] = {}

    for record in records:
        key = validate_return_record(record)
        buckets.setdefault(key, []).append(record)

    return {
        key: tuple(sorted(members, key=lambda r: period_sort_key(r.period)))
        for key, members in buckets.items()
    }
