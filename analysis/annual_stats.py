"""
Annual stats composer - applies the aggregator to every (ticker, year) group.
Pure function apart from the optional worker pool; no IO.
"""

import pandas as pd
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from analysis.calculations.annual import aggregate
from analysis.calculations.grouping import group_returns
from analysis.records import GroupKey, ResultRow, ReturnRecord


RESULT_COLUMNS = ['ticker', 'year', 'highest_return', 'max_drawup']


def compute_annual_stats(
    records: Iterable[ReturnRecord],
    max_workers: Optional[int] = None
) -> List[ResultRow]:
    """
    Compute highest return and maximum draw-up for every ticker and year.

    Groups are independent, so with max_workers > 1 they are aggregated on
    a thread pool. Row order is the same either way: first appearance of
    each (ticker, year) in the input.

    Args:
        records: Return records in any order
        max_workers: Worker threads for aggregation (None or 1 = sequential)

    Returns:
        One ResultRow per (ticker, year) group

    Raises:
        MalformedRecordError: If any record fails validation
    """
    groups = group_returns(records)

    if not groups:
        return []

    items = list(groups.items())

    if max_workers is not None and max_workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as ex:
            return list(ex.map(_build_row, items))

    return [_build_row(item) for item in items]


def _build_row(item: Tuple[GroupKey, Sequence[ReturnRecord]]) -> ResultRow:
    key, group = item
    stats = aggregate(group)
    return ResultRow(
        instrument=key.instrument,
        year=key.year,
        highest_return=stats.highest_return,
        max_drawup=stats.max_drawup,
    )


def results_to_frame(rows: Sequence[ResultRow]) -> pd.DataFrame:
    """
    Convert result rows to a DataFrame with the output column names.

    Args:
        rows: ResultRows in output order

    Returns:
        DataFrame with ticker, year, highest_return, max_drawup columns
    """
    if not rows:
        return pd.DataFrame(columns=RESULT_COLUMNS)

    return pd.DataFrame([row.as_dict() for row in rows], columns=RESULT_COLUMNS)
