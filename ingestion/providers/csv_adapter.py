"""
CSV adapter - read monthly returns from a ticker,date,monthly_return file.
File IO allowed here, but minimal business logic.
"""

import logging
import pandas as pd
from pathlib import Path
from typing import Any, Dict, List, Union


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['ticker', 'date', 'monthly_return']


class CsvSourceError(Exception):
    """Raised when the returns CSV cannot be read."""
    pass


def read_returns_csv(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read raw rows from a monthly returns CSV.
    Returns raw data in provider format - no normalization.

    All columns are read as text so tickers and dates reach the
    normalizer unchanged. Empty cells become None.

    Args:
        path: Path to CSV file with header ticker,date,monthly_return

    Returns:
        List of raw row dictionaries in file order

    Raises:
        CsvSourceError: If the file is missing, unreadable or lacks columns
    """
    csv_path = Path(path)

    if not csv_path.exists():
        raise CsvSourceError(f"Returns file not found: {csv_path}")

    try:
        data = pd.read_csv(csv_path, dtype=str, keep_default_na=False, encoding='utf-8-sig')
    except pd.errors.EmptyDataError:
        logger.warning("Returns file %s is empty", csv_path)
        return []
    except (OSError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise CsvSourceError(f"Failed to read returns from {csv_path}: {str(e)}") from e

    missing = [col for col in REQUIRED_COLUMNS if col not in data.columns]
    if missing:
        raise CsvSourceError(f"Returns file {csv_path} missing columns: {missing}")

    rows = []
    for record in data[REQUIRED_COLUMNS].to_dict('records'):
        rows.append({k: (v if v != '' else None) for k, v in record.items()})

    logger.info("Read %d rows from %s", len(rows), csv_path)
    return rows
