"""
Annual stats DAG - orchestrates the monthly returns to annual statistics pipeline.
Composes: Provider → Transform → Validate → Aggregate → Write.
"""

import os
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass
from dotenv import load_dotenv

from analysis.annual_stats import compute_annual_stats
from analysis.records import ReturnRecord
from ingestion.providers.csv_adapter import CsvSourceError, read_returns_csv
from ingestion.transforms.normalizers import normalize_return_row
from ingestion.transforms.validators import (
    MalformedRecordError,
    find_duplicate_periods,
    validate_return_record,
)
from reports.csv_writer import write_annual_reports


# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

ON_INVALID_POLICIES = ('abort', 'skip')


class PipelineError(Exception):
    """Raised when pipeline execution fails."""
    pass


@dataclass
class AnnualStatsConfig:
    """Configuration for annual stats pipeline."""
    input_path: Path
    output_dir: Optional[Path] = None
    on_invalid: Optional[str] = None
    workers: Optional[int] = None

    def __post_init__(self):
        """Validate and fill defaults from environment."""
        if not self.input_path:
            raise ValueError("input_path must be set")
        self.input_path = Path(self.input_path)

        if self.output_dir is None:
            self.output_dir = os.getenv('ANNUAL_STATS_OUTPUT_DIR', './data/processed/annual')
        self.output_dir = Path(self.output_dir)

        if self.on_invalid is None:
            self.on_invalid = os.getenv('ANNUAL_STATS_ON_INVALID', 'abort')
        self.on_invalid = self.on_invalid.lower()
        if self.on_invalid not in ON_INVALID_POLICIES:
            raise ValueError(f"on_invalid must be one of {ON_INVALID_POLICIES}, got {self.on_invalid!r}")

        if self.workers is None:
            self.workers = int(os.getenv('ANNUAL_STATS_WORKERS', '1'))
        if self.workers < 1:
            raise ValueError("workers must be >= 1")


def run_annual_stats(config: AnnualStatsConfig) -> Dict[str, Any]:
    """
    Run the complete annual stats pipeline.

    Pipeline stages:
    1. Read raw rows from the returns CSV
    2. Normalize and validate each row (abort or skip on malformed rows)
    3. Group by (ticker, year) and aggregate
    4. Write max_returns.csv, max_drawups.csv and annual_stats.csv

    Args:
        config: Pipeline configuration

    Returns:
        Dictionary with run results and metrics
    """
    start_time = datetime.now()

    result = {
        'input_path': str(config.input_path),
        'output_dir': str(config.output_dir),
        'status': 'running',
        'rows_read': 0,
        'rows_valid': 0,
        'groups_written': 0,
        'validation_warnings': 0,
        'duplicate_periods': 0,
        'output_paths': [],
        'error_kind': None,
        'error_message': None
    }

    try:
        # Stage 1: Read raw rows
        raw_rows = read_returns_csv(config.input_path)
        result['rows_read'] = len(raw_rows)

        # Stage 2: Normalize and validate
        records = _collect_records(raw_rows, config.on_invalid, result)
        result['rows_valid'] = len(records)

        duplicates = find_duplicate_periods(records)
        result['duplicate_periods'] = len(duplicates)
        for ticker, period in duplicates:
            logger.warning("Duplicate period %s for %s; keeping all observations", period, ticker)

        # Stage 3: Aggregate
        rows = compute_annual_stats(records, max_workers=config.workers)
        logger.info("Aggregated %d records into %d groups", len(records), len(rows))

        # Stage 4: Write outputs
        write_result = write_annual_reports(rows, config.output_dir)
        if write_result['status'] != 'completed':
            raise PipelineError(f"Write failed: {write_result['error']}")

        result['groups_written'] = write_result['rows_written']
        result['output_paths'] = write_result['paths']
        result['rows'] = rows
        result['status'] = 'completed'

    except CsvSourceError as e:
        logger.error("Cannot read returns input: %s", e)
        result['status'] = 'failed'
        result['error_kind'] = 'source'
        result['error_message'] = str(e)

    except Exception as e:
        logger.error("Annual stats pipeline failed: %s", e)
        result['status'] = 'failed'
        result['error_kind'] = 'pipeline'
        result['error_message'] = str(e)

    result['duration_seconds'] = (datetime.now() - start_time).total_seconds()
    return result


def _collect_records(
    raw_rows: List[Dict[str, Any]],
    on_invalid: str,
    result: Dict[str, Any]
) -> List[ReturnRecord]:
    """Normalize and validate rows, applying the malformed-row policy."""
    records = []

    for index, raw in enumerate(raw_rows):
        # +2: header line and 1-based numbering
        line_no = index + 2
        try:
            record = normalize_return_row(raw)
            validate_return_record(record)
        except MalformedRecordError as e:
            if on_invalid == 'abort':
                raise PipelineError(f"Malformed row at line {line_no}: {e}") from e
            logger.warning("Skipping malformed row at line %d: %s", line_no, e)
            result['validation_warnings'] += 1
            continue

        records.append(record)

    return records
