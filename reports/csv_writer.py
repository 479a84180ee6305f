"""
Atomic CSV writer for annual return statistics.
Implements temp-write → fsync → rename pattern so no partial files are left.
"""

import os
import time
import tempfile
import pandas as pd
from pathlib import Path
from typing import Any, Dict, Sequence

from analysis.annual_stats import results_to_frame
from analysis.records import ResultRow


MAX_RETURNS_FILENAME = 'max_returns.csv'
MAX_DRAWUPS_FILENAME = 'max_drawups.csv'
ANNUAL_STATS_FILENAME = 'annual_stats.csv'


def write_csv_atomic(frame: pd.DataFrame, output_path: Path) -> Dict[str, Any]:
    """
    Write a DataFrame as CSV atomically to prevent partial files.

    Args:
        frame: Data to write (index is not written)
        output_path: Final path for the CSV

    Returns:
        Dictionary with write results
    """
    start_time = time.time()
    temp_path = None

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        # Temp file in same directory so rename stays on one filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            suffix='.tmp',
            prefix=f'{output_path.stem}_',
            dir=output_path.parent
        )
        temp_path = Path(temp_path_str)

        with os.fdopen(temp_fd, 'w', encoding='utf-8', newline='') as f:
            frame.to_csv(f, index=False)
            f.flush()
            os.fsync(f.fileno())

        os.replace(temp_path, output_path)

        return {
            'status': 'completed',
            'output_path': str(output_path),
            'rows_written': len(frame),
            'bytes_written': output_path.stat().st_size,
            'duration_seconds': time.time() - start_time
        }

    except (OSError, ValueError) as e:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()

        return {
            'status': 'failed',
            'error': str(e),
            'output_path': str(output_path),
            'rows_written': 0,
            'bytes_written': 0,
            'duration_seconds': time.time() - start_time
        }


def build_output_frames(rows: Sequence[ResultRow]) -> Dict[str, pd.DataFrame]:
    """
    Build the three output tables keyed by file name.

    Draw-ups are formatted with exactly 4 decimals; highest returns are
    written as computed.

    Args:
        rows: ResultRows in output order

    Returns:
        Mapping of file name to DataFrame
    """
    frame = results_to_frame(rows)
    frame['max_drawup'] = [f"{value:.4f}" for value in frame['max_drawup']]

    return {
        MAX_RETURNS_FILENAME: frame[['ticker', 'year', 'highest_return']],
        MAX_DRAWUPS_FILENAME: frame[['ticker', 'year', 'max_drawup']],
        ANNUAL_STATS_FILENAME: frame,
    }


def write_annual_reports(rows: Sequence[ResultRow], output_dir: Path) -> Dict[str, Any]:
    """
    Write max_returns.csv, max_drawups.csv and annual_stats.csv.

    If any write fails, files already written by this call are removed
    (all-or-nothing).

    Args:
        rows: ResultRows in output order
        output_dir: Directory for the CSV files

    Returns:
        Dictionary with combined write results
    """
    written = []

    for filename, frame in build_output_frames(rows).items():
        output_path = output_dir / filename
        result = write_csv_atomic(frame, output_path)

        if result['status'] != 'completed':
            for path in written:
                path.unlink(missing_ok=True)
            return {
                'status': 'failed',
                'error': f"{filename} write failed: {result.get('error', 'Unknown')}",
                'paths': [],
                'rows_written': 0
            }

        written.append(output_path)

    return {
        'status': 'completed',
        'paths': [str(path) for path in written],
        'rows_written': len(rows)
    }
