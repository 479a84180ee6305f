#!/usr/bin/env python3
"""
Main CLI for annual return statistics.
Usage: python cli.py INPUT_CSV [options]
"""

import os
import sys
import logging
import argparse
from pathlib import Path

from pipeline.annual_stats_dag import AnnualStatsConfig, run_annual_stats


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Highest monthly return and maximum draw-up per ticker and year',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python cli.py test_returns.csv
  python cli.py test_returns.csv --output-dir ./out
  python cli.py test_returns.csv --on-invalid skip --workers 4
        """
    )

    parser.add_argument('input', help='CSV file with ticker,date,monthly_return columns')
    parser.add_argument('--output-dir',
                        help='Directory for output CSVs (default: $ANNUAL_STATS_OUTPUT_DIR or ./data/processed/annual)')
    parser.add_argument('--on-invalid',
                        choices=['abort', 'skip'],
                        help='Malformed row policy (default: $ANNUAL_STATS_ON_INVALID or abort)')
    parser.add_argument('--workers',
                        type=int,
                        help='Worker threads for aggregation (default: $ANNUAL_STATS_WORKERS or 1)')
    parser.add_argument('--log-level',
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=os.getenv('ANNUAL_STATS_LOG_LEVEL', 'WARNING').upper(),
                        help='Logging level (default: $ANNUAL_STATS_LOG_LEVEL or WARNING)')
    parser.add_argument('--quiet', '-q',
                        action='store_true',
                        help='Minimal output (just success/failure)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}", file=sys.stderr)
        sys.exit(2)

    try:
        config = AnnualStatsConfig(
            input_path=input_path,
            output_dir=args.output_dir,
            on_invalid=args.on_invalid,
            workers=args.workers
        )
    except ValueError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    if not args.quiet:
        print(f"Computing annual stats for {config.input_path}")
        print(f"Output directory: {config.output_dir}")
        print()

    result = run_annual_stats(config)

    if result['error_kind'] == 'source':
        print(f"ERROR: Cannot read input: {result['error_message']}", file=sys.stderr)
        sys.exit(2)

    if result['status'] != 'completed':
        print(f"ERROR: Annual stats failed: {result['error_message']}", file=sys.stderr)
        sys.exit(1)

    if args.quiet:
        print(f"OK {result['groups_written']} groups")
        sys.exit(0)

    print("Results:")
    print(f"   Rows read: {result['rows_read']}")
    print(f"   Rows used: {result['rows_valid']}")
    if result['validation_warnings'] > 0:
        print(f"   Skipped malformed rows: {result['validation_warnings']}")
    if result['duplicate_periods'] > 0:
        print(f"   Duplicate periods: {result['duplicate_periods']}")
    print(f"   Groups: {result['groups_written']}")
    print(f"   Duration: {result['duration_seconds']:.2f}s")
    print()

    for row in result['rows']:
        print(f"   {row.instrument} {row.year}: highest {row.highest_return} | draw-up {row.max_drawup:.4f}")
    print()

    for path in result['output_paths']:
        print(f"Wrote {path}")

    sys.exit(0)


if __name__ == '__main__':
    main()
