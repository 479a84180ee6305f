"""
Tests for annual_stats DAG - integration test of full pipeline.
Uses real provider, transforms and writer against temp files.
"""

import pytest
import pandas as pd
from pathlib import Path
from unittest.mock import patch

from analysis.records import ResultRow
from pipeline.annual_stats_dag import (
    run_annual_stats,
    AnnualStatsConfig
)


FIXTURE_PATH = Path(__file__).parent.parent.parent / 'tests/fixtures' / 'test_returns.csv'


@pytest.fixture
def clean_env(monkeypatch):
    """Remove pipeline settings from the environment."""
    for name in ['ANNUAL_STATS_OUTPUT_DIR', 'ANNUAL_STATS_ON_INVALID', 'ANNUAL_STATS_WORKERS']:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def bad_row_csv(tmp_path):
    path = tmp_path / 'returns.csv'
    path.write_text(
        "ticker,date,monthly_return\n"
        "AAPL,2019-01-31,0.0552\n"
        "AAPL,19-02-28,0.0448\n"
        "AAPL,2019-03-31,0.097\n",
        encoding='utf-8'
    )
    return path


class TestAnnualStatsConfig:
    """Tests for AnnualStatsConfig defaults and validation."""

    def test_defaults(self, clean_env):
        config = AnnualStatsConfig(input_path='returns.csv')

        assert config.input_path == Path('returns.csv')
        assert config.output_dir == Path('./data/processed/annual')
        assert config.on_invalid == 'abort'
        assert config.workers == 1

    def test_environment_overrides(self, clean_env, tmp_path):
        clean_env.setenv('ANNUAL_STATS_OUTPUT_DIR', str(tmp_path))
        clean_env.setenv('ANNUAL_STATS_ON_INVALID', 'SKIP')
        clean_env.setenv('ANNUAL_STATS_WORKERS', '3')

        config = AnnualStatsConfig(input_path='returns.csv')

        assert config.output_dir == tmp_path
        assert config.on_invalid == 'skip'
        assert config.workers == 3

    def test_explicit_values_win(self, clean_env, tmp_path):
        clean_env.setenv('ANNUAL_STATS_ON_INVALID', 'skip')

        config = AnnualStatsConfig(input_path='returns.csv', output_dir=tmp_path, on_invalid='abort')

        assert config.on_invalid == 'abort'

    def test_invalid_policy(self, clean_env):
        with pytest.raises(ValueError, match="on_invalid"):
            AnnualStatsConfig(input_path='returns.csv', on_invalid='ignore')

    def test_invalid_workers(self, clean_env):
        with pytest.raises(ValueError, match="workers"):
            AnnualStatsConfig(input_path='returns.csv', workers=0)

    def test_missing_input_path(self, clean_env):
        with pytest.raises(ValueError, match="input_path"):
            AnnualStatsConfig(input_path='')


class TestAnnualStatsDAG:
    """Tests for annual_stats DAG orchestration."""

    def test_run_success(self, clean_env, tmp_path):
        config = AnnualStatsConfig(input_path=FIXTURE_PATH, output_dir=tmp_path)

        result = run_annual_stats(config)

        assert result['status'] == 'completed'
        assert result['error_message'] is None
        assert result['error_kind'] is None
        assert result['rows_read'] == 10
        assert result['rows_valid'] == 10
        assert result['groups_written'] == 4
        assert result['validation_warnings'] == 0
        assert result['duration_seconds'] >= 0
        assert result['rows'][0] == ResultRow('AAPL', 2019, 0.097, 0.0522)

        drawups = pd.read_csv(tmp_path / 'max_drawups.csv', dtype=str)
        assert drawups.values.tolist() == [
            ['AAPL', '2019', '0.0522'],
            ['MSFT', '2019', '0.0200'],
            ['AAPL', '2020', '0.0700'],
            ['GOOG', '2020', '0.0000'],
        ]

        returns = pd.read_csv(tmp_path / 'max_returns.csv', dtype={'ticker': str})
        assert returns['highest_return'].tolist() == pytest.approx([0.097, 0.02, 0.05, -0.05])

    def test_run_with_workers(self, clean_env, tmp_path):
        sequential = run_annual_stats(AnnualStatsConfig(input_path=FIXTURE_PATH, output_dir=tmp_path / 'a'))
        threaded = run_annual_stats(
            AnnualStatsConfig(input_path=FIXTURE_PATH, output_dir=tmp_path / 'b', workers=4)
        )

        assert threaded['rows'] == sequential['rows']

    def test_abort_on_malformed_row(self, clean_env, tmp_path, bad_row_csv):
        out_dir = tmp_path / 'out'
        config = AnnualStatsConfig(input_path=bad_row_csv, output_dir=out_dir, on_invalid='abort')

        result = run_annual_stats(config)

        assert result['status'] == 'failed'
        assert 'line 3' in result['error_message']
        assert result['error_kind'] == 'pipeline'
        assert result['output_paths'] == []
        assert not out_dir.exists()

    def test_skip_malformed_row(self, clean_env, tmp_path, bad_row_csv):
        config = AnnualStatsConfig(input_path=bad_row_csv, output_dir=tmp_path / 'out', on_invalid='skip')

        result = run_annual_stats(config)

        assert result['status'] == 'completed'
        assert result['rows_read'] == 3
        assert result['rows_valid'] == 2
        assert result['validation_warnings'] == 1
        # 0.0552 -> 0.097 once the bad February row is dropped
        assert result['rows'] == [ResultRow('AAPL', 2019, 0.097, 0.0418)]

    def test_duplicate_periods_counted(self, clean_env, tmp_path):
        path = tmp_path / 'returns.csv'
        path.write_text(
            "ticker,date,monthly_return\n"
            "AAPL,2019-01-31,0.05\n"
            "AAPL,2019-01-31,0.01\n"
            "AAPL,2019-02-28,0.04\n",
            encoding='utf-8'
        )

        result = run_annual_stats(AnnualStatsConfig(input_path=path, output_dir=tmp_path / 'out'))

        assert result['status'] == 'completed'
        assert result['duplicate_periods'] == 1
        # Both January rows kept in file order: 0.05, 0.01, 0.04
        assert result['rows'] == [ResultRow('AAPL', 2019, 0.05, 0.03)]

    def test_empty_input(self, clean_env, tmp_path):
        path = tmp_path / 'returns.csv'
        path.write_text("ticker,date,monthly_return\n", encoding='utf-8')

        result = run_annual_stats(AnnualStatsConfig(input_path=path, output_dir=tmp_path / 'out'))

        assert result['status'] == 'completed'
        assert result['groups_written'] == 0
        assert (tmp_path / 'out' / 'max_returns.csv').exists()

    def test_missing_input_file(self, clean_env, tmp_path):
        config = AnnualStatsConfig(input_path=tmp_path / 'missing.csv', output_dir=tmp_path)

        result = run_annual_stats(config)

        assert result['status'] == 'failed'
        assert 'not found' in result['error_message']
        assert result['error_kind'] == 'source'

    def test_missing_columns_is_source_error(self, clean_env, tmp_path):
        path = tmp_path / 'returns.csv'
        path.write_text("ticker,date\nAAPL,2019-01-31\n", encoding='utf-8')

        result = run_annual_stats(AnnualStatsConfig(input_path=path, output_dir=tmp_path / 'out'))

        assert result['status'] == 'failed'
        assert result['error_kind'] == 'source'
        assert 'missing columns' in result['error_message']

    @patch('pipeline.annual_stats_dag.write_annual_reports')
    def test_write_failure(self, mock_write, clean_env, tmp_path):
        mock_write.return_value = {'status': 'failed', 'error': 'disk full', 'paths': [], 'rows_written': 0}
        config = AnnualStatsConfig(input_path=FIXTURE_PATH, output_dir=tmp_path)

        result = run_annual_stats(config)

        assert result['status'] == 'failed'
        assert 'disk full' in result['error_message']
        mock_write.assert_called_once()
