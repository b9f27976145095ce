"""
Tests for the full scan command line entry point.
"""

from unittest.mock import MagicMock, patch

import full_scan
from core.entities import ScanResult


class TestMain:

    @patch("full_scan.UserFullScan")
    @patch("full_scan.DatabaseClient")
    @patch("full_scan.GitHubClient")
    def test_main_runs_scan(self, mock_github, mock_db, mock_scan):
        db = MagicMock()
        db.__enter__.return_value = db
        mock_db.return_value = db
        mock_scan.return_value.execute.return_value = ScanResult(users_seen=3, stopped_reason="exhausted")

        code = full_scan.main(["--max-batches", "2", "--create-schema"])

        assert code == 0
        db.create_schema.assert_called_once()
        assert mock_scan.call_args.kwargs["max_batches"] == 2

    @patch("full_scan.GitHubClient", side_effect=ValueError("GitHub token required"))
    def test_main_reports_failure(self, mock_github):
        assert full_scan.main([]) == 1

    def test_defaults_match_use_case(self):
        args = full_scan.build_parser().parse_args([])
        assert args.min_remaining == 500
        assert args.threshold_days == 1
        assert args.create_schema is False
