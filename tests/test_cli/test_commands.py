"""Tests for the meme-radar CLI."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from meme_radar.cli import main

BUCKET = datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def mock_db(mock_database) -> AsyncMock:
    """Database double usable as an async context manager."""
    mock_database.__aenter__.return_value = mock_database
    mock_database.__aexit__.return_value = None
    return mock_database


class TestDetect:
    """Test the `detect` command."""

    def test_detect_prints_tickers_and_sentiment(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["detect", "🚀 $GME to the moon, AMC YOLO today. http://x.com/TSLA"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["tickers"] == ["GME", "AMC"]
        assert data["stats"]["denied"] == ["YOLO"]
        assert data["sentiment"]["category"] == "strong_bullish"

    def test_detect_empty_text(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["detect", ""])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["tickers"] == []
        assert data["sentiment"]["score"] == 0.0


class TestQueries:
    """Test the aggregate query commands."""

    def test_trending(self, runner: CliRunner, mock_db) -> None:
        mock_db.fetch.return_value = []

        with patch("meme_radar.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["trending", "--limit", "5"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == []
        assert mock_db.fetch.await_count == 2

    def test_details_missing_ticker(self, runner: CliRunner, mock_db) -> None:
        with patch("meme_radar.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["details", "gme"])

        assert result.exit_code == 1
        assert "No data for GME" in result.output

    def test_prune(self, runner: CliRunner, mock_db) -> None:
        mock_db.execute.side_effect = ["DELETE 4", "DELETE 1"]

        with patch("meme_radar.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["prune"])

        assert result.exit_code == 0, result.output
        assert "Deleted 5 expired rows" in result.output

    def test_init_db(self, runner: CliRunner, mock_db) -> None:
        with patch("meme_radar.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0, result.output
        assert "initialized" in result.output

    def test_database_failure_exits_non_zero(self, runner: CliRunner, mock_db) -> None:
        mock_db.fetch.side_effect = RuntimeError("connection refused")

        with patch("meme_radar.storage.database.Database", return_value=mock_db):
            result = runner.invoke(main, ["fading"])

        assert result.exit_code == 1
        assert "Command failed: connection refused" in result.output
