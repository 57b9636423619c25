"""Tests for the timing helpers."""

from unittest.mock import patch

import pytest

from kbforge.utils.performance import timed, timer


class TestTimer:
    """Tests for the timer context manager."""

    @patch("kbforge.utils.performance.logger")
    def test_logs_elapsed_time(self, mock_logger):
        with timer("Embedding batch 1/1"):
            pass

        mock_logger.debug.assert_called_once()
        assert "Embedding batch 1/1 took" in mock_logger.debug.call_args[0][0]

    @patch("kbforge.utils.performance.logger")
    def test_custom_level(self, mock_logger):
        with timer("Reindex", log_level="INFO"):
            pass

        mock_logger.info.assert_called_once()

    @patch("kbforge.utils.performance.logger")
    def test_threshold_suppresses_fast_operations(self, mock_logger):
        with timer("fast", threshold_ms=60_000):
            pass

        mock_logger.debug.assert_not_called()

    @patch("kbforge.utils.performance.logger")
    def test_logs_when_body_raises(self, mock_logger):
        with pytest.raises(RuntimeError):
            with timer("failing"):
                raise RuntimeError("boom")

        mock_logger.debug.assert_called_once()


class TestTimed:
    """Tests for the timed decorator."""

    @patch("kbforge.utils.performance.logger")
    def test_returns_result(self, mock_logger):
        @timed("extract", threshold_ms=0)
        def extract():
            return "text"

        assert extract() == "text"
        mock_logger.debug.assert_called_once()
        assert mock_logger.debug.call_args[0][0].startswith("extract took")

    @patch("kbforge.utils.performance.logger")
    def test_default_name(self, mock_logger):
        @timed(threshold_ms=0)
        def parse():
            return None

        parse()
        assert "parse took" in mock_logger.debug.call_args[0][0]
