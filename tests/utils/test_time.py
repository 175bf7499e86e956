"""
Tests for exchange timestamp utilities.
"""

from datetime import datetime, timezone
from unittest.mock import patch

from execguard.utils.time import current_time_ms, is_within_window, ms_to_datetime


class TestCurrentTimeMs:
    """Test current_time_ms function."""

    def test_uses_wall_clock(self):
        """Should convert time.time() seconds to integer milliseconds."""
        with patch('execguard.utils.time.time') as mock_time:
            mock_time.time.return_value = 1700000000.1239

            assert current_time_ms() == 1700000000123

    def test_returns_int(self):
        assert isinstance(current_time_ms(), int)


class TestMsToDatetime:
    """Test ms_to_datetime function."""

    def test_converts_to_utc(self):
        result = ms_to_datetime(1672574400000)
        assert result == datetime(2023, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_keeps_milliseconds(self):
        result = ms_to_datetime(1672574400250)
        assert result.microsecond == 250000

    def test_none(self):
        assert ms_to_datetime(None) is None


class TestIsWithinWindow:
    """Test is_within_window function."""

    def test_inside_window_either_direction(self):
        assert is_within_window(1000, 1500, 500) is True
        assert is_within_window(2000, 1500, 500) is True

    def test_outside_window(self):
        assert is_within_window(999, 1500, 500) is False
        assert is_within_window(2001, 1500, 500) is False
