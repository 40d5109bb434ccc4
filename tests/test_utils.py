"""Tests for shortcheck.utils module."""

from __future__ import annotations

from shortcheck.utils import format_duration, format_size


class TestFormatDuration:
    def test_seconds_only(self) -> None:
        assert format_duration(45.0) == "0:45"

    def test_minutes_and_seconds(self) -> None:
        assert format_duration(125.0) == "2:05"

    def test_hours_minutes_seconds(self) -> None:
        assert format_duration(3725.0) == "1:02:05"

    def test_zero(self) -> None:
        assert format_duration(0.0) == "0:00"

    def test_float_seconds(self) -> None:
        assert format_duration(90.7) == "1:30"


class TestFormatSize:
    def test_bytes(self) -> None:
        assert format_size(500) == "500.0 B"

    def test_kilobytes(self) -> None:
        assert format_size(1500) == "1.5 KB"

    def test_megabytes(self) -> None:
        assert format_size(1572864) == "1.5 MB"

