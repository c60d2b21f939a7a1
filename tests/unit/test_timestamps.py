"""Unit tests for media_summarizer.timestamps - enhancement output checks."""

from __future__ import annotations

import pytest

from media_summarizer.models import TranscriptLine
from media_summarizer.timestamps import (
    allowed_seconds_from_lines,
    find_timestamps,
    parse_timestamp,
    validate_timestamps,
)


class TestParseTimestamp:
    def test_minutes_seconds(self) -> None:
        assert parse_timestamp("04:10") == 250

    def test_hours_minutes_seconds(self) -> None:
        assert parse_timestamp("01:02:03") == 3723

    def test_rejects_single_part(self) -> None:
        with pytest.raises(ValueError, match="Unrecognised"):
            parse_timestamp("42")


class TestFindTimestamps:
    def test_markers_with_and_without_link_suffix(self) -> None:
        text = "### Intro\n[00:00]() Hello.\n\n[01:30] Then.\n[1:02:03]() Late."
        assert find_timestamps(text) == ["00:00", "01:30", "1:02:03"]

    def test_plain_text_has_none(self) -> None:
        assert find_timestamps("At 00:10 - no brackets here") == []


class TestValidateTimestamps:
    """Markers must stay inside the video and come from the input."""

    def test_flags_markers_past_duration(self) -> None:
        text = "[00:00]() Start.\n\n[04:00]() Middle.\n\n[04:20]() Invented."
        report = validate_timestamps(text, duration_seconds=250)
        assert report.valid is False
        assert report.out_of_range == ["04:20"]

    def test_marker_at_duration_is_valid(self) -> None:
        report = validate_timestamps("[04:10]() End.", duration_seconds=250)
        assert report.valid is True
        assert report.found == ["04:10"]

    def test_unknown_markers_reported_with_allowed_set(self) -> None:
        lines = [
            TranscriptLine(text="a", offset=0, duration=1000),
            TranscriptLine(text="b", offset=30_500, duration=1000),
        ]
        allowed = allowed_seconds_from_lines(lines)
        assert allowed == {0, 30}

        report = validate_timestamps("[00:00]() a [00:30]() b [00:45]() c", 60, allowed)
        assert report.valid is False
        assert report.unknown == ["00:45"]
        assert report.out_of_range == []

    def test_text_without_markers_is_valid(self) -> None:
        report = validate_timestamps("No markers at all.", duration_seconds=10)
        assert report.valid is True
        assert report.found == []
