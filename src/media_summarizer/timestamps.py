"""Post-hoc validation of timestamp markers in enhanced transcripts.

The enhancement prompt asks the model to reuse only input timestamps and to
stay within the video duration. Nothing forces it to, so callers check the
output here; markers are reported, never rewritten.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from media_summarizer.models import TranscriptLine

_TIMESTAMP_RE = re.compile(r"\[(\d{1,2}:\d{2}(?::\d{2})?)\](?:\(\))?")


class TimestampReport(BaseModel):
    """Result of checking the timestamp markers in one text."""

    valid: bool
    found: list[str] = Field(default_factory=list)
    out_of_range: list[str] = Field(default_factory=list)
    unknown: list[str] = Field(default_factory=list)


def parse_timestamp(value: str) -> int:
    """Convert ``MM:SS`` or ``HH:MM:SS`` to seconds.

    Raises:
        ValueError: If ``value`` is not a two- or three-part timestamp.
    """
    parts = [int(part) for part in value.split(":")]
    if len(parts) == 2:
        minutes, seconds = parts
        return minutes * 60 + seconds
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return hours * 3600 + minutes * 60 + seconds
    raise ValueError(f"Unrecognised timestamp: {value!r}")


def find_timestamps(text: str) -> list[str]:
    """Return the ``[MM:SS]`` / ``[H:MM:SS]`` markers in order of appearance."""
    return _TIMESTAMP_RE.findall(text)


def allowed_seconds_from_lines(lines: Sequence[TranscriptLine]) -> set[int]:
    """Whole-second offsets of the input lines, the only legal markers."""
    return {line.offset // 1000 for line in lines}


def validate_timestamps(
    text: str,
    duration_seconds: int,
    allowed_seconds: Iterable[int] | None = None,
) -> TimestampReport:
    """Check every timestamp marker in ``text``.

    Args:
        text: Model output to inspect.
        duration_seconds: Video duration; later markers are out of range.
        allowed_seconds: When given, markers not in this set are reported
            as ``unknown`` (invented rather than copied from the input).

    Returns:
        A report listing the found, out-of-range, and unknown markers.
    """
    allowed = set(allowed_seconds) if allowed_seconds is not None else None
    found = find_timestamps(text)
    out_of_range: list[str] = []
    unknown: list[str] = []

    for marker in found:
        seconds = parse_timestamp(marker)
        if seconds > duration_seconds:
            out_of_range.append(marker)
        elif allowed is not None and seconds not in allowed:
            unknown.append(marker)

    return TimestampReport(
        valid=not out_of_range and not unknown,
        found=found,
        out_of_range=out_of_range,
        unknown=unknown,
    )
