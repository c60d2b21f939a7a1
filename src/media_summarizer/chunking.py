"""Sentence-bounded transcript chunking and transcript-line formatting.

Chunk budgets are measured in characters and supplied by the caller, so each
provider can size chunks for its backend's context window. Chunks never split
a sentence (or, for timed lines, a caption line); a single sentence longer
than the budget becomes its own oversized chunk.
"""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING

from media_summarizer.models import TextChunk

if TYPE_CHECKING:
    from collections.abc import Sequence

    from media_summarizer.models import TranscriptLine

DEFAULT_CHUNK_SIZE = 6000

_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")


# ---------------------------------------------------------------------------
# Plain-text chunking
# ---------------------------------------------------------------------------


def split_sentences(text: str) -> list[str]:
    """Split text after ``.``, ``!`` and ``?``, keeping the terminators.

    Empty and whitespace-only pieces are discarded.
    """
    return [piece.strip() for piece in _SENTENCE_BOUNDARY_RE.split(text) if piece.strip()]


def chunk_text(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split ``text`` into chunks of at most ``max_chunk_size`` characters.

    Sentences are accumulated greedily; when the next sentence would push the
    current chunk past the budget, the chunk is closed and the sentence starts
    a new one.

    Args:
        text: Text to split.
        max_chunk_size: Character budget per chunk.

    Returns:
        At least one chunk. Text that already fits is returned unchanged.

    Raises:
        ValueError: If ``max_chunk_size`` is not positive.
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    if len(text) <= max_chunk_size:
        return [text]

    chunks: list[str] = []
    current = ""
    for sentence in split_sentences(text):
        if current and len(current) + 1 + len(sentence) > max_chunk_size:
            chunks.append(current)
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence

    if current:
        chunks.append(current)

    return chunks or [text]


def combine_chunk_results(results: Sequence[str]) -> str:
    """Join per-chunk results into one document.

    A single result is returned as-is; several are numbered and separated
    by horizontal rules under a ``# Video Summary`` heading.
    """
    if len(results) == 1:
        return results[0]
    parts = [f"**Part {i}:**\n{result}" for i, result in enumerate(results, start=1)]
    return "# Video Summary\n\n" + "\n\n---\n\n".join(parts)


# ---------------------------------------------------------------------------
# Timed transcript lines
# ---------------------------------------------------------------------------


def _make_chunk(lines: Sequence[TranscriptLine], index: int) -> TextChunk:
    return TextChunk(
        text=" ".join(line.text.strip() for line in lines),
        index=index,
        start_ms=lines[0].offset,
        end_ms=lines[-1].end,
    )


def _overlap_tail(
    lines: Sequence[TranscriptLine], overlap_chars: int
) -> list[TranscriptLine]:
    tail: list[TranscriptLine] = []
    total = 0
    for line in reversed(lines):
        if total + len(line.text) > overlap_chars:
            break
        tail.insert(0, line)
        total += len(line.text)
    return tail


def chunk_transcript_lines(
    lines: Sequence[TranscriptLine],
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap_chars: int = 0,
) -> list[TextChunk]:
    """Group timed lines into chunks that keep their start and end offsets.

    Args:
        lines: Caption lines ordered by offset.
        max_chunk_size: Character budget per chunk.
        overlap_chars: Trailing characters of context (whole lines) repeated
            at the start of the next chunk.

    Returns:
        Chunks in order; empty when ``lines`` is empty.
    """
    chunks: list[TextChunk] = []
    current: list[TranscriptLine] = []
    current_len = 0

    for line in lines:
        added = len(line.text.strip()) + (1 if current else 0)
        if current and current_len + added > max_chunk_size:
            chunks.append(_make_chunk(current, len(chunks)))
            current = _overlap_tail(current, overlap_chars) if overlap_chars else []
            current_len = len(" ".join(item.text.strip() for item in current))
            added = len(line.text.strip()) + (1 if current else 0)
        current.append(line)
        current_len += added

    if current:
        chunks.append(_make_chunk(current, len(chunks)))
    return chunks


def transcript_duration_ms(lines: Sequence[TranscriptLine]) -> int:
    """Total duration: the last line's offset plus its duration."""
    if not lines:
        return 0
    return lines[-1].end


def transcript_duration_seconds(lines: Sequence[TranscriptLine]) -> int:
    return math.ceil(transcript_duration_ms(lines) / 1000)


def transcript_plain_text(lines: Sequence[TranscriptLine]) -> str:
    return " ".join(line.text.strip() for line in lines if line.text.strip())


def format_timestamp(seconds: int) -> str:
    """Render seconds as ``MM:SS``, or ``H:MM:SS`` from one hour on."""
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_duration(seconds: int) -> str:
    """Render a duration as ``M:SS`` (minutes are not wrapped into hours)."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def format_transcript_lines(lines: Sequence[TranscriptLine]) -> str:
    """Render lines as ``At MM:SS - text``, the form the enhancer consumes."""
    return "\n".join(
        f"At {format_timestamp(line.offset // 1000)} - {line.text.strip()}"
        for line in lines
    )
