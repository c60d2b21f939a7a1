"""Prompt builders for transcript summarization and enhancement.

Templates live in YAML files under ``templates/`` beside this module and are
filled with ``str.format``.
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Literal

import structlog
import yaml

from media_summarizer.chunking import format_duration
from media_summarizer.models import ChatMessage, VideoMetadata

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_PROMPTS_DIR = Path(__file__).parent / "templates"

SummaryStyle = Literal["detailed", "local"]


# ---------------------------------------------------------------------------
# Prompt loading
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def load_prompt(name: str) -> dict[str, str]:
    """Load a prompt template file from the ``templates`` directory.

    Args:
        name: File stem, e.g. ``"summarizer"`` or ``"enhancer"``.

    Returns:
        Mapping of template keys to template strings.
    """
    path = _PROMPTS_DIR / f"{name}.yaml"
    with path.open(encoding="utf-8") as f:
        result: dict[str, str] = yaml.safe_load(f)
    return result


# ---------------------------------------------------------------------------
# Context lines
# ---------------------------------------------------------------------------


def _context_lines(metadata: VideoMetadata | None, style: SummaryStyle) -> str:
    if metadata is None:
        return ""
    if style == "local":
        return f"Title: {metadata.title}\n" if metadata.title else ""

    lines: list[str] = []
    if metadata.title:
        lines.append(f'Video Title: "{metadata.title}"')
    if metadata.channel:
        lines.append(f'Channel: "{metadata.channel}"')
    if metadata.description:
        lines.append(f'Description: "{metadata.description}"')
    return "".join(f"{line}\n" for line in lines)


# ---------------------------------------------------------------------------
# Summarization
# ---------------------------------------------------------------------------


def build_summary_messages(
    chunk: str,
    metadata: VideoMetadata | None = None,
    *,
    part: int = 1,
    total: int = 1,
    style: SummaryStyle = "detailed",
) -> list[ChatMessage]:
    """Build the system and user messages for summarizing one chunk.

    Args:
        chunk: Transcript text for this request.
        metadata: Optional video context.
        part: 1-based index of this chunk.
        total: Number of chunks the transcript was split into.
        style: ``"local"`` selects the shorter wording for small local models.

    Returns:
        ``[system, user]`` messages.
    """
    templates = load_prompt("summarizer")
    system = templates["system_local"] if style == "local" else templates["system"]
    if total > 1:
        system = f"{system} {templates['part_note'].format(part=part, total=total)}"

    user_key = "user_local" if style == "local" else "user"
    user = templates[user_key].format(
        context=_context_lines(metadata, style), transcript=chunk
    )
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=user),
    ]


# ---------------------------------------------------------------------------
# Enhancement
# ---------------------------------------------------------------------------


def build_enhancement_messages(
    transcript: str,
    metadata: VideoMetadata | None = None,
    *,
    duration_seconds: int | None = None,
) -> list[ChatMessage]:
    """Build the messages for the transcript-cleanup task.

    The transcript should carry ``At MM:SS - text`` markers so the model can
    only reuse timestamps it was given.

    Args:
        transcript: Timestamped transcript text.
        metadata: Optional video context; title and description double as a
            spelling reference for names and technical terms.
        duration_seconds: Total video duration; falls back to the metadata
            duration when omitted.

    Returns:
        ``[system, user]`` messages.
    """
    templates = load_prompt("enhancer")
    if duration_seconds is None and metadata is not None:
        duration_seconds = metadata.duration_seconds

    context = _context_lines(metadata, "detailed")
    if duration_seconds:
        display = format_duration(duration_seconds)
        context += f"Video Duration: {display} ({duration_seconds} seconds)\n"
    else:
        display = "the video duration"

    user = templates["user"].format(
        context=context.rstrip("\n"),
        transcript=transcript,
        duration_display=display,
    )
    logger.debug(
        "enhancement_prompt_built",
        prompt_chars=len(user),
        duration_seconds=duration_seconds,
    )
    return [
        ChatMessage(role="system", content=templates["system"]),
        ChatMessage(role="user", content=user),
    ]
