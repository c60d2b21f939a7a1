"""Shared pytest fixtures for the media-summarizer test suite."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import pytest
import respx

from media_summarizer.config import Settings
from media_summarizer.models import TranscriptLine

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


def _chat_payload(content: str = "OK", model: str = "gpt-4o-mini") -> dict[str, Any]:
    """Build an OpenAI-style chat completion body."""
    return {
        "id": "chatcmpl-test",
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
    }


# ---------------------------------------------------------------------------
# HTTP mocking
# ---------------------------------------------------------------------------


@pytest.fixture()
def chat_body() -> Callable[..., dict[str, Any]]:
    """Factory for successful chat completion bodies."""
    return _chat_payload


@pytest.fixture()
def router() -> Iterator[respx.MockRouter]:
    """respx router intercepting every httpx request made during the test."""
    with respx.mock(assert_all_called=False) as mock_router:
        yield mock_router


# ---------------------------------------------------------------------------
# Transcript fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_lines() -> list[TranscriptLine]:
    """28 caption lines of 64 characters, about four minutes of video."""
    return [
        TranscriptLine(
            text=f"Sentence number {i:02d} talks about the topic at hand in some detail.",
            offset=i * 8500,
            duration=8000,
        )
        for i in range(28)
    ]


# ---------------------------------------------------------------------------
# Configuration fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_settings(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Callable[..., Settings]:
    """Return a factory building Settings isolated from local config files."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("MEDIA_SUMMARIZER_"):
            monkeypatch.delenv(name)

    def _make(**overrides: Any) -> Settings:
        return Settings.load(config_path=tmp_path / "absent.yaml", **overrides)

    return _make
