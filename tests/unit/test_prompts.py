"""Unit tests for media_summarizer.prompts - prompt builders."""

from __future__ import annotations

from media_summarizer.models import VideoMetadata
from media_summarizer.prompts import (
    build_enhancement_messages,
    build_summary_messages,
    load_prompt,
)


class TestLoadPrompt:
    """Prompt templates load from packaged YAML."""

    def test_summarizer_keys(self) -> None:
        templates = load_prompt("summarizer")
        assert {"system", "system_local", "part_note", "user", "user_local"} <= set(
            templates
        )

    def test_cached(self) -> None:
        assert load_prompt("enhancer") is load_prompt("enhancer")


class TestBuildSummaryMessages:
    """Summary prompt construction."""

    def test_system_then_user(self) -> None:
        messages = build_summary_messages("Some transcript.")
        assert [m.role for m in messages] == ["system", "user"]
        assert "Some transcript." in messages[1].content

    def test_metadata_context_lines(self) -> None:
        metadata = VideoMetadata(title="Rust in 100s", channel="Fireship", description="Fast")
        user = build_summary_messages("Body.", metadata)[1].content
        assert 'Video Title: "Rust in 100s"' in user
        assert 'Channel: "Fireship"' in user
        assert 'Description: "Fast"' in user

    def test_missing_metadata_fields_omitted(self) -> None:
        user = build_summary_messages("Body.", VideoMetadata(title="Only title"))[1].content
        assert "Channel:" not in user
        assert "Description:" not in user

    def test_part_note_when_chunked(self) -> None:
        system = build_summary_messages("Body.", part=2, total=3)[0].content
        assert "This is part 2 of 3 of a longer transcript." in system

    def test_no_part_note_for_single_chunk(self) -> None:
        system = build_summary_messages("Body.")[0].content
        assert "This is part" not in system

    def test_local_style_is_shorter(self) -> None:
        metadata = VideoMetadata(title="Talk", channel="Conf")
        detailed = build_summary_messages("Body.", metadata)
        local = build_summary_messages("Body.", metadata, style="local")
        assert len(local[0].content) < len(detailed[0].content)
        assert "Title: Talk" in local[1].content
        assert "Channel" not in local[1].content


class TestBuildEnhancementMessages:
    """Enhancement prompt construction."""

    def test_contains_transcript_and_rules(self) -> None:
        messages = build_enhancement_messages("At 00:00 - hello world")
        assert [m.role for m in messages] == ["system", "user"]
        user = messages[1].content
        assert "At 00:00 - hello world" in user
        assert "[MM:SS]()" in user
        assert "###" in user

    def test_duration_line_and_limit(self) -> None:
        user = build_enhancement_messages("At 00:00 - hi", duration_seconds=250)[1].content
        assert "Video Duration: 4:10 (250 seconds)" in user
        assert "must be <= 4:10" in user

    def test_duration_falls_back_to_metadata(self) -> None:
        metadata = VideoMetadata(title="Demo", duration_seconds=90)
        user = build_enhancement_messages("At 00:00 - hi", metadata)[1].content
        assert "Video Duration: 1:30 (90 seconds)" in user
        assert 'Video Title: "Demo"' in user

    def test_unknown_duration(self) -> None:
        user = build_enhancement_messages("At 00:00 - hi")[1].content
        assert "Video Duration" not in user
        assert "the video duration" in user
