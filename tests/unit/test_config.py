"""Unit tests for media_summarizer.config - Settings loading and validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from media_summarizer.config import (
    DEFAULT_OLLAMA_URL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_OPENROUTER_MODEL,
    LoggingSettings,
    OllamaSettings,
    OpenRouterSettings,
    RequestSettings,
    Settings,
    format_validation_error,
)
from media_summarizer.models import ProviderType

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

# ---- Sub-model defaults ------------------------------------------------------


class TestProviderSettings:
    """Per-provider sub-models have working defaults."""

    def test_openrouter_defaults(self) -> None:
        s = OpenRouterSettings()
        assert s.model == DEFAULT_OPENROUTER_MODEL
        assert s.fallback_models == []
        assert s.auto_select_model is True

    def test_ollama_defaults(self) -> None:
        s = OllamaSettings()
        assert s.base_url == DEFAULT_OLLAMA_URL
        assert s.model == ""


class TestRequestSettings:
    def test_defaults(self) -> None:
        s = RequestSettings()
        assert s.timeout == 120.0
        assert s.deduplicate is True

    def test_zero_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RequestSettings(timeout=0)


class TestLoggingSettings:
    def test_invalid_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(level="LOUD")  # type: ignore[arg-type]


# ---- Layered resolution ------------------------------------------------------


class TestSettingsResolution:
    """Defaults, YAML, env vars, and overrides combine in order."""

    def test_defaults(self, make_settings: Callable[..., Settings]) -> None:
        s = make_settings()
        assert s.current_provider == ProviderType.OPENAI
        assert s.openai.model == DEFAULT_OPENAI_MODEL
        assert s.openai.api_key == ""

    def test_overrides(self, make_settings: Callable[..., Settings]) -> None:
        s = make_settings(current_provider="ollama", ollama={"model": "llama3.1:8b"})
        assert s.current_provider == ProviderType.OLLAMA
        assert s.ollama.model == "llama3.1:8b"

    def test_unknown_provider_rejected(
        self, make_settings: Callable[..., Settings]
    ) -> None:
        with pytest.raises(ValidationError):
            make_settings(current_provider="anthropic")

    def test_nested_env_var_override(
        self,
        make_settings: Callable[..., Settings],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("MEDIA_SUMMARIZER_OPENAI__API_KEY", "sk-env")
        assert make_settings().openai.api_key == "sk-env"

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "custom.yaml"
        yaml_file.write_text(
            "current_provider: openrouter\n"
            "openrouter:\n"
            "  api_key: or-key\n"
            "  fallback_models:\n"
            "    - openai/gpt-4o-mini\n"
        )
        s = Settings.load(config_path=yaml_file)
        assert s.current_provider == ProviderType.OPENROUTER
        assert s.openrouter.api_key == "or-key"
        assert s.openrouter.fallback_models == ["openai/gpt-4o-mini"]

    def test_env_var_overrides_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("request:\n  timeout: 30\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MEDIA_SUMMARIZER_REQUEST__TIMEOUT", "45")
        assert Settings.load(config_path=yaml_file).request.timeout == 45

    def test_override_beats_env_var(
        self, make_settings: Callable[..., Settings], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("MEDIA_SUMMARIZER_OPENAI__MODEL", "gpt-4")
        s = make_settings(openai={"model": "gpt-4o"})
        assert s.openai.model == "gpt-4o"


class TestLegacyMigration:
    """Single-key settings map onto the OpenAI provider."""

    def test_from_legacy(self, make_settings: Callable[..., Settings]) -> None:
        s = Settings.from_legacy("sk-old", "gpt-4")
        assert s.current_provider == ProviderType.OPENAI
        assert s.openai.api_key == "sk-old"
        assert s.openai.model == "gpt-4"
        assert s.openrouter.api_key == ""
        assert s.ollama.base_url == DEFAULT_OLLAMA_URL


class TestFormatValidationError:
    def test_includes_field_path(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RequestSettings(timeout=-1)
        message = format_validation_error(exc_info.value)
        assert message.startswith("Configuration error:")
        assert "timeout" in message
        assert "-1" in message
