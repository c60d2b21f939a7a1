"""Configuration with layered resolution: defaults -> YAML -> env -> overrides.

Uses pydantic-settings with YamlConfigSettingsSource for layered configuration.
Supports ``.env`` file loading, ``MEDIA_SUMMARIZER_`` prefixed env vars, and
nested delimiter ``__`` for overriding sub-model fields, e.g.
``MEDIA_SUMMARIZER_OPENAI__API_KEY``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal

import structlog
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from media_summarizer.models import ProviderType

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENROUTER_MODEL = "anthropic/claude-3.5-sonnet"
DEFAULT_OLLAMA_URL = "http://localhost:11434"


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class OpenAISettings(BaseModel):
    """Keyed OpenAI provider configuration."""

    api_key: str = ""
    model: str = DEFAULT_OPENAI_MODEL
    base_url: str = "https://api.openai.com/v1"


class OpenRouterSettings(BaseModel):
    """OpenRouter model-marketplace configuration."""

    api_key: str = ""
    model: str = DEFAULT_OPENROUTER_MODEL
    base_url: str = "https://openrouter.ai/api/v1"
    fallback_models: list[str] = Field(
        default_factory=list,
        description="Alternate models the router may fall back to, in order.",
    )
    auto_select_model: bool = Field(
        default=True,
        description="Pick a model tier from transcript size when summarizing.",
    )


class OllamaSettings(BaseModel):
    """Local Ollama daemon configuration."""

    base_url: str = DEFAULT_OLLAMA_URL
    model: str = ""


class RequestSettings(BaseModel):
    """Per-request behaviour shared by every provider."""

    timeout: float = Field(
        default=120.0, gt=0.0, description="Total request budget in seconds."
    )
    deduplicate: bool = Field(
        default=True,
        description="Share one in-flight call between identical concurrent requests.",
    )


class LoggingSettings(BaseModel):
    """Logging / observability configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Main Settings (layered resolution)
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Top-level settings consumed by the provider manager.

    Resolution order (last wins):
        1. Field defaults (defined above)
        2. YAML config file (``config.yaml`` or ``--config`` path)
        3. Environment variables (prefixed ``MEDIA_SUMMARIZER_``)
        4. Programmatic overrides
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_SUMMARIZER_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="config.yaml",
        yaml_file_encoding="utf-8",
        extra="ignore",
    )

    _config_path_override: ClassVar[Path | None] = None

    current_provider: ProviderType = ProviderType.OPENAI
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    request: RequestSettings = Field(default_factory=RequestSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings source priority.

        Resolution order (first = highest priority):
            init_settings > env_settings > dotenv (.env) > yaml > defaults
        """
        yaml_file = cls._config_path_override or settings_cls.model_config.get(
            "yaml_file", "config.yaml"
        )
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
        )

    @classmethod
    def load(cls, config_path: Path | None = None, **overrides: Any) -> Settings:
        """Load settings with optional config path and overrides.

        Args:
            config_path: Optional path to a YAML config file.
            **overrides: Key-value overrides applied at highest priority.

        Returns:
            Fully-resolved Settings instance.

        Raises:
            ValidationError: If any setting value fails validation.
        """
        cls._config_path_override = config_path
        try:
            return cls(**overrides)
        finally:
            cls._config_path_override = None

    @classmethod
    def from_legacy(
        cls, openai_api_key: str, ai_model: str = DEFAULT_OPENAI_MODEL
    ) -> Settings:
        """Migrate the single-key settings shape to provider-based settings.

        Older installs stored only ``openaiApiKey`` and ``aiModel``; those map
        onto the OpenAI provider, with the other providers at defaults.
        """
        logger.info("settings_migrated_from_legacy", model=ai_model)
        return cls(
            current_provider=ProviderType.OPENAI,
            openai=OpenAISettings(api_key=openai_api_key, model=ai_model),
        )


def format_validation_error(exc: ValidationError) -> str:
    """Format a Pydantic ValidationError into a user-friendly message.

    Args:
        exc: The validation error to format.

    Returns:
        A multi-line string with each error on its own line.
    """
    lines: list[str] = []
    for error in exc.errors():
        loc = " -> ".join(str(part) for part in error["loc"])
        msg = error["msg"]
        raw_input = error.get("input")
        if raw_input is not None:
            lines.append(f"  {loc}: {msg} (got {raw_input!r})")
        else:
            lines.append(f"  {loc}: {msg}")
    return "Configuration error:\n" + "\n".join(lines)
