"""Data models shared by providers, the manager, and the chunking pipeline.

Request models are deliberately unconstrained at construction time:
``BaseProvider.validate_request`` reports every violation as a message list
instead of failing on the first bad field.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProviderType(StrEnum):
    """Tag identifying a concrete provider implementation."""

    OPENAI = "openai"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"


VALID_ROLES = frozenset({"system", "user", "assistant"})


# ---------------------------------------------------------------------------
# Provider configuration
# ---------------------------------------------------------------------------


class ProviderConfig(BaseModel):
    """Immutable configuration for one provider instance."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    api_key: str | None = None
    default_model: str = ""
    available_models: list[str] = Field(default_factory=list)
    requires_auth: bool = False
    is_local: bool = False
    max_tokens: int | None = None
    supports_streaming: bool | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(
        default=120.0, gt=0.0, description="Total budget for one chat completion."
    )


class ValidationResult(BaseModel):
    """Outcome of a configuration or request validation."""

    valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> ValidationResult:
        return cls(valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Chat exchange
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """A single role-tagged chat message."""

    role: str
    content: str


class ChatRequest(BaseModel):
    """One chat completion request."""

    model: str = ""
    messages: list[ChatMessage] = Field(default_factory=list)
    temperature: float | None = None
    max_tokens: int | None = None


class TokenUsage(BaseModel):
    """Token accounting reported by the upstream."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class ChatResponse(BaseModel):
    """Parsed chat completion response."""

    content: str
    model: str
    usage: TokenUsage | None = None
    finish_reason: str | None = None


# ---------------------------------------------------------------------------
# Transcript input
# ---------------------------------------------------------------------------


class TranscriptLine(BaseModel):
    """One timed caption line; offsets and durations are in milliseconds."""

    text: str
    offset: int = Field(ge=0)
    duration: int = Field(default=0, ge=0)

    @property
    def end(self) -> int:
        return self.offset + self.duration


class VideoMetadata(BaseModel):
    """Optional video context injected into prompts."""

    title: str | None = None
    channel: str | None = None
    description: str | None = None
    duration_seconds: int | None = Field(default=None, ge=0)


class TextChunk(BaseModel):
    """A bounded slice of transcript text, optionally with timing."""

    text: str
    index: int
    start_ms: int | None = None
    end_ms: int | None = None


# ---------------------------------------------------------------------------
# Manager reporting
# ---------------------------------------------------------------------------


class ProviderStatus(BaseModel):
    """Per-provider entry of the manager's status sweep."""

    available: bool
    connected: bool | None = None
    error: str | None = None
