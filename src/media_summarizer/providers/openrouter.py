"""OpenRouter provider: one key, many upstream vendors.

OpenRouter speaks the OpenAI chat-completions dialect. Requests carry
attribution headers and ask the router to fall back to alternate models when
the primary upstream fails.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from media_summarizer.config import DEFAULT_OPENROUTER_MODEL
from media_summarizer.models import ChatRequest, ProviderConfig, ProviderType
from media_summarizer.providers.base import BaseProvider, merge_overrides

if TYPE_CHECKING:
    from collections.abc import Sequence

    from media_summarizer.transport import HttpClient

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

ATTRIBUTION_HEADERS = {
    "HTTP-Referer": "https://github.com/jonathanhorst/obsidian-media-summarizer",
    "X-Title": "Media Summarizer Plugin",
}

LARGE_TRANSCRIPT_CHARS = 20_000
MEDIUM_TRANSCRIPT_CHARS = 5_000

LARGE_CONTEXT_MODEL = "anthropic/claude-3.5-sonnet"
BALANCED_MODEL = "openai/gpt-4o-mini"
FAST_MODEL = "anthropic/claude-3-haiku"

_NON_CHAT_MARKERS = ("embedding", "moderation")


def select_model(text: str) -> str:
    """Pick a model tier from the transcript length.

    Long transcripts go to the large-context model, medium ones to a cheap
    balanced model, short ones to the fastest model.
    """
    length = len(text)
    if length > LARGE_TRANSCRIPT_CHARS:
        return LARGE_CONTEXT_MODEL
    if length > MEDIUM_TRANSCRIPT_CHARS:
        return BALANCED_MODEL
    return FAST_MODEL


class OpenRouterProvider(BaseProvider):
    """Keyed OpenRouter backend with fallback routing.

    Attributes:
        fallback_models: Alternate models the router may try, in order.
        auto_select_model: Choose the summarization model from transcript
            size when no model is pinned on the call.
    """

    provider_type = ProviderType.OPENROUTER

    summary_chunk_size = 12000
    summary_max_tokens = 1200
    enhance_max_tokens = 6000
    enhance_temperature = 0.2
    enhance_scales_with_input = True

    def __init__(
        self,
        config: ProviderConfig | None = None,
        http: HttpClient | None = None,
        *,
        fallback_models: Sequence[str] = (),
        auto_select_model: bool = True,
    ) -> None:
        super().__init__(config, http)
        self.fallback_models = list(fallback_models)
        self.auto_select_model = auto_select_model

    @classmethod
    def default_config(cls, **overrides: Any) -> ProviderConfig:
        defaults: dict[str, Any] = {
            "name": "OpenRouter",
            "base_url": OPENROUTER_BASE_URL,
            "api_key": "",
            "default_model": DEFAULT_OPENROUTER_MODEL,
            "available_models": [],
            "requires_auth": True,
            "is_local": False,
            "max_tokens": 8192,
            "supports_streaming": True,
            "headers": dict(ATTRIBUTION_HEADERS),
        }
        return ProviderConfig(**merge_overrides(defaults, overrides))

    def _build_body(self, request: ChatRequest) -> dict[str, Any]:
        body = super()._build_body(request)
        body["route"] = "fallback"
        fallbacks = [name for name in self.fallback_models if name != request.model]
        if fallbacks:
            body["models"] = [request.model, *fallbacks]
        return body

    def _is_chat_model(self, model_id: str) -> bool:
        return "/" in model_id and not any(
            marker in model_id for marker in _NON_CHAT_MARKERS
        )

    def _summary_model(self, transcript: str) -> str:
        if self.auto_select_model:
            return select_model(transcript)
        return self._config.default_model
