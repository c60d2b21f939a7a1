"""OpenAI chat-completions provider."""

from __future__ import annotations

from typing import Any

from media_summarizer.config import DEFAULT_OPENAI_MODEL
from media_summarizer.models import ProviderConfig, ProviderType
from media_summarizer.providers.base import BaseProvider, merge_overrides

OPENAI_BASE_URL = "https://api.openai.com/v1"

OPENAI_DEFAULT_MODELS = [
    "gpt-4o-mini",
    "gpt-4o",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
]

# Completion-only and legacy endpoint families that reject chat requests.
_NON_CHAT_MARKERS = ("instruct", "edit", "search")


class OpenAIProvider(BaseProvider):
    """Keyed OpenAI backend with the GPT model family."""

    provider_type = ProviderType.OPENAI

    summary_chunk_size = 8000
    summary_max_tokens = 1000
    enhance_max_tokens = 4000

    @classmethod
    def default_config(cls, **overrides: Any) -> ProviderConfig:
        defaults: dict[str, Any] = {
            "name": "OpenAI",
            "base_url": OPENAI_BASE_URL,
            "api_key": "",
            "default_model": DEFAULT_OPENAI_MODEL,
            "available_models": list(OPENAI_DEFAULT_MODELS),
            "requires_auth": True,
            "is_local": False,
            "max_tokens": 4096,
            "supports_streaming": True,
        }
        return ProviderConfig(**merge_overrides(defaults, overrides))

    def _is_chat_model(self, model_id: str) -> bool:
        return "gpt" in model_id and not any(
            marker in model_id for marker in _NON_CHAT_MARKERS
        )
