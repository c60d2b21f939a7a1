"""LLM provider implementations and the settings-driven factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from media_summarizer.models import ProviderType
from media_summarizer.providers.base import BaseProvider
from media_summarizer.providers.ollama import OllamaProvider
from media_summarizer.providers.openai import OpenAIProvider
from media_summarizer.providers.openrouter import OpenRouterProvider, select_model

if TYPE_CHECKING:
    from media_summarizer.config import Settings
    from media_summarizer.transport import HttpClient

__all__ = [
    "BaseProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "build_providers",
    "create_provider",
    "select_model",
]


def create_provider(
    provider_type: ProviderType,
    settings: Settings,
    http: HttpClient | None = None,
) -> BaseProvider | None:
    """Build one provider from settings.

    Args:
        provider_type: Which provider to build.
        settings: Resolved settings.
        http: Transport shared by the provider; defaults to a fresh
            ``HttpxClient``.

    Returns:
        The provider, or ``None`` for a keyed provider whose key is unset.
    """
    timeout = settings.request.timeout

    if provider_type == ProviderType.OPENAI:
        if not settings.openai.api_key:
            return None
        config = OpenAIProvider.default_config(
            api_key=settings.openai.api_key,
            base_url=settings.openai.base_url,
            default_model=settings.openai.model,
            timeout_seconds=timeout,
        )
        return OpenAIProvider(config, http)

    if provider_type == ProviderType.OPENROUTER:
        if not settings.openrouter.api_key:
            return None
        config = OpenRouterProvider.default_config(
            api_key=settings.openrouter.api_key,
            base_url=settings.openrouter.base_url,
            default_model=settings.openrouter.model,
            timeout_seconds=timeout,
        )
        return OpenRouterProvider(
            config,
            http,
            fallback_models=settings.openrouter.fallback_models,
            auto_select_model=settings.openrouter.auto_select_model,
        )

    if provider_type == ProviderType.OLLAMA:
        config = OllamaProvider.default_config(
            base_url=settings.ollama.base_url,
            default_model=settings.ollama.model,
            timeout_seconds=timeout,
        )
        return OllamaProvider(config, http)

    raise ValueError(f"Unknown provider type: {provider_type!r}")


def build_providers(
    settings: Settings, http: HttpClient | None = None
) -> dict[ProviderType, BaseProvider]:
    """Build every provider the settings allow.

    Keyed providers are included only when their key is set; the local
    daemon provider is always included.
    """
    providers: dict[ProviderType, BaseProvider] = {}
    for provider_type in ProviderType:
        provider = create_provider(provider_type, settings, http)
        if provider is not None:
            providers[provider_type] = provider
    return providers
