"""Ollama provider for models served by a local daemon.

Chat goes through Ollama's OpenAI-compatible endpoint; reachability and the
installed-model catalog come from the native ``/api/tags`` endpoint. Every
chat request is preceded by a reachability probe so a stopped daemon fails
fast with ``ServiceNotRunningError`` instead of a generic network error.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from media_summarizer.config import DEFAULT_OLLAMA_URL
from media_summarizer.exceptions import (
    ConfigurationError,
    MediaSummarizerError,
    ProtocolError,
    ServiceNotRunningError,
    TransportError,
)
from media_summarizer.models import ChatRequest, ProviderConfig, ProviderType
from media_summarizer.providers.base import BaseProvider, merge_overrides

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

OLLAMA_DEFAULT_MODELS = [
    "llama3.1:8b",
    "llama3.1:70b",
    "mistral:7b",
    "mistral:latest",
    "codellama:7b",
    "codellama:13b",
    "phi3:3.8b",
    "phi3:14b",
    "gemma:7b",
    "qwen2:7b",
]

PROBE_TIMEOUT_SECONDS = 5.0
PULL_TIMEOUT_SECONDS = 600.0


class OllamaProvider(BaseProvider):
    """Local Ollama backend; no API key, one daemon per base URL."""

    provider_type = ProviderType.OLLAMA
    chat_path = "/v1/chat/completions"
    models_path = "/api/tags"

    summary_chunk_size = 4000
    summary_max_tokens = 800
    summary_style = "local"
    enhance_max_tokens = 4000
    enhance_temperature = 0.2
    enhance_scales_with_input = True

    @classmethod
    def default_config(cls, **overrides: Any) -> ProviderConfig:
        defaults: dict[str, Any] = {
            "name": "Ollama",
            "base_url": DEFAULT_OLLAMA_URL,
            "api_key": None,
            "default_model": "",
            "available_models": list(OLLAMA_DEFAULT_MODELS),
            "requires_auth": False,
            "is_local": True,
            "max_tokens": 4096,
            "supports_streaming": True,
        }
        return ProviderConfig(**merge_overrides(defaults, overrides))

    # -----------------------------------------------------------------------
    # Daemon probes
    # -----------------------------------------------------------------------

    async def is_running(self) -> bool:
        """Return True if the daemon answers ``GET /api/tags`` with 200."""
        try:
            response = await self._http.request(
                "GET",
                self._url(self.models_path),
                headers=self._headers(),
                timeout=PROBE_TIMEOUT_SECONDS,
            )
        except TransportError as exc:
            logger.debug("ollama_probe_failed", base_url=self._config.base_url, error=str(exc))
            return False
        return response.status_code == 200

    async def list_installed_models(self) -> list[str]:
        """Return the names of locally installed models, possibly none.

        Raises:
            ServiceNotRunningError: If the daemon cannot be reached.
            TransportError: If the daemon answers with a non-200 status.
            ProtocolError: If the listing has no ``models`` array.
        """
        try:
            response = await self._http.request(
                "GET",
                self._url(self.models_path),
                headers=self._headers(),
                timeout=PROBE_TIMEOUT_SECONDS,
            )
        except TransportError as exc:
            raise self._not_running() from exc
        self._raise_for_status(response)
        return self._parse_model_list(response.json)

    async def pull_model(self, name: str) -> bool:
        """Ask the daemon to download ``name``; True on success."""
        try:
            response = await self._http.request(
                "POST",
                self._url("/api/pull"),
                headers=self._headers(),
                body={"name": name, "stream": False},
                timeout=PULL_TIMEOUT_SECONDS,
            )
            self._raise_for_status(response)
        except MediaSummarizerError as exc:
            logger.warning("ollama_pull_failed", model=name, error=str(exc))
            return False
        logger.info("ollama_model_pulled", model=name)
        return True

    def _not_running(self) -> ServiceNotRunningError:
        return ServiceNotRunningError(
            f"Ollama is not running at {self._config.base_url}. "
            "Please start Ollama first.",
            provider=self.name,
        )

    # -----------------------------------------------------------------------
    # Contract overrides
    # -----------------------------------------------------------------------

    def _ensure_configured(self, request: ChatRequest) -> None:
        super()._ensure_configured(request)
        if not request.model and not self._config.default_model:
            raise ConfigurationError(
                "No Ollama model selected. Install a model with "
                "'ollama pull <model>' and choose it in the plugin settings."
            )

    async def _before_request(self, cancel_event: asyncio.Event | None) -> None:
        if not await self.is_running():
            raise self._not_running()

    def _build_body(self, request: ChatRequest) -> dict[str, Any]:
        body = super()._build_body(request)
        body["stream"] = False
        body["options"] = {
            "temperature": body["temperature"],
            "num_predict": body["max_tokens"],
        }
        return body

    def _parse_model_list(self, payload: Any) -> list[str]:
        if not isinstance(payload, dict) or not isinstance(payload.get("models"), list):
            raise ProtocolError("Ollama model listing has no models array")
        return sorted(
            str(item["name"])
            for item in payload["models"]
            if isinstance(item, dict) and item.get("name")
        )

    async def test_connection(self) -> bool:
        if not await self.is_running():
            logger.warning("connection_test_failed", provider=self.name, error="not running")
            return False
        return await super().test_connection()

    async def get_available_models(self) -> list[str]:
        """Installed models, or the static catalog when none or unreachable."""
        try:
            installed = await self.list_installed_models()
        except MediaSummarizerError as exc:
            logger.warning("model_listing_failed", provider=self.name, error=str(exc))
            return list(self._config.available_models)
        return installed or list(self._config.available_models)
