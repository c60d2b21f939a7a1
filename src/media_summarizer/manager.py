"""Provider manager: the single entry point the host application talks to.

Holds the provider table built from settings, routes calls to the currently
selected provider, and turns every failure of the transcript operations into
an ``Error:``-prefixed string the UI can show as-is.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from typing import TYPE_CHECKING

import structlog

from media_summarizer.chunking import (
    format_transcript_lines,
    transcript_duration_seconds,
    transcript_plain_text,
)
from media_summarizer.exceptions import (
    AuthenticationError,
    ConfigurationError,
    MediaSummarizerError,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
    ServiceNotRunningError,
    TransportError,
)
from media_summarizer.logging import operation_logging_context
from media_summarizer.models import ProviderStatus, ProviderType, ValidationResult
from media_summarizer.providers import OllamaProvider, build_providers
from media_summarizer.timestamps import allowed_seconds_from_lines, validate_timestamps

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from media_summarizer.config import Settings
    from media_summarizer.models import (
        ChatRequest,
        ChatResponse,
        TranscriptLine,
        VideoMetadata,
    )
    from media_summarizer.providers import BaseProvider
    from media_summarizer.transport import HttpClient

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

NO_PROVIDER_MESSAGE = (
    "Error: No LLM provider is configured. Please set up an API key in plugin settings."
)
AUTH_MESSAGE = "Error: Invalid API key. Please check your API key in plugin settings."
RATE_LIMIT_MESSAGE = "Error: API rate limit exceeded. Please wait a moment and try again."
QUOTA_MESSAGE = "Error: API quota exceeded. Please check your account billing."
NETWORK_MESSAGE = (
    "Error: Network error while contacting API. "
    "Please check your internet connection and try again."
)
TIMEOUT_MESSAGE = "Error: The request timed out. Please try again."
CANCELLED_MESSAGE = "Error: The request was cancelled."
NO_MODELS_MESSAGE = "No models installed. Run 'ollama pull <model>' to install one."

_OPERATION_LABELS = {
    "summarize": "generate summary",
    "enhance": "enhance transcript",
}
_NETWORK_HINTS = ("network", "fetch", "connect")


# ---------------------------------------------------------------------------
# Error presentation
# ---------------------------------------------------------------------------


def format_user_error(exc: BaseException, operation: str) -> str:
    """Convert a failure into the ``Error:`` string shown to the user.

    The error type decides first; untyped errors fall back to status hints
    in the message text.

    Args:
        exc: The failure raised by a provider.
        operation: ``"summarize"`` or ``"enhance"``.

    Returns:
        A user-facing message starting with ``Error:``.
    """
    message = str(exc)

    if isinstance(exc, ProviderUnavailableError):
        return NO_PROVIDER_MESSAGE
    if isinstance(exc, AuthenticationError):
        return AUTH_MESSAGE
    if isinstance(exc, RateLimitError):
        return RATE_LIMIT_MESSAGE
    if isinstance(exc, QuotaExceededError):
        return QUOTA_MESSAGE
    if isinstance(exc, ServiceNotRunningError | ConfigurationError):
        return f"Error: {message}"
    if isinstance(exc, RequestTimeoutError):
        return TIMEOUT_MESSAGE
    if isinstance(exc, RequestCancelledError):
        return CANCELLED_MESSAGE

    lowered = message.lower()
    if "401" in lowered or "unauthorized" in lowered:
        return AUTH_MESSAGE
    if "429" in lowered:
        return RATE_LIMIT_MESSAGE
    if "402" in lowered:
        return QUOTA_MESSAGE
    if (isinstance(exc, TransportError) and exc.status_code is None) or any(
        hint in lowered for hint in _NETWORK_HINTS
    ):
        return NETWORK_MESSAGE

    label = _OPERATION_LABELS.get(operation, operation)
    return f"Error: Failed to {label}. {message}"


def _fingerprint(
    operation: str,
    provider_type: ProviderType,
    model: str,
    text: str,
    metadata: VideoMetadata | None,
) -> str:
    payload = json.dumps(
        {
            "operation": operation,
            "provider": provider_type.value,
            "model": model,
            "text": text,
            "metadata": metadata.model_dump(mode="json") if metadata else None,
        },
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class ProviderManager:
    """Routes LLM calls to the provider selected in settings.

    The provider table is rebuilt from scratch on every settings change and
    swapped in as one assignment, so a call in flight keeps the provider it
    started with.

    Args:
        settings: Resolved settings to build providers from.
        http: Transport shared by every provider; defaults to one
            ``HttpxClient`` per provider.
    """

    def __init__(self, settings: Settings, http: HttpClient | None = None) -> None:
        self._http = http
        self._providers: dict[ProviderType, BaseProvider] = {}
        self._current = settings.current_provider
        self._deduplicate = settings.request.deduplicate
        self._inflight: dict[str, asyncio.Future[str]] = {}
        self.update_settings(settings)

    def update_settings(self, settings: Settings) -> None:
        """Rebuild the provider table and switch to it atomically."""
        providers = build_providers(settings, self._http)
        self._providers = providers
        self._current = settings.current_provider
        self._deduplicate = settings.request.deduplicate
        logger.info(
            "providers_configured",
            current=self._current.value,
            available=[provider_type.value for provider_type in providers],
        )

    @property
    def current_provider_type(self) -> ProviderType:
        return self._current

    @property
    def current_provider(self) -> BaseProvider | None:
        return self._providers.get(self._current)

    def get_provider(self, provider_type: ProviderType) -> BaseProvider | None:
        return self._providers.get(provider_type)

    def is_provider_available(self, provider_type: ProviderType) -> bool:
        """Built and passing its configuration check."""
        provider = self._providers.get(provider_type)
        return provider is not None and provider.validate_config().valid

    # -----------------------------------------------------------------------
    # Pass-through operations
    # -----------------------------------------------------------------------

    async def chat_completion(
        self,
        request: ChatRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ChatResponse:
        """Send a request to the current provider.

        An empty ``request.model`` is replaced by the provider's default.

        Raises:
            ProviderUnavailableError: If the current provider is not built.
            MediaSummarizerError: Whatever the provider raises.
        """
        provider = self.current_provider
        if provider is None:
            raise ProviderUnavailableError(
                f"Provider {self._current.value} is not configured"
            )
        if not request.model:
            request = request.model_copy(update={"model": provider.config.default_model})
        return await provider.chat_completion(request, cancel_event=cancel_event)

    async def test_provider(self, provider_type: ProviderType) -> bool:
        provider = self._providers.get(provider_type)
        if provider is None:
            return False
        return await provider.test_connection()

    async def get_available_models(
        self, provider_type: ProviderType | None = None
    ) -> list[str]:
        """Models offered by a provider (the current one by default)."""
        provider = self._providers.get(provider_type or self._current)
        if provider is None:
            return []
        return await provider.get_available_models()

    def get_provider_validation(self) -> dict[ProviderType, ValidationResult]:
        """Configuration check for every provider type, built or not."""
        results: dict[ProviderType, ValidationResult] = {}
        for provider_type in ProviderType:
            provider = self._providers.get(provider_type)
            if provider is None:
                results[provider_type] = ValidationResult(
                    valid=False, errors=["Provider not initialized"]
                )
            else:
                results[provider_type] = provider.validate_config()
        return results

    async def get_provider_status(self) -> dict[ProviderType, ProviderStatus]:
        """Probe every provider type concurrently.

        Providers that are not built, or whose configuration does not
        validate, report ``available=False`` and are not probed; the
        validation errors land in ``error``. A reachable daemon with no
        installed models reports that in ``error``.
        """
        types = list(ProviderType)
        statuses = await asyncio.gather(*(self._status_for(t) for t in types))
        return dict(zip(types, statuses, strict=True))

    async def _status_for(self, provider_type: ProviderType) -> ProviderStatus:
        provider = self._providers.get(provider_type)
        if provider is None:
            return ProviderStatus(available=False)

        validation = provider.validate_config()
        if not validation.valid:
            return ProviderStatus(available=False, error="; ".join(validation.errors))

        try:
            connected = await provider.test_connection()
        except Exception as exc:
            return ProviderStatus(available=True, connected=False, error=str(exc))

        error: str | None = None
        if isinstance(provider, OllamaProvider):
            try:
                installed = await provider.list_installed_models()
            except MediaSummarizerError as exc:
                error = str(exc)
            else:
                if not installed:
                    error = NO_MODELS_MESSAGE
        return ProviderStatus(available=True, connected=connected, error=error)

    # -----------------------------------------------------------------------
    # Transcript operations
    # -----------------------------------------------------------------------

    async def summarize_transcript(
        self,
        transcript: str | Sequence[TranscriptLine],
        metadata: VideoMetadata | None = None,
    ) -> str:
        """Summarize a transcript with the current provider.

        Args:
            transcript: Plain text, or timed lines joined into plain text.
            metadata: Optional video context for the prompt.

        Returns:
            The summary, or an ``Error:`` string. Never raises.
        """
        text = transcript if isinstance(transcript, str) else transcript_plain_text(transcript)
        if text.startswith("Error:"):
            return text
        if not text.strip():
            return "Error: No transcript content to summarize."

        provider = self.current_provider
        if provider is None:
            return NO_PROVIDER_MESSAGE

        key = _fingerprint(
            "summarize", self._current, provider.config.default_model, text, metadata
        )
        return await self._run_once(
            key, lambda: self._summarize(provider, text, metadata)
        )

    async def _summarize(
        self,
        provider: BaseProvider,
        text: str,
        metadata: VideoMetadata | None,
    ) -> str:
        try:
            with operation_logging_context(
                "summarize", provider=provider.name, transcript_chars=len(text)
            ):
                return await provider.summarize_transcript(text, metadata)
        except Exception as exc:
            return format_user_error(exc, "summarize")

    async def enhance_transcript(
        self,
        transcript: str | Sequence[TranscriptLine],
        metadata: VideoMetadata | None = None,
    ) -> str:
        """Reformat a transcript with the current provider.

        Timed lines are rendered as ``At MM:SS - text`` and the video duration
        is taken from the last line. Timestamps in the result are checked
        against that duration (and, for timed input, the input offsets);
        violations are logged and the text is returned unchanged.

        Returns:
            The enhanced transcript, or an ``Error:`` string. Never raises.
        """
        allowed: set[int] | None = None
        if isinstance(transcript, str):
            text = transcript
            duration = metadata.duration_seconds if metadata else None
        else:
            text = format_transcript_lines(transcript)
            duration = transcript_duration_seconds(transcript) or None
            allowed = allowed_seconds_from_lines(transcript)

        if text.startswith("Error:"):
            return text
        if not text.strip():
            return "Error: No transcript content to enhance."

        provider = self.current_provider
        if provider is None:
            return NO_PROVIDER_MESSAGE

        key = _fingerprint(
            "enhance", self._current, provider.config.default_model, text, metadata
        )
        return await self._run_once(
            key, lambda: self._enhance(provider, text, metadata, duration, allowed)
        )

    async def _enhance(
        self,
        provider: BaseProvider,
        text: str,
        metadata: VideoMetadata | None,
        duration: int | None,
        allowed: set[int] | None,
    ) -> str:
        try:
            with operation_logging_context(
                "enhance", provider=provider.name, transcript_chars=len(text)
            ) as log:
                result = await provider.enhance_transcript(
                    text, metadata, duration_seconds=duration
                )
                if duration:
                    report = validate_timestamps(result, duration, allowed)
                    if not report.valid:
                        log.warning(
                            "enhancement_timestamps_invalid",
                            duration_seconds=duration,
                            out_of_range=report.out_of_range,
                            unknown=report.unknown,
                        )
                return result
        except Exception as exc:
            return format_user_error(exc, "enhance")

    async def _run_once(
        self, key: str, factory: Callable[[], Awaitable[str]]
    ) -> str:
        """Share one in-flight task between identical concurrent calls."""
        if not self._deduplicate:
            return await factory()

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task

            def _forget(done: asyncio.Future[str]) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)
        else:
            logger.info("request_deduplicated", fingerprint=key[:12])
        return await asyncio.shield(task)
