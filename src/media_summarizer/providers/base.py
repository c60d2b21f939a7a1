"""Provider contract shared by every LLM backend.

``BaseProvider`` implements the OpenAI-compatible chat-completion exchange,
validation, status classification, and the generic chunk-and-prompt
summarize/enhance path. Concrete providers tune that path through class
attributes (chunk budget, output ceilings, prompt style) and override the
hooks where their backend differs.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import structlog

from media_summarizer import __version__
from media_summarizer.chunking import DEFAULT_CHUNK_SIZE, chunk_text, combine_chunk_results
from media_summarizer.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ProtocolError,
    QuotaExceededError,
    RateLimitError,
    RequestTimeoutError,
    TransportError,
    ValidationError,
)
from media_summarizer.models import (
    VALID_ROLES,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ProviderConfig,
    ProviderType,
    TokenUsage,
    ValidationResult,
    VideoMetadata,
)
from media_summarizer.prompts import (
    SummaryStyle,
    build_enhancement_messages,
    build_summary_messages,
)
from media_summarizer.transport import HttpClient, HttpResponse, HttpxClient

if TYPE_CHECKING:
    from collections.abc import Mapping

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 4000
TEMPERATURE_MIN = 0.0
TEMPERATURE_MAX = 2.0

CONNECTION_TEST_PROMPT = 'Hello, this is a connection test. Please respond with "OK".'
CONNECTION_TEST_ACK = "ok"

_STATUS_ERRORS: dict[int, type[TransportError]] = {
    401: AuthenticationError,
    403: AuthenticationError,
    402: QuotaExceededError,
    429: RateLimitError,
}


def _error_detail(response: HttpResponse) -> str:
    """Pull the upstream's error message out of a failed response."""
    payload = response.json
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text[:200]


def _parse_usage(raw: Any) -> TokenUsage | None:
    """Usage accounting is optional; a malformed block counts as absent."""
    if not isinstance(raw, dict):
        return None
    try:
        return TokenUsage(
            prompt_tokens=max(int(raw.get("prompt_tokens") or 0), 0),
            completion_tokens=max(int(raw.get("completion_tokens") or 0), 0),
            total_tokens=max(int(raw.get("total_tokens") or 0), 0),
        )
    except (TypeError, ValueError, OverflowError):
        return None


class BaseProvider(ABC):
    """Abstract base for all LLM providers.

    Attributes:
        provider_type: Tag used by the manager's provider table.
        chat_path: Chat-completion path appended to the base URL.
        models_path: Model-listing path appended to the base URL.
        summary_chunk_size: Character budget per summarization chunk.
        summary_max_tokens: Output ceiling per summarization request.
        summary_style: Prompt wording used for summaries.
        enhance_max_tokens: Output ceiling for enhancement.
        enhance_scales_with_input: Cap enhancement output at twice the input
            length when that is below ``enhance_max_tokens``.
    """

    provider_type: ClassVar[ProviderType]
    chat_path: ClassVar[str] = "/chat/completions"
    models_path: ClassVar[str] = "/models"

    summary_chunk_size: ClassVar[int] = DEFAULT_CHUNK_SIZE
    summary_max_tokens: ClassVar[int] = 1000
    summary_temperature: ClassVar[float] = 0.3
    summary_style: ClassVar[SummaryStyle] = "detailed"
    enhance_max_tokens: ClassVar[int] = 4000
    enhance_temperature: ClassVar[float] = 0.3
    enhance_scales_with_input: ClassVar[bool] = False

    def __init__(
        self,
        config: ProviderConfig | None = None,
        http: HttpClient | None = None,
    ) -> None:
        self._config = config or self.default_config()
        self._http: HttpClient = http or HttpxClient(timeout=self._config.timeout_seconds)

    @classmethod
    @abstractmethod
    def default_config(cls, **overrides: Any) -> ProviderConfig:
        """Return this provider's stock configuration with ``overrides`` applied."""

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    def get_config(self) -> ProviderConfig:
        return self._config

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------

    def validate_config(self) -> ValidationResult:
        """Check that required configuration fields are present.

        Returns:
            Validity flag and one message per missing field.
        """
        errors: list[str] = []
        if not self._config.name:
            errors.append("Provider name is required")
        if not self._config.base_url:
            errors.append("Base URL is required")
        if self._config.requires_auth and not self._config.api_key:
            errors.append("API key is required for authenticated providers")
        if not self._config.default_model:
            errors.append("Default model is required")
        return ValidationResult.from_errors(errors)

    def validate_request(self, request: ChatRequest) -> ValidationResult:
        """Check a chat request before it is sent.

        Returns:
            Validity flag and one message per violation.
        """
        errors: list[str] = []
        if not request.model:
            errors.append("Model is required")
        if not request.messages:
            errors.append("Messages array is required")
        for index, message in enumerate(request.messages):
            if message.role not in VALID_ROLES:
                errors.append(f"Invalid role at message {index}")
            if not message.content:
                errors.append(f"Content is required at message {index}")
        if request.temperature is not None and not (
            TEMPERATURE_MIN <= request.temperature <= TEMPERATURE_MAX
        ):
            errors.append("Temperature must be between 0 and 2")
        if request.max_tokens is not None and request.max_tokens < 1:
            errors.append("Max tokens must be greater than 0")
        return ValidationResult.from_errors(errors)

    def _ensure_configured(self, request: ChatRequest) -> None:
        """Raise before any I/O when the credential or endpoint is missing."""
        if not self._config.base_url:
            raise ConfigurationError(f"{self.name} base URL is not configured")
        if self._config.requires_auth and not self._config.api_key:
            raise ConfigurationError(
                f"{self.name} API key is required. Add it in the plugin settings."
            )

    # -----------------------------------------------------------------------
    # HTTP helpers
    # -----------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{path}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"media-summarizer/{__version__}",
            **self._config.headers,
        }
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    def _build_body(self, request: ChatRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": [message.model_dump() for message in request.messages],
            "temperature": (
                request.temperature
                if request.temperature is not None
                else DEFAULT_TEMPERATURE
            ),
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }

    def _raise_for_status(self, response: HttpResponse) -> None:
        """Map a non-200 status onto the error taxonomy."""
        if response.status_code == 200:
            return
        status = response.status_code
        message = f"{self.name} API error: {status} {_error_detail(response)}".strip()
        error_cls = _STATUS_ERRORS.get(status, TransportError)
        raise error_cls(message, status_code=status, provider=self.name)

    def _parse_chat_response(
        self, response: HttpResponse, request: ChatRequest
    ) -> ChatResponse:
        data = response.json
        if not isinstance(data, dict):
            raise ProtocolError(f"{self.name} returned a non-JSON response")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise ProtocolError(f"No response from {self.name} API")

        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ProtocolError(f"{self.name} response is missing message content")

        finish_reason = first.get("finish_reason")
        return ChatResponse(
            content=content.strip(),
            model=str(data.get("model") or request.model),
            usage=_parse_usage(data.get("usage")),
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        )

    def _parse_model_list(self, payload: Any) -> list[str]:
        """Extract model ids from a ``{"data": [{"id": ...}]}`` listing."""
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
            raise ProtocolError(f"{self.name} model listing has no data array")
        ids = [
            str(item["id"])
            for item in payload["data"]
            if isinstance(item, dict) and item.get("id")
        ]
        return sorted(model_id for model_id in ids if self._is_chat_model(model_id))

    def _is_chat_model(self, model_id: str) -> bool:
        return True

    async def _before_request(self, cancel_event: asyncio.Event | None) -> None:
        """Hook run before the chat request is sent."""

    # -----------------------------------------------------------------------
    # Contract operations
    # -----------------------------------------------------------------------

    async def chat_completion(
        self,
        request: ChatRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ChatResponse:
        """Send one chat-completion request.

        Args:
            request: The request to send.
            cancel_event: When set, aborts the in-flight exchange.

        Returns:
            The parsed response with trimmed content.

        Raises:
            ConfigurationError: If the credential or base URL is missing.
            ValidationError: If the request fails validation.
            RequestTimeoutError: If ``timeout_seconds`` elapses.
            RequestCancelledError: If ``cancel_event`` fires.
            UpstreamPolicyError: On 401/403, 402, or 429.
            TransportError: On any other network failure or non-200 status.
            ProtocolError: If the body lacks a usable ``choices`` array.
        """
        self._ensure_configured(request)
        validation = self.validate_request(request)
        if not validation.valid:
            raise ValidationError(
                f"Invalid request: {', '.join(validation.errors)}", validation.errors
            )

        try:
            response = await asyncio.wait_for(
                self._exchange(request, cancel_event),
                timeout=self._config.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise RequestTimeoutError(
                f"{self.name} request timed out after {self._config.timeout_seconds:g}s",
                provider=self.name,
            ) from exc
        except TransportError as exc:
            if exc.provider is None:
                exc.provider = self.name
            raise

        self._raise_for_status(response)
        result = self._parse_chat_response(response, request)
        logger.info(
            "chat_completion_ok",
            provider=self.name,
            requested_model=request.model,
            model=result.model,
            finish_reason=result.finish_reason,
            total_tokens=result.usage.total_tokens if result.usage else None,
        )
        return result

    async def _exchange(
        self, request: ChatRequest, cancel_event: asyncio.Event | None
    ) -> HttpResponse:
        await self._before_request(cancel_event)
        return await self._http.request(
            "POST",
            self._url(self.chat_path),
            headers=self._headers(),
            body=self._build_body(request),
            timeout=self._config.timeout_seconds,
            cancel_event=cancel_event,
        )

    async def test_connection(self) -> bool:
        """Probe the backend with a tiny request; never raises.

        Returns:
            True only if the reply contains the acknowledgement token.
        """
        request = ChatRequest(
            model=self._config.default_model,
            messages=[ChatMessage(role="user", content=CONNECTION_TEST_PROMPT)],
            max_tokens=10,
        )
        try:
            response = await self.chat_completion(request)
        except Exception as exc:
            logger.warning("connection_test_failed", provider=self.name, error=str(exc))
            return False
        return CONNECTION_TEST_ACK in response.content.lower()

    async def get_available_models(self) -> list[str]:
        """List models from the backend, falling back to the static list.

        Never raises; an empty or failed listing yields
        ``config.available_models``.
        """
        try:
            response = await self._http.request(
                "GET",
                self._url(self.models_path),
                headers=self._headers(),
                timeout=self._config.timeout_seconds,
            )
            self._raise_for_status(response)
            models = self._parse_model_list(response.json)
        except Exception as exc:
            logger.warning("model_listing_failed", provider=self.name, error=str(exc))
            return list(self._config.available_models)
        return models or list(self._config.available_models)

    # -----------------------------------------------------------------------
    # Transcript operations
    # -----------------------------------------------------------------------

    def _summary_model(self, transcript: str) -> str:
        return self._config.default_model

    def _enhance_output_tokens(self, transcript: str) -> int:
        if self.enhance_scales_with_input:
            return min(len(transcript) * 2, self.enhance_max_tokens)
        return self.enhance_max_tokens

    async def summarize_transcript(
        self,
        transcript: str,
        metadata: VideoMetadata | None = None,
        *,
        model: str | None = None,
    ) -> str:
        """Summarize a transcript, chunking it to ``summary_chunk_size``.

        Each chunk is summarized independently; multiple results are
        combined under numbered part headers.

        Raises:
            ValidationError: If the transcript is empty.
        """
        if not transcript.strip():
            raise ValidationError("No transcript content to summarize")
        if transcript.startswith("Error:"):
            return transcript

        chosen_model = model or self._summary_model(transcript)
        chunks = chunk_text(transcript, self.summary_chunk_size)
        results: list[str] = []
        for part, chunk in enumerate(chunks, start=1):
            messages = build_summary_messages(
                chunk,
                metadata,
                part=part,
                total=len(chunks),
                style=self.summary_style,
            )
            response = await self.chat_completion(
                ChatRequest(
                    model=chosen_model,
                    messages=messages,
                    temperature=self.summary_temperature,
                    max_tokens=self.summary_max_tokens,
                )
            )
            results.append(response.content)

        logger.info(
            "summary_complete",
            provider=self.name,
            model=chosen_model,
            chunks=len(chunks),
            transcript_chars=len(transcript),
        )
        return combine_chunk_results(results)

    async def enhance_transcript(
        self,
        transcript: str,
        metadata: VideoMetadata | None = None,
        *,
        model: str | None = None,
        duration_seconds: int | None = None,
    ) -> str:
        """Clean up a timestamped transcript without changing its words.

        Raises:
            ValidationError: If the transcript is empty.
        """
        if not transcript.strip():
            raise ValidationError("No transcript content to enhance")

        messages = build_enhancement_messages(
            transcript, metadata, duration_seconds=duration_seconds
        )
        response = await self.chat_completion(
            ChatRequest(
                model=model or self._config.default_model,
                messages=messages,
                temperature=self.enhance_temperature,
                max_tokens=self._enhance_output_tokens(transcript),
            )
        )
        logger.info(
            "enhancement_complete",
            provider=self.name,
            model=response.model,
            transcript_chars=len(transcript),
            output_chars=len(response.content),
        )
        return response.content


def merge_overrides(
    defaults: dict[str, Any], overrides: Mapping[str, Any]
) -> dict[str, Any]:
    """Apply non-``None`` overrides on top of a provider's stock values."""
    merged = dict(defaults)
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return merged
