"""Centralized exception hierarchy for the media-summarizer package.

All domain-specific exceptions inherit from ``MediaSummarizerError`` so
callers can catch the entire family with a single ``except`` clause.
"""

from __future__ import annotations


class MediaSummarizerError(Exception):
    """Base exception for all media-summarizer errors."""


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigurationError(MediaSummarizerError):
    """Raised when a required credential or endpoint is missing."""


class ProviderUnavailableError(ConfigurationError):
    """Raised when the selected provider has not been configured."""


# ---------------------------------------------------------------------------
# Request validation errors
# ---------------------------------------------------------------------------


class ValidationError(MediaSummarizerError):
    """Raised when a chat request fails validation before sending."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


# ---------------------------------------------------------------------------
# Transport errors
# ---------------------------------------------------------------------------


class TransportError(MediaSummarizerError):
    """Raised when the HTTP exchange fails or returns a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class ServiceNotRunningError(TransportError):
    """Raised when a local daemon does not answer its reachability probe."""


class RequestTimeoutError(TransportError):
    """Raised when a request exceeds its time budget."""


class RequestCancelledError(TransportError):
    """Raised when a caller cancels an in-flight request."""


class UpstreamPolicyError(TransportError):
    """Base for policy rejections by the upstream (auth, quota, rate)."""


class AuthenticationError(UpstreamPolicyError):
    """Raised on HTTP 401/403: the API key was rejected."""


class QuotaExceededError(UpstreamPolicyError):
    """Raised on HTTP 402: billing or quota is exhausted."""


class RateLimitError(UpstreamPolicyError):
    """Raised on HTTP 429: too many requests."""


# ---------------------------------------------------------------------------
# Protocol errors
# ---------------------------------------------------------------------------


class ProtocolError(MediaSummarizerError):
    """Raised when a response body lacks the expected structure."""
