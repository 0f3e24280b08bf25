"""
Exception taxonomy for the Webex channel.

Validation errors are raised before any network call and are never retried.
API errors carry the provider status code so the sender can decide between
retrying and surfacing. Policy denials are not errors: they are a None result.
"""

from __future__ import annotations

from typing import Any, Optional

RETRY_STATUS_CODES = frozenset({429, 502, 503, 504})


class WebexError(Exception):
    """Base class for all Webex channel errors."""


class ChannelConfigError(WebexError, ValueError):
    """Account configuration is missing a required value or is malformed."""


class ChannelNotInitializedError(WebexError, RuntimeError):
    """An operational method was called before initialize() or after shutdown()."""

    def __init__(self, message: str = "Webex channel is not initialized. Call initialize() first.") -> None:
        super().__init__(message)


class WebexValidationError(WebexError, ValueError):
    """Client-side validation failure. Maps to a 4xx, never retried."""


class MessageValidationError(WebexValidationError):
    """Outbound message cannot be sent as built."""


class WebhookSignatureError(WebexValidationError):
    """Inbound webhook signature does not match the configured secret."""


class WebexApiError(WebexError):
    """Non-2xx response from the Webex API."""

    def __init__(
        self,
        message: str,
        status_code: int,
        tracking_id: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.tracking_id = tracking_id
        self.details = details or []

    @property
    def is_transient(self) -> bool:
        return self.status_code in RETRY_STATUS_CODES

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "tracking_id": self.tracking_id,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class WebexNetworkError(WebexError):
    """Connection reset, timeout or DNS failure talking to the Webex API."""

    is_transient = True


def is_transient_error(error: BaseException) -> bool:
    """Retry predicate: transient HTTP statuses and network-level failures."""
    if isinstance(error, WebexApiError):
        return error.is_transient
    return isinstance(error, WebexNetworkError)
