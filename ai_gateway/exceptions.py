"""
Unified error taxonomy for the AI provider gateway.

Every adapter classifies backend failures into one of four tagged variants,
so calling code depends on a single vocabulary no matter which backend
served the call.

Usage:
    from ai_gateway.exceptions import ErrorKind, GatewayError

    try:
        response = await client.chat(messages, system_prompt)
    except GatewayError as e:
        match e.kind:
            case ErrorKind.CONFIG:
                # Ask an operator to fix the deployment
                ...
            case ErrorKind.RATE_LIMIT:
                # Try again shortly (e.retry_after seconds, when known)
                ...
            case ErrorKind.SERVICE | ErrorKind.TRANSPORT:
                ...

Note:
    ``retryable`` is a property of the variant, never of message text.
    The retry engine only consults that property.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Tag identifying the error variant."""

    CONFIG = "config"
    RATE_LIMIT = "rate_limit"
    SERVICE = "service"
    TRANSPORT = "transport"


class GatewayError(Exception):
    """Base exception for all gateway errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the backend, if any.
        provider: Name of the provider that raised the error.
        details: Optional dict with additional error context.
    """

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider = provider
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        """Whether the retry engine may attempt the call again."""
        return False

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.insert(0, f"[{self.provider}]")
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serializable shape for API responses and UIs."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "provider": self.provider,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "retry_after": getattr(self, "retry_after", None),
        }


class ConfigError(GatewayError):
    """Missing or invalid credential, or a misconfigured registry.

    Raised when:
    - The provider's API key is absent
    - The backend rejects the API key (HTTP 401)
    - The configured default provider is not registered

    Never retried: configuration does not heal itself.
    """

    kind = ErrorKind.CONFIG


class RateLimitError(GatewayError):
    """Backend signaled throttling (HTTP 429).

    Retried internally up to the retry budget. When raised to the caller the
    budget is exhausted.

    Attributes:
        retry_after: Seconds the backend suggested waiting, if supplied.
    """

    kind = ErrorKind.RATE_LIMIT

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        *,
        retry_after: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return True


class ServiceError(GatewayError):
    """Backend-side failure or a request the backend refused.

    5xx responses are retryable ("try again later"); other 4xx responses and
    requests rejected before sending are not ("fix the request").

    Attributes:
        is_retryable: Whether the failure is transient.
    """

    kind = ErrorKind.SERVICE

    def __init__(self, message: str, *, is_retryable: bool = False, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.is_retryable = is_retryable

    @property
    def retryable(self) -> bool:
        return self.is_retryable


class TransportError(GatewayError):
    """Network-level failure or anything not recognised as a backend API error.

    Not retried by the gateway; the calling layer may apply its own policy.
    """

    kind = ErrorKind.TRANSPORT


def classify_status(
    status_code: int,
    message: str,
    *,
    provider: str | None = None,
    retry_after: float | None = None,
) -> GatewayError:
    """Map a backend HTTP status onto the taxonomy.

    Args:
        status_code: HTTP status returned by the backend
        message: Backend error message
        provider: Name of the provider that received the status
        retry_after: Suggested wait in seconds (429 only)

    Returns:
        The classified error (not raised)
    """
    if status_code == 401:
        return ConfigError(
            "Invalid API key. Please check the provider credentials.",
            status_code=status_code,
            provider=provider,
        )
    if status_code == 429:
        return RateLimitError(
            retry_after=retry_after,
            status_code=status_code,
            provider=provider,
            details={"backend_message": message},
        )
    if 500 <= status_code < 600:
        return ServiceError(
            f"Server error: {message}",
            is_retryable=True,
            status_code=status_code,
            provider=provider,
        )
    return ServiceError(
        f"API error: {message}",
        is_retryable=False,
        status_code=status_code,
        provider=provider,
    )


def is_retryable(error: BaseException) -> bool:
    """Default retry predicate: only classified, retryable gateway errors."""
    return isinstance(error, GatewayError) and error.retryable


__all__ = [
    "ErrorKind",
    "GatewayError",
    "ConfigError",
    "RateLimitError",
    "ServiceError",
    "TransportError",
    "classify_status",
    "is_retryable",
]
