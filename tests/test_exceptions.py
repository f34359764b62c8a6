"""Tests for ai_gateway/exceptions.py - error taxonomy and status mapping."""

import pytest

from ai_gateway.exceptions import (
    ConfigError,
    ErrorKind,
    GatewayError,
    RateLimitError,
    ServiceError,
    TransportError,
    classify_status,
    is_retryable,
)


class TestErrorVariants:
    """Tests for the tagged error variants."""

    def test_kinds_are_distinct(self):
        """Each variant carries its own kind tag."""
        kinds = {ConfigError.kind, RateLimitError.kind, ServiceError.kind, TransportError.kind}
        assert kinds == set(ErrorKind)

    def test_all_variants_are_gateway_errors(self):
        """Callers can catch every variant through the base class."""
        for error in (
            ConfigError("missing key"),
            RateLimitError(),
            ServiceError("boom"),
            TransportError("reset"),
        ):
            assert isinstance(error, GatewayError)

    def test_config_error_never_retryable(self):
        """ConfigError is not retryable."""
        assert ConfigError("bad key").retryable is False

    def test_rate_limit_retryable_with_hint(self):
        """RateLimitError is retryable and keeps the wait hint."""
        error = RateLimitError(retry_after=2.5, provider="anthropic")
        assert error.retryable is True
        assert error.retry_after == 2.5
        assert "Rate limit exceeded" in error.message

    def test_service_error_flag(self):
        """ServiceError retryability follows its is_retryable flag."""
        assert ServiceError("x", is_retryable=True).retryable is True
        assert ServiceError("x").retryable is False

    def test_transport_error_not_retryable(self):
        """TransportError is left to the calling layer."""
        assert TransportError("reset").retryable is False

    def test_str_includes_provider_and_status(self):
        """__str__ renders provider and HTTP status."""
        error = ServiceError("Server error: down", status_code=503, provider="openai")
        assert str(error) == "[openai] Server error: down (HTTP 503)"

    def test_str_plain_message(self):
        """__str__ is the bare message without context."""
        assert str(TransportError("reset")) == "reset"

    def test_to_dict(self):
        """to_dict exposes the fields a UI needs."""
        data = RateLimitError(retry_after=3.0, status_code=429, provider="anthropic").to_dict()

        assert data["kind"] == "rate_limit"
        assert data["status_code"] == 429
        assert data["retryable"] is True
        assert data["retry_after"] == 3.0
        assert data["provider"] == "anthropic"

    def test_to_dict_without_retry_after(self):
        """Variants without a wait hint report None."""
        assert ConfigError("bad key").to_dict()["retry_after"] is None

    def test_match_on_kind(self):
        """Errors can be dispatched exhaustively on kind."""

        def describe(error: GatewayError) -> str:
            match error.kind:
                case ErrorKind.CONFIG:
                    return "fix deployment"
                case ErrorKind.RATE_LIMIT:
                    return "try again shortly"
                case ErrorKind.SERVICE | ErrorKind.TRANSPORT:
                    return "failed"

        assert describe(ConfigError("x")) == "fix deployment"
        assert describe(RateLimitError()) == "try again shortly"
        assert describe(TransportError("x")) == "failed"


class TestClassifyStatus:
    """Tests for classify_status."""

    def test_401_is_config_error(self):
        """Invalid credentials map to ConfigError."""
        error = classify_status(401, "invalid x-api-key", provider="anthropic")
        assert isinstance(error, ConfigError)
        assert error.status_code == 401
        assert error.provider == "anthropic"

    def test_429_is_rate_limit(self):
        """Throttling maps to RateLimitError with the hint."""
        error = classify_status(429, "slow down", retry_after=4.0)
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 4.0
        assert error.retryable

    @pytest.mark.parametrize("status", [500, 502, 503, 529])
    def test_5xx_retryable_service_error(self, status):
        """Server errors are retryable ServiceErrors."""
        error = classify_status(status, "overloaded")
        assert isinstance(error, ServiceError)
        assert error.retryable
        assert error.status_code == status

    @pytest.mark.parametrize("status", [400, 403, 404, 413, 422])
    def test_other_4xx_not_retryable(self, status):
        """Request problems are non-retryable ServiceErrors."""
        error = classify_status(status, "bad request")
        assert isinstance(error, ServiceError)
        assert not error.retryable


class TestIsRetryable:
    """Tests for the default retry predicate."""

    def test_only_gateway_errors_retry(self):
        """Unclassified exceptions are never retried."""
        assert is_retryable(RateLimitError())
        assert not is_retryable(ConnectionError("reset"))
        assert not is_retryable(ValueError("x"))
