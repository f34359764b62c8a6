"""
Base classes for AI provider adapters.

This module defines the unified contract every backend adapter implements,
plus the request/response shapes callers depend on. Adapters only translate
wire formats; retry execution, error classification and stream bookkeeping
live here so every backend behaves identically.

The interface is designed to be:
- Minimal: chat, stream_chat, is_configured, capability queries, cost
- Backend-agnostic: callers never see SDK types
- Testable: SDK clients and the backoff sleep are injectable
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any

from ai_gateway.exceptions import (
    ConfigError,
    GatewayError,
    ServiceError,
    TransportError,
    is_retryable,
)
from ai_gateway.providers.retry import RetryPolicy


class Role(str, Enum):
    """Conversation roles accepted by the gateway."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Capability(str, Enum):
    """Declared model features, queried before use rather than assumed."""

    CHAT = "chat"
    STREAMING = "streaming"
    TOOL_USE = "tool_use"
    VISION = "vision"
    REASONING = "reasoning"


@dataclass(frozen=True)
class Message:
    """One conversation turn."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            try:
                object.__setattr__(self, "role", Role(self.role))
            except ValueError as e:
                raise ValueError(f"Unknown message role: {self.role!r}") from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Message":
        """Build from the ``{"role": ..., "content": ...}`` dict shape."""
        return cls(role=data["role"], content=str(data.get("content", "")))

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class ChatRequest:
    """Unified chat request, immutable once constructed.

    ``messages`` may be given as any sequence of ``Message`` or role/content
    dicts; it is normalized to a tuple of ``Message``.
    """

    messages: tuple[Message, ...]
    system_prompt: str
    model: str
    max_output_tokens: int
    temperature: float
    caller_id: str = ""
    context_id: str | None = None

    def __post_init__(self) -> None:
        messages = tuple(
            m if isinstance(m, Message) else Message.from_dict(m) for m in self.messages
        )
        object.__setattr__(self, "messages", messages)

        if not messages:
            raise ValueError("ChatRequest requires at least one message")
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be > 0")

    def conversation(self) -> list[Message]:
        """Messages without ``system`` turns (the system prompt travels separately)."""
        return [m for m in self.messages if m.role is not Role.SYSTEM]


@dataclass(frozen=True)
class Usage:
    """Token usage reported by the backend."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class ChatResponse:
    """Terminal response of a call, buffered or streamed.

    ``content`` is always the full assembled text.
    """

    content: str
    usage: Usage
    stop_reason: str
    model_used: str
    provider_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "usage": {
                "input_tokens": self.usage.input_tokens,
                "output_tokens": self.usage.output_tokens,
                "total_tokens": self.usage.total_tokens,
            },
            "stop_reason": self.stop_reason,
            "model_used": self.model_used,
            "provider_name": self.provider_name,
        }


@dataclass(frozen=True)
class ModelDescriptor:
    """Static description of a model: limits, pricing and capability flags.

    Attributes:
        fixed_temperature: The only temperature the model accepts, if pinned
        token_limit_field: Wire name of the output-token limit parameter
    """

    id: str
    display_name: str
    context_window_tokens: int
    max_output_tokens: int
    input_price_per_million: float
    output_price_per_million: float
    capabilities: frozenset[Capability] = frozenset({Capability.CHAT, Capability.STREAMING})
    fixed_temperature: float | None = None
    token_limit_field: str = "max_tokens"

    def has_capability(self, capability: Capability | str) -> bool:
        return Capability(capability) in self.capabilities

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.display_name,
            "context_window": self.context_window_tokens,
            "max_output_tokens": self.max_output_tokens,
            "input_price_per_million": self.input_price_per_million,
            "output_price_per_million": self.output_price_per_million,
            "capabilities": sorted(c.value for c in self.capabilities),
        }


class StreamResult:
    """Holder for a stream's terminal response, settable exactly once."""

    __slots__ = ("_response",)

    def __init__(self) -> None:
        self._response: ChatResponse | None = None

    @property
    def is_set(self) -> bool:
        return self._response is not None

    def set(self, response: ChatResponse) -> None:
        if self._response is not None:
            raise RuntimeError("Terminal response already set for this stream")
        self._response = response

    def get(self) -> ChatResponse:
        if self._response is None:
            raise RuntimeError("Stream has not completed; consume all fragments first")
        return self._response


class ChatStream:
    """Lazy, ordered, non-restartable sequence of text fragments.

    Fragments are pulled with ``async for``; the terminal ``ChatResponse`` is
    available from ``response`` once iteration finishes. Closing the stream
    (``aclose`` or leaving ``async with``) releases the backend connection and
    ends delivery.

    Example:
        async with client.stream_chat(messages, system_prompt) as stream:
            async for fragment in stream:
                print(fragment, end="")
        print(stream.response.usage)
    """

    def __init__(self, fragments: AsyncGenerator[str, None], result: StreamResult):
        self._fragments = fragments
        self._result = result
        self._closed = False

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await anext(self._fragments)
        except BaseException:
            self._closed = True
            raise

    @property
    def result(self) -> StreamResult:
        return self._result

    @property
    def done(self) -> bool:
        return self._result.is_set

    @property
    def response(self) -> ChatResponse:
        """Terminal response; raises RuntimeError until the stream is exhausted."""
        return self._result.get()

    async def get_final_response(self) -> ChatResponse:
        """Drain any remaining fragments and return the terminal response."""
        async for _ in self:
            pass
        return self.response

    async def aclose(self) -> None:
        self._closed = True
        await self._fragments.aclose()

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


@dataclass
class StreamAccumulator:
    """Running totals while a backend stream is consumed."""

    model: str
    parts: list[str] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    stop_reason: str = "unknown"

    def to_response(self, provider: str) -> ChatResponse:
        return ChatResponse(
            content="".join(self.parts),
            usage=Usage(input_tokens=self.input_tokens, output_tokens=self.output_tokens),
            stop_reason=self.stop_reason,
            model_used=self.model,
            provider_name=provider,
        )


class ProviderAdapter(ABC):
    """Abstract base class for backend adapters.

    Subclasses declare ``name``, ``display_name``, ``models`` and the
    accepted ``temperature_range``, and implement the wire translation hooks
    (``_create_client``, ``_build_params``, ``_send``, ``_parse_response``,
    ``_open_stream``, ``_consume_event``, ``_classify_backend_error``).

    Example:
        adapter = AnthropicProvider(api_key=config.anthropic.api_key)
        if adapter.is_configured():
            response = await adapter.chat(request)
    """

    name: str
    display_name: str
    models: tuple[ModelDescriptor, ...] = ()
    temperature_range: tuple[float, float] = (0.0, 1.0)

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str | None = None,
        timeout: float = 120.0,
        retry_policy: RetryPolicy | None = None,
        client: Any = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the adapter.

        Args:
            api_key: Backend API key; empty leaves the adapter unconfigured
            base_url: Optional backend base URL override
            timeout: Per-request timeout in seconds handed to the SDK client
            retry_policy: Backoff policy (defaults to RetryPolicy())
            client: Pre-built SDK client (tests, custom transports)
            logger: Logger for call-level events
        """
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = client
        self._client_lock = threading.Lock()
        self._logger = logger or logging.getLogger(type(self).__module__)

    # ------------------------------------------------------------------
    # Capability queries
    # ------------------------------------------------------------------

    def is_configured(self) -> bool:
        """Whether the credential is present. No network I/O, never raises."""
        return bool(self._api_key)

    def supports_streaming(self) -> bool:
        return True

    def supports_tool_use(self) -> bool:
        return False

    def get_model(self, model_id: str) -> ModelDescriptor | None:
        return next((m for m in self.models if m.id == model_id), None)

    def get_default_model(self) -> ModelDescriptor:
        return self.models[0]

    def estimate_cost(self, input_tokens: int, output_tokens: int, model_id: str) -> float:
        """Estimated USD cost of a call; 0 for models missing from the catalog."""
        model = self.get_model(model_id)
        if model is None:
            return 0.0
        input_cost = input_tokens * model.input_price_per_million / 1_000_000
        output_cost = output_tokens * model.output_price_per_million / 1_000_000
        return input_cost + output_cost

    def should_retry(self, error: BaseException) -> bool:
        """Retry predicate handed to the backoff engine."""
        return is_retryable(error)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a request and return the buffered response.

        Raises:
            ConfigError: Missing or rejected credential (never retried)
            RateLimitError: Throttled on every attempt
            ServiceError: Backend failure or rejected request
            TransportError: Network or unrecognised failure
        """
        client = self._get_client()
        params = self._build_params(request, stream=False)
        started = time.monotonic()

        async def attempt() -> ChatResponse:
            try:
                raw = await self._send(client, params)
                return self._parse_response(raw, request)
            except GatewayError:
                raise
            except Exception as e:
                raise self.classify_error(e) from e

        response = await self.retry_policy.call(attempt, self.should_retry, provider=self.name)
        self._log_completion(request, response, started, streamed=False)
        return response

    def stream_chat(self, request: ChatRequest) -> ChatStream:
        """Start a streamed call.

        Credentials are checked immediately; the backend is contacted when
        the first fragment is requested. Retries apply only until the first
        fragment reaches the caller.

        Raises:
            ConfigError: Missing credential (raised here, before iteration)
        """
        client = self._get_client()
        params = self._build_params(request, stream=True)
        result = StreamResult()
        return ChatStream(self._stream_fragments(client, params, request, result), result)

    async def _stream_fragments(
        self,
        client: Any,
        params: dict[str, Any],
        request: ChatRequest,
        result: StreamResult,
    ) -> AsyncGenerator[str, None]:
        started = time.monotonic()

        async def open_stream() -> tuple[Any, AsyncIterator[Any], StreamAccumulator, str | None]:
            accumulator = StreamAccumulator(model=request.model)
            backend = None
            try:
                backend = await self._open_stream(client, params)
                events = aiter(backend)
                first = await self._next_fragment(events, accumulator)
                return backend, events, accumulator, first
            except BaseException as e:
                if backend is not None:
                    await self._close_stream(backend)
                if isinstance(e, Exception) and not isinstance(e, GatewayError):
                    raise self.classify_error(e) from e
                raise

        backend, events, accumulator, fragment = await self.retry_policy.call(
            open_stream, self.should_retry, provider=self.name
        )

        try:
            while fragment is not None:
                yield fragment
                fragment = await self._next_fragment(events, accumulator)
        except GatewayError:
            raise
        except Exception as e:
            raise self.classify_error(e) from e
        finally:
            await self._close_stream(backend)

        response = accumulator.to_response(self.name)
        result.set(response)
        self._log_completion(request, response, started, streamed=True)

    async def _next_fragment(
        self, events: AsyncIterator[Any], accumulator: StreamAccumulator
    ) -> str | None:
        """Advance the backend stream to the next text fragment (None at end)."""
        async for event in events:
            fragment = self._consume_event(event, accumulator)
            if fragment:
                accumulator.parts.append(fragment)
                return fragment
        return None

    # ------------------------------------------------------------------
    # Errors and clients
    # ------------------------------------------------------------------

    def classify_error(self, error: BaseException) -> GatewayError:
        """Map any exception onto the shared taxonomy."""
        if isinstance(error, GatewayError):
            return error
        classified = self._classify_backend_error(error)
        if classified is not None:
            return classified
        return TransportError(
            f"Unexpected error: {error}",
            provider=self.name,
            details={"error_type": type(error).__name__},
        )

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.is_configured():
                raise ConfigError(
                    f"{self.display_name} API key is not configured. "
                    "Please set it in your environment variables.",
                    provider=self.name,
                )
            with self._client_lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    def _resolve_temperature(self, request: ChatRequest, model: ModelDescriptor | None) -> float:
        """Validate the requested temperature against the adapter's range."""
        low, high = self.temperature_range
        if not low <= request.temperature <= high:
            raise ServiceError(
                f"Temperature {request.temperature} outside supported range [{low}, {high}]",
                is_retryable=False,
                provider=self.name,
                details={"field": "temperature"},
            )
        return request.temperature

    def _token_limit_field(self, model: ModelDescriptor | None, default: str) -> str:
        return model.token_limit_field if model is not None else default

    async def _close_stream(self, backend: Any) -> None:
        await backend.close()

    def _log_completion(
        self, request: ChatRequest, response: ChatResponse, started: float, *, streamed: bool
    ) -> None:
        self._logger.info(
            f"{self.display_name} call completed",
            extra={
                "provider": self.name,
                "model": response.model_used,
                "caller_id": request.caller_id,
                "context_id": request.context_id,
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
                "stop_reason": response.stop_reason,
                "duration_ms": int((time.monotonic() - started) * 1000),
                "streamed": streamed,
            },
        )

    # ------------------------------------------------------------------
    # Wire translation hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _create_client(self) -> Any:
        """Construct the SDK client (called once, lazily)."""

    @abstractmethod
    def _build_params(self, request: ChatRequest, *, stream: bool) -> dict[str, Any]:
        """Translate the unified request into backend parameters."""

    @abstractmethod
    async def _send(self, client: Any, params: dict[str, Any]) -> Any:
        """Perform one buffered backend call."""

    @abstractmethod
    def _parse_response(self, raw: Any, request: ChatRequest) -> ChatResponse:
        """Translate a buffered backend response."""

    @abstractmethod
    async def _open_stream(self, client: Any, params: dict[str, Any]) -> Any:
        """Open a backend stream (async iterable of events with ``close()``)."""

    @abstractmethod
    def _consume_event(self, event: Any, accumulator: StreamAccumulator) -> str | None:
        """Fold one stream event into the accumulator, returning any text."""

    @abstractmethod
    def _classify_backend_error(self, error: BaseException) -> GatewayError | None:
        """Classify an SDK exception, or None if it is not a backend API error."""


def retry_after_seconds(headers: Mapping[str, str] | None) -> float | None:
    """Suggested wait from ``retry-after-ms`` / ``retry-after`` response headers."""
    if not headers:
        return None

    raw_ms = headers.get("retry-after-ms")
    if raw_ms:
        try:
            return max(float(raw_ms) / 1000, 0.0)
        except ValueError:
            pass

    raw = headers.get("retry-after")
    if not raw:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    return max((retry_at - datetime.now(retry_at.tzinfo)).total_seconds(), 0.0)
