"""
Scripted mock provider for testing.

Implements the full adapter contract without network I/O so the retry
engine, the registry, the facade and usage tracking can be exercised
deterministically. Each backend call consumes the next scripted outcome:
a string is returned as the response text, an exception is raised.

Usage:
    from ai_gateway.exceptions import RateLimitError
    from ai_gateway.providers.mock import MockProvider

    mock = MockProvider([RateLimitError(), "Hello there"])
    registry.register(mock)

    response = await mock.chat(request)   # retried once, then succeeds
    assert mock.call_count == 2
"""

import asyncio
from collections import deque
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from typing import Any

from ai_gateway.exceptions import GatewayError
from ai_gateway.providers.base import (
    Capability,
    ChatRequest,
    ChatResponse,
    ModelDescriptor,
    ProviderAdapter,
    StreamAccumulator,
    Usage,
)

MOCK_MODEL = ModelDescriptor(
    id="mock-model-v1",
    display_name="Mock Model",
    context_window_tokens=100_000,
    max_output_tokens=4096,
    input_price_per_million=3.0,
    output_price_per_million=15.0,
    capabilities=frozenset({Capability.CHAT, Capability.STREAMING}),
)


@dataclass(frozen=True)
class MockEvent:
    """One event of a mock stream."""

    text: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    stop_reason: str | None = None


@dataclass(frozen=True)
class MockReply:
    text: str
    input_tokens: int
    output_tokens: int
    stop_reason: str


class MockStream:
    """Backend stream over a fixed event list; records whether it was closed."""

    def __init__(self, events: list[MockEvent | BaseException]):
        self._events = events
        self.closed = False
        self.delivered = 0

    def __aiter__(self) -> AsyncIterator[MockEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[MockEvent]:
        for event in self._events:
            if self.closed:
                return
            # Yield control like a network read would
            await asyncio.sleep(0)
            if isinstance(event, BaseException):
                raise event
            self.delivered += 1
            yield event

    async def close(self) -> None:
        self.closed = True


class MockProvider(ProviderAdapter):
    """Mock provider for testing without real API calls.

    Attributes:
        call_count: Backend calls made (buffered and streamed)
        requests: Parameters of every backend call, in order
        streams: Every stream opened, in order
    """

    name = "mock"
    display_name = "Mock Provider"
    models = (MOCK_MODEL,)
    temperature_range = (0.0, 2.0)

    def __init__(
        self,
        responses: Iterable[str | BaseException] = (),
        *,
        name: str | None = None,
        configured: bool = True,
        fragment_size: int | None = None,
        fail_after_fragments: int | None = None,
        mid_stream_error: BaseException | None = None,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        stop_reason: str = "end_turn",
        models: tuple[ModelDescriptor, ...] | None = None,
        **kwargs: Any,
    ):
        """Initialize mock provider.

        Args:
            responses: Scripted outcomes, consumed one per backend call
            name: Registry name override (defaults to "mock")
            configured: Whether the adapter reports a credential
            fragment_size: Characters per streamed fragment (None splits on words)
            fail_after_fragments: Raise ``mid_stream_error`` after this many fragments
            mid_stream_error: Error raised mid-stream
            input_tokens: Reported input tokens (estimated from words if None)
            output_tokens: Reported output tokens (estimated from words if None)
            stop_reason: Reported stop reason
            models: Catalog override
            **kwargs: Passed to ProviderAdapter (retry_policy, logger)
        """
        super().__init__(api_key="mock-key" if configured else "", **kwargs)
        if name is not None:
            self.name = name
        if models is not None:
            self.models = models
        self._responses: deque[str | BaseException] = deque(responses)
        self._fragment_size = fragment_size
        self._fail_after_fragments = fail_after_fragments
        self._mid_stream_error = mid_stream_error
        self._input_tokens = input_tokens
        self._output_tokens = output_tokens
        self._stop_reason = stop_reason
        self.call_count = 0
        self.requests: list[dict[str, Any]] = []
        self.streams: list[MockStream] = []

    def _create_client(self) -> "MockProvider":
        return self

    def _build_params(self, request: ChatRequest, *, stream: bool) -> dict[str, Any]:
        model = self.get_model(request.model)
        return {
            "model": request.model,
            self._token_limit_field(model, "max_tokens"): request.max_output_tokens,
            "temperature": self._resolve_temperature(request, model),
            "system": request.system_prompt,
            "messages": [m.to_dict() for m in request.conversation()],
            "stream": stream,
        }

    def _next_reply(self, params: dict[str, Any]) -> MockReply:
        self.call_count += 1
        self.requests.append(params)

        outcome = self._responses.popleft() if self._responses else None
        if isinstance(outcome, BaseException):
            raise outcome
        text = outcome if outcome is not None else self._generate_mock_response(params["messages"])

        input_text = " ".join(m["content"] for m in params["messages"] if m["content"])
        if params["system"]:
            input_text = params["system"] + " " + input_text

        return MockReply(
            text=text,
            input_tokens=self._input_tokens if self._input_tokens is not None else _estimate(input_text),
            output_tokens=self._output_tokens if self._output_tokens is not None else _estimate(text),
            stop_reason=self._stop_reason,
        )

    async def _send(self, client: Any, params: dict[str, Any]) -> MockReply:
        await asyncio.sleep(0)
        return self._next_reply(params)

    def _parse_response(self, raw: MockReply, request: ChatRequest) -> ChatResponse:
        return ChatResponse(
            content=raw.text,
            usage=Usage(input_tokens=raw.input_tokens, output_tokens=raw.output_tokens),
            stop_reason=raw.stop_reason,
            model_used=request.model,
            provider_name=self.name,
        )

    async def _open_stream(self, client: Any, params: dict[str, Any]) -> MockStream:
        await asyncio.sleep(0)
        reply = self._next_reply(params)

        events: list[MockEvent | BaseException] = [MockEvent(input_tokens=reply.input_tokens)]
        for i, fragment in enumerate(self._split(reply.text)):
            if self._fail_after_fragments is not None and i == self._fail_after_fragments:
                events.append(self._mid_stream_error or ConnectionResetError("stream reset"))
            events.append(MockEvent(text=fragment))
        events.append(MockEvent(output_tokens=reply.output_tokens, stop_reason=reply.stop_reason))

        stream = MockStream(events)
        self.streams.append(stream)
        return stream

    def _consume_event(self, event: MockEvent, accumulator: StreamAccumulator) -> str | None:
        if event.input_tokens is not None:
            accumulator.input_tokens = event.input_tokens
        if event.output_tokens is not None:
            accumulator.output_tokens = event.output_tokens
        if event.stop_reason:
            accumulator.stop_reason = event.stop_reason
        return event.text

    def _classify_backend_error(self, error: BaseException) -> GatewayError | None:
        # Scripts raise gateway errors directly; anything else is transport
        return None

    def _split(self, text: str) -> list[str]:
        if self._fragment_size is None:
            words = text.split(" ")
            return [w + " " for w in words[:-1]] + [words[-1]] if text else []
        size = self._fragment_size
        return [text[i : i + size] for i in range(0, len(text), size)]

    def _generate_mock_response(self, messages: list[dict[str, str]]) -> str:
        """Generate a mock response based on messages."""
        last_message = messages[-1].get("content", "").lower() if messages else ""

        if "summarize" in last_message:
            return "Summary: The key points are organized into three main categories."
        elif "explain" in last_message:
            return "This is a mock explanation that covers the key concepts with examples."
        elif "analyze" in last_message:
            return "Analysis shows that the data exhibits expected patterns."
        else:
            return "Mock response generated successfully."


def _estimate(text: str) -> int:
    """Rough token estimate: 1.3 tokens per word."""
    return int(len(text.split()) * 1.3)
