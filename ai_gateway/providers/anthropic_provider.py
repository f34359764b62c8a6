"""
Anthropic Claude adapter.

Translates the unified request into the Messages API: the system prompt
travels as the top-level ``system`` field and ``system``-role turns are
dropped from ``messages``. Streaming consumes the raw event stream:

- ``message_start`` carries the input token count
- ``content_block_delta`` carries text fragments
- ``message_delta`` carries the output token count and stop reason

Usage:
    from ai_gateway.providers.anthropic_provider import AnthropicProvider

    provider = AnthropicProvider(api_key=config.anthropic.api_key)
    response = await provider.chat(request)
"""

from typing import Any

import anthropic

from ai_gateway.exceptions import GatewayError, TransportError, classify_status
from ai_gateway.providers.base import (
    ChatRequest,
    ChatResponse,
    ProviderAdapter,
    StreamAccumulator,
    Usage,
    retry_after_seconds,
)
from ai_gateway.providers.catalog import ANTHROPIC_MODELS


class AnthropicProvider(ProviderAdapter):
    """Adapter for the Anthropic Messages API."""

    name = "anthropic"
    display_name = "Anthropic Claude"
    models = ANTHROPIC_MODELS
    temperature_range = (0.0, 1.0)

    def supports_tool_use(self) -> bool:
        return True

    def _create_client(self) -> anthropic.AsyncAnthropic:
        # Retries are owned by RetryPolicy, never by the SDK
        return anthropic.AsyncAnthropic(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=self._timeout,
            max_retries=0,
        )

    def _build_params(self, request: ChatRequest, *, stream: bool) -> dict[str, Any]:
        model = self.get_model(request.model)
        params: dict[str, Any] = {
            "model": request.model,
            self._token_limit_field(model, "max_tokens"): request.max_output_tokens,
            "temperature": self._resolve_temperature(request, model),
            "messages": [m.to_dict() for m in request.conversation()],
        }
        if request.system_prompt:
            params["system"] = request.system_prompt
        if stream:
            params["stream"] = True
        return params

    async def _send(self, client: Any, params: dict[str, Any]) -> Any:
        return await client.messages.create(**params)

    def _parse_response(self, raw: Any, request: ChatRequest) -> ChatResponse:
        text = next((block.text for block in raw.content if block.type == "text"), "")
        return ChatResponse(
            content=text,
            usage=Usage(
                input_tokens=raw.usage.input_tokens,
                output_tokens=raw.usage.output_tokens,
            ),
            stop_reason=raw.stop_reason or "unknown",
            model_used=raw.model or request.model,
            provider_name=self.name,
        )

    async def _open_stream(self, client: Any, params: dict[str, Any]) -> Any:
        return await client.messages.create(**params)

    def _consume_event(self, event: Any, accumulator: StreamAccumulator) -> str | None:
        if event.type == "message_start":
            accumulator.input_tokens = event.message.usage.input_tokens
            accumulator.model = event.message.model or accumulator.model
        elif event.type == "content_block_delta":
            if event.delta.type == "text_delta":
                return event.delta.text
        elif event.type == "message_delta":
            accumulator.output_tokens = event.usage.output_tokens
            if event.delta.stop_reason:
                accumulator.stop_reason = event.delta.stop_reason
        return None

    def _classify_backend_error(self, error: BaseException) -> GatewayError | None:
        if isinstance(error, anthropic.APIStatusError):
            return classify_status(
                error.status_code,
                error.message,
                provider=self.name,
                retry_after=retry_after_seconds(error.response.headers),
            )
        if isinstance(error, anthropic.APIConnectionError):
            return TransportError(
                f"Connection error: {error}",
                provider=self.name,
                details={"error_type": type(error).__name__},
            )
        return None
