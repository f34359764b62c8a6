"""
OpenAI adapter.

Translates the unified request into Chat Completions: the system prompt is
injected as the first message and the output limit is sent as
``max_completion_tokens``. Streamed chunks carry content deltas; usage
totals arrive only in the final chunk, so the stream is opened with
``stream_options={"include_usage": True}``.

The GPT-5 family accepts a single temperature (1.0). Models declaring a
``fixed_temperature`` get that value regardless of the request.
"""

from typing import Any

import openai

from ai_gateway.exceptions import GatewayError, TransportError, classify_status
from ai_gateway.providers.base import (
    ChatRequest,
    ChatResponse,
    ModelDescriptor,
    ProviderAdapter,
    StreamAccumulator,
    Usage,
    retry_after_seconds,
)
from ai_gateway.providers.catalog import OPENAI_MODELS


class OpenAIProvider(ProviderAdapter):
    """Adapter for the OpenAI Chat Completions API."""

    name = "openai"
    display_name = "OpenAI"
    models = OPENAI_MODELS
    temperature_range = (0.0, 2.0)

    def supports_tool_use(self) -> bool:
        return True

    def _create_client(self) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=self._timeout,
            max_retries=0,
        )

    def _resolve_temperature(self, request: ChatRequest, model: ModelDescriptor | None) -> float:
        temperature = super()._resolve_temperature(request, model)
        if model is not None and model.fixed_temperature is not None:
            if temperature != model.fixed_temperature:
                self._logger.debug(
                    f"{model.id} only supports temperature {model.fixed_temperature}",
                    extra={"provider": self.name, "model": model.id},
                )
            return model.fixed_temperature
        return temperature

    def _build_params(self, request: ChatRequest, *, stream: bool) -> dict[str, Any]:
        model = self.get_model(request.model)

        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend(m.to_dict() for m in request.conversation())

        params: dict[str, Any] = {
            "model": request.model,
            self._token_limit_field(model, "max_completion_tokens"): request.max_output_tokens,
            "temperature": self._resolve_temperature(request, model),
            "messages": messages,
        }
        if stream:
            params["stream"] = True
            params["stream_options"] = {"include_usage": True}
        return params

    async def _send(self, client: Any, params: dict[str, Any]) -> Any:
        return await client.chat.completions.create(**params)

    def _parse_response(self, raw: Any, request: ChatRequest) -> ChatResponse:
        choice = raw.choices[0] if raw.choices else None
        usage = raw.usage
        return ChatResponse(
            content=(choice.message.content if choice else None) or "",
            usage=Usage(
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
            ),
            stop_reason=(choice.finish_reason if choice else None) or "unknown",
            model_used=raw.model or request.model,
            provider_name=self.name,
        )

    async def _open_stream(self, client: Any, params: dict[str, Any]) -> Any:
        return await client.chat.completions.create(**params)

    def _consume_event(self, event: Any, accumulator: StreamAccumulator) -> str | None:
        if event.model:
            accumulator.model = event.model

        # Final chunk: usage only, empty choices
        if event.usage is not None:
            accumulator.input_tokens = event.usage.prompt_tokens
            accumulator.output_tokens = event.usage.completion_tokens

        if not event.choices:
            return None

        choice = event.choices[0]
        if choice.finish_reason:
            accumulator.stop_reason = choice.finish_reason
        return choice.delta.content if choice.delta else None

    def _classify_backend_error(self, error: BaseException) -> GatewayError | None:
        if isinstance(error, openai.APIStatusError):
            return classify_status(
                error.status_code,
                error.message,
                provider=self.name,
                retry_after=retry_after_seconds(error.response.headers),
            )
        if isinstance(error, openai.APIConnectionError):
            return TransportError(
                f"Connection error: {error}",
                provider=self.name,
                details={"error_type": type(error).__name__},
            )
        return None
