"""
AI Gateway facade.

Thin, stateless coordinator between caller features (chat, research,
drafting, task decomposition, briefings) and the provider adapters. It
resolves the adapter, fails fast when credentials are missing, builds the
unified request and hands back one error vocabulary whatever backend served
the call.

Example:
    from ai_gateway import AIClient, ChatOptions, GatewayConfig

    client = AIClient.from_config(GatewayConfig.from_env())

    response = await client.chat(
        [{"role": "user", "content": "Summarize: A B C"}],
        system_prompt="You are a concise assistant.",
        options=ChatOptions(caller_id="user-1"),
    )

    async with client.stream_chat(messages, system_prompt) as stream:
        async for fragment in stream:
            print(fragment, end="")
    print(stream.response.usage.total_tokens)
"""

import logging
from collections.abc import AsyncGenerator, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ai_gateway.config import GatewayConfig
from ai_gateway.exceptions import ConfigError, GatewayError
from ai_gateway.presets import TemperaturePreset, TokenLimits, get_operation_preset
from ai_gateway.providers.base import (
    ChatRequest,
    ChatResponse,
    ChatStream,
    Message,
    ProviderAdapter,
    Role,
)
from ai_gateway.providers.registry import ProviderRegistry, create_default_registry
from ai_gateway.usage import UsageTracker

MessagesLike = Iterable[Message | Mapping[str, Any]]


@dataclass(frozen=True)
class ChatOptions:
    """Per-call options.

    Attributes:
        model: Model id; empty uses the adapter's default model
        provider: Registered provider to use instead of the default
        feature: Caller feature name, used for usage breakdowns
    """

    model: str = ""
    max_output_tokens: int = TokenLimits.DEFAULT
    temperature: float = TemperaturePreset.BALANCED
    caller_id: str = ""
    context_id: str | None = None
    provider: str | None = None
    feature: str = "chat"

    @classmethod
    def for_operation(cls, operation: str, **overrides: Any) -> "ChatOptions":
        """Options from an operation preset (``chat``, ``research``, ``draft``...).

        The preset's model is only applied when no provider override is
        given; otherwise the chosen provider's default model is used.

        Raises:
            KeyError: If the operation has no preset
        """
        preset = get_operation_preset(operation)
        values: dict[str, Any] = {
            "model": preset.model if overrides.get("provider") is None else "",
            "max_output_tokens": preset.max_output_tokens,
            "temperature": preset.temperature,
            "feature": operation,
        }
        values.update(overrides)
        return cls(**values)


class AIClient:
    """Unified entry point for AI calls.

    Args:
        registry: Registry holding the adapters
        usage_tracker: Optional tracker receiving every completed call
        logger: Logger for facade-level events
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        usage_tracker: UsageTracker | None = None,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.usage_tracker = usage_tracker
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: GatewayConfig, *, track_usage: bool = True) -> "AIClient":
        """Build a client with the default registry (and usage tracker)."""
        registry = create_default_registry(config)
        tracker = UsageTracker(registry, config.usage) if track_usage else None
        return cls(registry, usage_tracker=tracker)

    async def chat(
        self,
        messages: MessagesLike,
        system_prompt: str = "",
        options: ChatOptions | None = None,
    ) -> ChatResponse:
        """Buffered chat call.

        Args:
            messages: Conversation turns (``Message`` or role/content dicts)
            system_prompt: System instructions
            options: Per-call options

        Returns:
            ChatResponse with the full text and token usage

        Raises:
            ConfigError: Provider missing, unregistered default or bad credential
            RateLimitError: Throttled after exhausting retries
            ServiceError: Backend failure or rejected request
            TransportError: Network or unrecognised failure
        """
        options = options or ChatOptions()
        adapter = self._resolve(options)
        request = self._build_request(adapter, messages, system_prompt, options)

        try:
            response = await adapter.chat(request)
        except GatewayError:
            raise
        except Exception as e:
            raise adapter.classify_error(e) from e

        self._record(response, options)
        return response

    def stream_chat(
        self,
        messages: MessagesLike,
        system_prompt: str = "",
        options: ChatOptions | None = None,
    ) -> ChatStream:
        """Streamed chat call.

        Provider resolution and the credential check happen here, before
        any fragment is requested. The terminal response is the adapter's,
        passed through unchanged.

        Raises:
            ConfigError: Provider missing, unregistered default
        """
        options = options or ChatOptions()
        adapter = self._resolve(options)
        request = self._build_request(adapter, messages, system_prompt, options)

        try:
            inner = adapter.stream_chat(request)
        except GatewayError:
            raise
        except Exception as e:
            raise adapter.classify_error(e) from e

        return ChatStream(self._relay(adapter, inner, options), inner.result)

    async def complete(
        self,
        prompt: str,
        system_prompt: str = "",
        options: ChatOptions | None = None,
    ) -> str:
        """Single-turn convenience wrapper returning only the text."""
        response = await self.chat([Message(Role.USER, prompt)], system_prompt, options)
        return response.content

    def describe_providers(self) -> dict[str, Any]:
        """Available providers with their models and capability flags."""
        return {
            "providers": [
                {
                    "name": provider.name,
                    "display_name": provider.display_name,
                    "models": [model.to_dict() for model in provider.models],
                    "supports_streaming": provider.supports_streaming(),
                    "supports_tool_use": provider.supports_tool_use(),
                }
                for provider in self.registry.get_available()
            ],
            "default_provider": self.registry.get_default_name(),
        }

    def _resolve(self, options: ChatOptions) -> ProviderAdapter:
        adapter = None
        if options.provider:
            adapter = self.registry.get(options.provider)
            if adapter is None:
                self._logger.debug(
                    f"Provider {options.provider} not registered, using default",
                    extra={"provider": options.provider},
                )
        if adapter is None:
            adapter = self.registry.get_default()

        if not adapter.is_configured():
            raise ConfigError(
                f"{adapter.display_name} API key is not configured. "
                "Please set it in your environment variables.",
                provider=adapter.name,
            )
        return adapter

    def _build_request(
        self,
        adapter: ProviderAdapter,
        messages: MessagesLike,
        system_prompt: str,
        options: ChatOptions,
    ) -> ChatRequest:
        return ChatRequest(
            messages=tuple(messages),
            system_prompt=system_prompt,
            model=options.model or adapter.get_default_model().id,
            max_output_tokens=options.max_output_tokens,
            temperature=options.temperature,
            caller_id=options.caller_id,
            context_id=options.context_id,
        )

    async def _relay(
        self, adapter: ProviderAdapter, inner: ChatStream, options: ChatOptions
    ) -> AsyncGenerator[str, None]:
        try:
            async for fragment in inner:
                yield fragment
        except GatewayError:
            raise
        except Exception as e:
            raise adapter.classify_error(e) from e
        finally:
            await inner.aclose()

        self._record(inner.response, options)

    def _record(self, response: ChatResponse, options: ChatOptions) -> None:
        if self.usage_tracker is None:
            return
        self.usage_tracker.record(options.caller_id, response, feature=options.feature)
