"""
Static model catalog.

Prices are USD per million tokens. The first entry of each tuple is the
provider's default model.
"""

from ai_gateway.providers.base import Capability, ModelDescriptor

_CHAT = frozenset({Capability.CHAT, Capability.STREAMING, Capability.TOOL_USE})
_CHAT_VISION = _CHAT | {Capability.VISION}
_REASONING = _CHAT_VISION | {Capability.REASONING}

ANTHROPIC_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="claude-sonnet-4-20250514",
        display_name="Claude Sonnet 4",
        context_window_tokens=200_000,
        max_output_tokens=8192,
        input_price_per_million=3.0,
        output_price_per_million=15.0,
        capabilities=_CHAT_VISION,
    ),
    ModelDescriptor(
        id="claude-3-5-haiku-20241022",
        display_name="Claude 3.5 Haiku",
        context_window_tokens=200_000,
        max_output_tokens=8192,
        input_price_per_million=0.8,
        output_price_per_million=4.0,
        capabilities=_CHAT_VISION,
    ),
    ModelDescriptor(
        id="claude-opus-4-20250514",
        display_name="Claude Opus 4",
        context_window_tokens=200_000,
        max_output_tokens=8192,
        input_price_per_million=15.0,
        output_price_per_million=75.0,
        capabilities=_CHAT_VISION,
    ),
)

# GPT-5 family: temperature pinned to 1.0, output limit sent as max_completion_tokens
OPENAI_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="gpt-5.2",
        display_name="GPT-5.2",
        context_window_tokens=400_000,
        max_output_tokens=128_000,
        input_price_per_million=1.75,
        output_price_per_million=14.0,
        capabilities=_REASONING,
        fixed_temperature=1.0,
        token_limit_field="max_completion_tokens",
    ),
    ModelDescriptor(
        id="gpt-5.1",
        display_name="GPT-5.1",
        context_window_tokens=200_000,
        max_output_tokens=100_000,
        input_price_per_million=1.5,
        output_price_per_million=12.0,
        capabilities=_REASONING,
        fixed_temperature=1.0,
        token_limit_field="max_completion_tokens",
    ),
    ModelDescriptor(
        id="gpt-5-mini",
        display_name="GPT-5 Mini",
        context_window_tokens=128_000,
        max_output_tokens=16_384,
        input_price_per_million=0.25,
        output_price_per_million=1.0,
        capabilities=_CHAT_VISION,
        fixed_temperature=1.0,
        token_limit_field="max_completion_tokens",
    ),
)
