"""
Provider Abstraction Layer.

Unifies the LLM backends behind one adapter contract so application code
never depends on which backend serves a call.

Architecture:
    AIClient (ai_gateway.client)
         ↓
    ProviderRegistry (this package)
         ↓
    ProviderAdapter implementations (Anthropic, OpenAI)
         ↓
    Backend SDKs

Usage:
    from ai_gateway.providers import ChatRequest, ProviderRegistry

    provider = registry.get_default()
    response = await provider.chat(request)
"""

from ai_gateway.providers.anthropic_provider import AnthropicProvider
from ai_gateway.providers.base import (
    Capability,
    ChatRequest,
    ChatResponse,
    ChatStream,
    Message,
    ModelDescriptor,
    ProviderAdapter,
    Role,
    Usage,
)
from ai_gateway.providers.openai_provider import OpenAIProvider
from ai_gateway.providers.registry import ProviderRegistry, create_default_registry
from ai_gateway.providers.retry import RetryPolicy

__all__ = [
    "AnthropicProvider",
    "Capability",
    "ChatRequest",
    "ChatResponse",
    "ChatStream",
    "Message",
    "ModelDescriptor",
    "OpenAIProvider",
    "ProviderAdapter",
    "ProviderRegistry",
    "RetryPolicy",
    "Role",
    "Usage",
    "create_default_registry",
]
