"""
AI provider gateway.

One contract over multiple LLM backends: credentials and configuration,
retries with exponential backoff, buffered and streamed responses, and
per-call cost estimation.
"""

from ai_gateway.client import AIClient, ChatOptions
from ai_gateway.config import GatewayConfig, RetryConfig
from ai_gateway.exceptions import (
    ConfigError,
    ErrorKind,
    GatewayError,
    RateLimitError,
    ServiceError,
    TransportError,
)
from ai_gateway.providers import (
    ChatRequest,
    ChatResponse,
    ChatStream,
    Message,
    ProviderRegistry,
    Role,
    Usage,
    create_default_registry,
)
from ai_gateway.usage import UsageTracker, UsageWarning

__version__ = "0.1.0"

__all__ = [
    "AIClient",
    "ChatOptions",
    "ChatRequest",
    "ChatResponse",
    "ChatStream",
    "ConfigError",
    "ErrorKind",
    "GatewayConfig",
    "GatewayError",
    "Message",
    "ProviderRegistry",
    "RateLimitError",
    "RetryConfig",
    "Role",
    "ServiceError",
    "TransportError",
    "Usage",
    "UsageTracker",
    "UsageWarning",
    "create_default_registry",
]
