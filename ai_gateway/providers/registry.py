"""
Provider Registry.

Holds the adapters known to a gateway instance, keyed by provider name,
plus the default-provider pointer. One registry is built at process start
(``create_default_registry``) and passed explicitly to the facade.

Usage:
    from ai_gateway.config import GatewayConfig
    from ai_gateway.providers.registry import create_default_registry

    registry = create_default_registry(GatewayConfig.from_env())

    provider = registry.get_default()
    for provider_name, model in registry.get_all_models():
        print(provider_name, model.id)
"""

import logging
import threading

from ai_gateway.config import GatewayConfig
from ai_gateway.exceptions import ConfigError
from ai_gateway.providers.anthropic_provider import AnthropicProvider
from ai_gateway.providers.base import ModelDescriptor, ProviderAdapter
from ai_gateway.providers.openai_provider import OpenAIProvider
from ai_gateway.providers.retry import RetryPolicy

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry of provider adapters.

    Reads vastly outnumber writes (registration happens at start-up, the
    default changes rarely); a single re-entrant lock guards both.
    """

    def __init__(self, default: str | None = None):
        self._providers: dict[str, ProviderAdapter] = {}
        self._default = default
        self._lock = threading.RLock()

    def register(self, provider: ProviderAdapter, name: str | None = None) -> None:
        """Register an adapter under ``name`` (defaults to ``provider.name``).

        The first registered adapter becomes the default when none is set.
        """
        name = name or provider.name
        with self._lock:
            if name in self._providers:
                logger.warning(f"Replacing existing provider: {name}")
            self._providers[name] = provider
            logger.info(f"Registered provider: {name}", extra={"provider": name})

            if self._default is None:
                self._default = name
                logger.info(f"Set default provider: {name}", extra={"provider": name})

    def unregister(self, name: str) -> None:
        """Remove an adapter.

        Raises:
            KeyError: If provider not found
        """
        with self._lock:
            if name not in self._providers:
                raise KeyError(f"Provider not found: {name}")
            del self._providers[name]
            logger.info(f"Unregistered provider: {name}", extra={"provider": name})

    def get(self, name: str) -> ProviderAdapter | None:
        """Adapter registered under ``name``, or None."""
        with self._lock:
            return self._providers.get(name)

    def get_default(self) -> ProviderAdapter:
        """The default adapter.

        Raises:
            ConfigError: If the default name is unset or not registered
        """
        with self._lock:
            provider = self._providers.get(self._default) if self._default else None
            if provider is None:
                available = ", ".join(self._providers) or "none"
                raise ConfigError(
                    f"Default provider '{self._default}' is not registered. Available: {available}",
                    provider=self._default,
                )
            return provider

    def set_default(self, name: str) -> None:
        """Set the default provider.

        Raises:
            ConfigError: If provider not registered
        """
        with self._lock:
            if name not in self._providers:
                raise ConfigError(f"Provider not registered: {name}", provider=name)
            self._default = name
        logger.info(f"Set default provider: {name}", extra={"provider": name})

    def get_default_name(self) -> str | None:
        with self._lock:
            return self._default

    def list_providers(self) -> list[str]:
        """All registered provider names."""
        with self._lock:
            return list(self._providers)

    def has_provider(self, name: str) -> bool:
        with self._lock:
            return name in self._providers

    def get_available(self) -> list[ProviderAdapter]:
        """Adapters whose credentials are present. Never raises."""
        with self._lock:
            providers = list(self._providers.values())
        available = []
        for provider in providers:
            try:
                if provider.is_configured():
                    available.append(provider)
            except Exception as e:
                logger.error(
                    f"Configuration check failed for {provider.name}: {e}",
                    extra={"provider": provider.name},
                )
        return available

    def get_all_models(self) -> list[tuple[str, ModelDescriptor]]:
        """Flattened (provider name, model) pairs across available adapters."""
        return [
            (provider.name, model) for provider in self.get_available() for model in provider.models
        ]


def create_default_registry(
    config: GatewayConfig,
    *,
    retry_policy: RetryPolicy | None = None,
    logger: logging.Logger | None = None,
) -> ProviderRegistry:
    """Build a registry holding every known adapter.

    Adapters are registered whether or not their credentials are present;
    ``is_configured()`` tells them apart.

    Args:
        config: Gateway configuration (credentials, retry policy, timeout)
        retry_policy: Shared policy override (defaults to one built from config)
        logger: Logger handed to each adapter

    Returns:
        ProviderRegistry with ``config.default_provider`` as default
    """
    policy = retry_policy or RetryPolicy(config.retry)
    registry = ProviderRegistry(default=config.default_provider)

    registry.register(
        AnthropicProvider(
            api_key=config.anthropic.api_key,
            base_url=config.anthropic.base_url,
            timeout=config.request_timeout,
            retry_policy=policy,
            logger=logger,
        )
    )
    registry.register(
        OpenAIProvider(
            api_key=config.openai.api_key,
            base_url=config.openai.base_url,
            timeout=config.request_timeout,
            retry_policy=policy,
            logger=logger,
        )
    )
    return registry
