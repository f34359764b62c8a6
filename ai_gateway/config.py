"""
Configuration management for the AI provider gateway.

Credentials and retry policy are assembled once (from the environment, a
YAML overlay, or a test fixture) and handed to each adapter's constructor.
Adapters never read the environment themselves.

Usage:
    from ai_gateway.config import GatewayConfig

    config = GatewayConfig.from_env()
    config = GatewayConfig.from_yaml(Path("config/ai_gateway.yaml"))
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "anthropic"
DEFAULT_REQUEST_TIMEOUT = 120.0


@dataclass(frozen=True)
class RetryConfig:
    """Exponential backoff settings.

    Attributes:
        max_retries: Retries after the first attempt (total calls = max_retries + 1)
        initial_delay: Delay before the first retry, in seconds
        multiplier: Growth factor between consecutive delays
        max_delay: Upper bound for any single delay, in seconds
    """

    max_retries: int = 3
    initial_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")


@dataclass(frozen=True)
class ProviderCredentials:
    """Credentials for a single backend."""

    api_key: str = ""
    base_url: str | None = None

    @property
    def present(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        # Never render the key itself
        masked = "***" if self.api_key else ""
        return f"ProviderCredentials(api_key={masked!r}, base_url={self.base_url!r})"


@dataclass(frozen=True)
class ProviderLimits:
    """Monthly quota used for usage warnings.

    A limit of 0 disables that quota.
    """

    tokens_per_month: int
    requests_per_month: int
    warning_threshold: float = 0.8

    def __post_init__(self) -> None:
        if self.tokens_per_month < 0 or self.requests_per_month < 0:
            raise ValueError("provider limits must be >= 0")
        if self.warning_threshold < 0:
            raise ValueError("warning_threshold must be >= 0")


@dataclass(frozen=True)
class UsageThresholds:
    """Cost and quota thresholds for usage warnings (USD, per month).

    A cost threshold of 0 disables that check.
    """

    monthly_warning: float = 10.0
    monthly_hard_limit: float = 25.0
    provider_limits: dict[str, ProviderLimits] = field(
        default_factory=lambda: {
            "anthropic": ProviderLimits(tokens_per_month=5_000_000, requests_per_month=5_000),
            "openai": ProviderLimits(tokens_per_month=5_000_000, requests_per_month=5_000),
        }
    )

    def __post_init__(self) -> None:
        if self.monthly_warning < 0 or self.monthly_hard_limit < 0:
            raise ValueError("monthly cost thresholds must be >= 0")


@dataclass(frozen=True)
class GatewayConfig:
    """Gateway configuration."""

    anthropic: ProviderCredentials = field(default_factory=ProviderCredentials)
    openai: ProviderCredentials = field(default_factory=ProviderCredentials)
    default_provider: str = DEFAULT_PROVIDER
    retry: RetryConfig = field(default_factory=RetryConfig)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    usage: UsageThresholds = field(default_factory=UsageThresholds)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        """Load configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            GatewayConfig; missing API keys leave the adapter unconfigured.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        defaults = RetryConfig()

        retry = RetryConfig(
            max_retries=_parse(env, "AI_MAX_RETRIES", int, defaults.max_retries),
            initial_delay=_parse(env, "AI_RETRY_INITIAL_DELAY", float, defaults.initial_delay),
            multiplier=_parse(env, "AI_RETRY_MULTIPLIER", float, defaults.multiplier),
            max_delay=_parse(env, "AI_RETRY_MAX_DELAY", float, defaults.max_delay),
        )

        config = cls(
            anthropic=ProviderCredentials(
                api_key=env.get("ANTHROPIC_API_KEY", ""),
                base_url=env.get("ANTHROPIC_BASE_URL") or None,
            ),
            openai=ProviderCredentials(
                api_key=env.get("OPENAI_API_KEY", ""),
                base_url=env.get("OPENAI_BASE_URL") or None,
            ),
            default_provider=env.get("AI_DEFAULT_PROVIDER", DEFAULT_PROVIDER) or DEFAULT_PROVIDER,
            retry=retry,
            request_timeout=_parse(env, "AI_REQUEST_TIMEOUT", float, DEFAULT_REQUEST_TIMEOUT),
        )

        missing = [
            name
            for name, creds in (("ANTHROPIC_API_KEY", config.anthropic), ("OPENAI_API_KEY", config.openai))
            if not creds.present
        ]
        if missing:
            logger.info(f"AI providers without credentials: {', '.join(missing)}")

        return config

    @classmethod
    def from_yaml(cls, path: Path, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        """Load configuration from the environment, overlaid by a YAML file.

        Credentials always come from the environment; the file may set
        ``default_provider``, ``request_timeout``, ``retry`` and ``usage``.

        Args:
            path: YAML file path
            environ: Mapping to read credentials from

        Returns:
            GatewayConfig
        """
        config = cls.from_env(environ)

        if not path.exists():
            logger.warning(f"AI gateway config not found: {path}")
            return config

        with open(path) as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        overrides: dict[str, Any] = {}
        if "default_provider" in data:
            overrides["default_provider"] = str(data["default_provider"])
        if "request_timeout" in data:
            overrides["request_timeout"] = float(data["request_timeout"])
        if isinstance(data.get("retry"), dict):
            overrides["retry"] = replace(config.retry, **data["retry"])
        if isinstance(data.get("usage"), dict):
            overrides["usage"] = _usage_from_dict(data["usage"], config.usage)

        logger.info(f"Loaded AI gateway config from {path}")
        return replace(config, **overrides)


def _parse(env: Mapping[str, str], name: str, kind: type, default: Any) -> Any:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return kind(raw)
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e


def _usage_from_dict(data: dict[str, Any], base: UsageThresholds) -> UsageThresholds:
    limits = dict(base.provider_limits)
    for name, raw in (data.get("provider_limits") or {}).items():
        limits[name] = ProviderLimits(**raw)
    return UsageThresholds(
        monthly_warning=float(data.get("monthly_warning", base.monthly_warning)),
        monthly_hard_limit=float(data.get("monthly_hard_limit", base.monthly_hard_limit)),
        provider_limits=limits,
    )
