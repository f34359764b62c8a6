"""Tests for ai_gateway/config.py - configuration loading."""

import pytest

from ai_gateway.config import (
    GatewayConfig,
    ProviderCredentials,
    ProviderLimits,
    RetryConfig,
    UsageThresholds,
)


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_defaults(self):
        """Defaults are 3 retries, 1s initial delay, x2, 10s cap."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.initial_delay == 1.0
        assert config.multiplier == 2.0
        assert config.max_delay == 10.0

    def test_rejects_negative_retries(self):
        """Negative retry counts are invalid."""
        with pytest.raises(ValueError):
            RetryConfig(max_retries=-1)

    def test_rejects_shrinking_multiplier(self):
        """A multiplier below 1 would make backoff decrease."""
        with pytest.raises(ValueError):
            RetryConfig(multiplier=0.5)

    def test_rejects_negative_delay(self):
        with pytest.raises(ValueError):
            RetryConfig(initial_delay=-1.0)


class TestProviderCredentials:
    """Tests for ProviderCredentials."""

    def test_present(self):
        assert ProviderCredentials(api_key="sk-1").present
        assert not ProviderCredentials().present

    def test_repr_masks_key(self):
        """The API key never appears in repr."""
        assert "sk-secret" not in repr(ProviderCredentials(api_key="sk-secret"))


class TestFromEnv:
    """Tests for GatewayConfig.from_env."""

    def test_empty_environment(self):
        """Missing keys leave both providers unconfigured without error."""
        config = GatewayConfig.from_env({})

        assert not config.anthropic.present
        assert not config.openai.present
        assert config.default_provider == "anthropic"
        assert config.retry == RetryConfig()
        assert config.request_timeout == 120.0

    def test_reads_credentials_and_overrides(self):
        """Credentials, default provider and retry settings come from the environment."""
        config = GatewayConfig.from_env(
            {
                "ANTHROPIC_API_KEY": "sk-ant",
                "OPENAI_API_KEY": "sk-oai",
                "OPENAI_BASE_URL": "https://proxy.internal/v1",
                "AI_DEFAULT_PROVIDER": "openai",
                "AI_MAX_RETRIES": "5",
                "AI_RETRY_INITIAL_DELAY": "0.5",
                "AI_RETRY_MULTIPLIER": "3",
                "AI_RETRY_MAX_DELAY": "20",
                "AI_REQUEST_TIMEOUT": "30",
            }
        )

        assert config.anthropic.api_key == "sk-ant"
        assert config.openai.base_url == "https://proxy.internal/v1"
        assert config.anthropic.base_url is None
        assert config.default_provider == "openai"
        assert config.retry == RetryConfig(
            max_retries=5, initial_delay=0.5, multiplier=3.0, max_delay=20.0
        )
        assert config.request_timeout == 30.0

    def test_invalid_number(self):
        """Unparseable numbers name the variable."""
        with pytest.raises(ValueError, match="AI_MAX_RETRIES"):
            GatewayConfig.from_env({"AI_MAX_RETRIES": "lots"})


class TestFromYaml:
    """Tests for GatewayConfig.from_yaml."""

    def test_overlay(self, tmp_path):
        """The YAML file overlays retry, timeout, default and usage settings."""
        path = tmp_path / "ai_gateway.yaml"
        path.write_text(
            "default_provider: openai\n"
            "request_timeout: 45\n"
            "retry:\n"
            "  max_retries: 1\n"
            "  max_delay: 2.0\n"
            "usage:\n"
            "  monthly_warning: 5\n"
            "  provider_limits:\n"
            "    openai:\n"
            "      tokens_per_month: 1000\n"
            "      requests_per_month: 10\n"
        )

        config = GatewayConfig.from_yaml(path, environ={"ANTHROPIC_API_KEY": "sk-ant"})

        assert config.anthropic.api_key == "sk-ant"
        assert config.default_provider == "openai"
        assert config.request_timeout == 45.0
        assert config.retry.max_retries == 1
        assert config.retry.max_delay == 2.0
        assert config.retry.initial_delay == 1.0
        assert config.usage.monthly_warning == 5.0
        assert config.usage.monthly_hard_limit == 25.0
        assert config.usage.provider_limits["openai"] == ProviderLimits(
            tokens_per_month=1000, requests_per_month=10
        )
        assert "anthropic" in config.usage.provider_limits

    def test_missing_file_falls_back_to_env(self, tmp_path):
        """A missing file leaves the environment configuration untouched."""
        config = GatewayConfig.from_yaml(tmp_path / "absent.yaml", environ={})
        assert config == GatewayConfig.from_env({})

    def test_invalid_retry_values_rejected(self, tmp_path):
        """Retry values from YAML go through the same validation."""
        path = tmp_path / "bad.yaml"
        path.write_text("retry:\n  multiplier: 0.1\n")

        with pytest.raises(ValueError):
            GatewayConfig.from_yaml(path, environ={})


class TestUsageThresholds:
    def test_defaults(self):
        thresholds = UsageThresholds()
        assert thresholds.monthly_warning == 10.0
        assert thresholds.monthly_hard_limit == 25.0
        assert thresholds.provider_limits["anthropic"].warning_threshold == 0.8

    def test_rejects_negative_cost_threshold(self):
        with pytest.raises(ValueError):
            UsageThresholds(monthly_warning=-1.0)

    def test_zero_accepted(self):
        """A zero threshold is valid and means the check is off."""
        thresholds = UsageThresholds(monthly_warning=0.0, monthly_hard_limit=0.0)
        assert thresholds.monthly_hard_limit == 0.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"tokens_per_month": -1, "requests_per_month": 10},
            {"tokens_per_month": 10, "requests_per_month": -1},
            {"tokens_per_month": 10, "requests_per_month": 10, "warning_threshold": -0.5},
        ],
    )
    def test_rejects_negative_provider_limits(self, kwargs):
        with pytest.raises(ValueError):
            ProviderLimits(**kwargs)

    def test_negative_yaml_limits_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "usage:\n"
            "  provider_limits:\n"
            "    anthropic:\n"
            "      tokens_per_month: -5\n"
            "      requests_per_month: 10\n"
        )

        with pytest.raises(ValueError):
            GatewayConfig.from_yaml(path, environ={})
