"""
AI usage and cost tracking.

Aggregates completed calls per caller per calendar month and raises
warnings when cost or per-provider quotas approach their thresholds.
Warnings are advisory only; nothing here blocks a call. State is kept in
memory for the life of the process.

Example:
    >>> tracker = UsageTracker(registry)
    >>> warnings = tracker.record("user-1", response, feature="research")
    >>> for warning in warnings:
    ...     print(warning.level, warning.message)
    >>> stats = tracker.stats("user-1")
    >>> print(f"Estimated cost: ${stats.estimated_cost_usd:.2f}")
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Literal

from ai_gateway.config import UsageThresholds
from ai_gateway.providers.base import ChatResponse

if TYPE_CHECKING:
    from ai_gateway.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

Period = Literal["current", "last"]


@dataclass
class ModelUsage:
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, input_tokens: int, output_tokens: int) -> None:
        self.requests += 1
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens


@dataclass
class ProviderUsage(ModelUsage):
    by_model: dict[str, ModelUsage] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class FeatureUsage:
    requests: int = 0
    tokens: int = 0


@dataclass(frozen=True)
class UsageWarning:
    """Threshold warning.

    Attributes:
        type: "cost" (monthly spend) or "quota" (per-provider tokens/requests)
        level: "warning" or "critical"
        percentage: current_value / threshold * 100
    """

    type: Literal["cost", "quota"]
    level: Literal["warning", "critical"]
    message: str
    current_value: float
    threshold: float
    percentage: float
    provider: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "level": self.level,
            "message": self.message,
            "current_value": self.current_value,
            "threshold": self.threshold,
            "percentage": round(self.percentage, 2),
            "provider": self.provider,
        }


@dataclass
class UsageStats:
    """Usage of one caller over one calendar month."""

    period_start: date
    period_end: date
    total_requests: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    estimated_cost_usd: float = 0.0
    by_provider: dict[str, ProviderUsage] = field(default_factory=dict)
    by_feature: dict[str, FeatureUsage] = field(default_factory=dict)
    cost_by_provider: dict[str, float] = field(default_factory=dict)
    warnings: list[UsageWarning] = field(default_factory=list)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "total_requests": self.total_requests,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_tokens,
            "estimated_cost_usd": round(self.estimated_cost_usd, 6),
            "by_provider": {
                name: {
                    "requests": usage.requests,
                    "input_tokens": usage.input_tokens,
                    "output_tokens": usage.output_tokens,
                    "by_model": {
                        model: vars(model_usage) for model, model_usage in usage.by_model.items()
                    },
                }
                for name, usage in self.by_provider.items()
            },
            "by_feature": {name: vars(usage) for name, usage in self.by_feature.items()},
            "cost_by_provider": {name: round(cost, 6) for name, cost in self.cost_by_provider.items()},
            "warnings": [w.to_dict() for w in self.warnings],
        }


def month_period(today: date, months_back: int = 0) -> tuple[date, date]:
    """First and last day of the month ``months_back`` months before ``today``."""
    year, month = today.year, today.month - months_back
    while month < 1:
        month += 12
        year -= 1
    start = date(year, month, 1)
    next_start = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, next_start - timedelta(days=1)


class UsageTracker:
    """In-memory usage aggregation with threshold warnings.

    Args:
        registry: Registry used to price calls via each adapter's estimate_cost
        thresholds: Cost and quota thresholds
        clock: Returns the current time (defaults to UTC now)
    """

    def __init__(
        self,
        registry: "ProviderRegistry",
        thresholds: UsageThresholds | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._registry = registry
        self.thresholds = thresholds or UsageThresholds()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._records: dict[tuple[str, date], UsageStats] = {}
        self._lock = threading.Lock()

    def record(self, caller_id: str, response: ChatResponse, feature: str = "chat") -> list[UsageWarning]:
        """Add a completed call to the caller's current month.

        Returns:
            Warnings for the updated month (empty when below all thresholds)
        """
        start, end = month_period(self._clock().date())
        provider = self._registry.get(response.provider_name)
        cost = (
            provider.estimate_cost(
                response.usage.input_tokens, response.usage.output_tokens, response.model_used
            )
            if provider
            else 0.0
        )
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        with self._lock:
            stats = self._records.setdefault(
                (caller_id, start), UsageStats(period_start=start, period_end=end)
            )
            stats.total_requests += 1
            stats.total_input_tokens += input_tokens
            stats.total_output_tokens += output_tokens
            stats.estimated_cost_usd += cost

            feature_usage = stats.by_feature.setdefault(feature, FeatureUsage())
            feature_usage.requests += 1
            feature_usage.tokens += input_tokens + output_tokens

            provider_usage = stats.by_provider.setdefault(response.provider_name, ProviderUsage())
            provider_usage.add(input_tokens, output_tokens)
            provider_usage.by_model.setdefault(response.model_used, ModelUsage()).add(
                input_tokens, output_tokens
            )

            stats.cost_by_provider[response.provider_name] = (
                stats.cost_by_provider.get(response.provider_name, 0.0) + cost
            )
            warnings = self.check_warnings(stats)

        for warning in warnings:
            logger.warning(
                warning.message,
                extra={"caller_id": caller_id, "provider": warning.provider},
            )
        return warnings

    def stats(self, caller_id: str, period: Period = "current") -> UsageStats:
        """Usage for the current or last month; zeroed when nothing was recorded."""
        if period not in ("current", "last"):
            raise ValueError(f"Unknown period: {period}")
        start, end = month_period(self._clock().date(), 0 if period == "current" else 1)

        with self._lock:
            stats = self._records.get((caller_id, start))
            if stats is None:
                return UsageStats(period_start=start, period_end=end)
            return UsageStats(
                period_start=start,
                period_end=end,
                total_requests=stats.total_requests,
                total_input_tokens=stats.total_input_tokens,
                total_output_tokens=stats.total_output_tokens,
                estimated_cost_usd=stats.estimated_cost_usd,
                by_provider={
                    name: ProviderUsage(
                        requests=usage.requests,
                        input_tokens=usage.input_tokens,
                        output_tokens=usage.output_tokens,
                        by_model={m: ModelUsage(**vars(u)) for m, u in usage.by_model.items()},
                    )
                    for name, usage in stats.by_provider.items()
                },
                by_feature={name: FeatureUsage(**vars(u)) for name, u in stats.by_feature.items()},
                cost_by_provider=dict(stats.cost_by_provider),
                warnings=self.check_warnings(stats),
            )

    def check_warnings(self, stats: UsageStats) -> list[UsageWarning]:
        """Compare a month's usage against the cost and quota thresholds."""
        warnings: list[UsageWarning] = []
        cost = stats.estimated_cost_usd
        hard_limit = self.thresholds.monthly_hard_limit
        soft_limit = self.thresholds.monthly_warning

        if hard_limit > 0 and cost >= hard_limit:
            warnings.append(
                UsageWarning(
                    type="cost",
                    level="critical",
                    message=f"Monthly cost limit reached: ${cost:.2f} of ${hard_limit} limit",
                    current_value=cost,
                    threshold=hard_limit,
                    percentage=cost / hard_limit * 100,
                )
            )
        elif soft_limit > 0 and cost >= soft_limit:
            warnings.append(
                UsageWarning(
                    type="cost",
                    level="warning",
                    message=f"Monthly cost warning: ${cost:.2f} of ${soft_limit} warning threshold",
                    current_value=cost,
                    threshold=soft_limit,
                    percentage=cost / soft_limit * 100,
                )
            )

        for name, usage in stats.by_provider.items():
            limits = self.thresholds.provider_limits.get(name)
            if limits is None:
                continue
            warnings.extend(
                _quota_warnings(name, "token", usage.total_tokens, limits.tokens_per_month, limits.warning_threshold)
            )
            warnings.extend(
                _quota_warnings(name, "request", usage.requests, limits.requests_per_month, limits.warning_threshold)
            )

        return warnings


def _quota_warnings(
    provider: str, unit: str, current: int, limit: int, warning_ratio: float
) -> list[UsageWarning]:
    if limit <= 0:
        return []
    ratio = current / limit
    if ratio >= 1.0:
        return [
            UsageWarning(
                type="quota",
                level="critical",
                message=f"{provider} {unit} limit reached: {current:,} of {limit:,} {unit}s",
                current_value=current,
                threshold=limit,
                percentage=ratio * 100,
                provider=provider,
            )
        ]
    if ratio >= warning_ratio:
        return [
            UsageWarning(
                type="quota",
                level="warning",
                message=f"{provider} approaching {unit} limit: {ratio * 100:.1f}% used",
                current_value=current,
                threshold=limit,
                percentage=ratio * 100,
                provider=provider,
            )
        ]
    return []
