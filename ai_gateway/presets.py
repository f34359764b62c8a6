"""
Token, temperature and per-operation presets for caller features.

Lower temperatures give more deterministic output; higher ones more variety.
"""

from dataclasses import dataclass

DEFAULT_MODEL = "claude-sonnet-4-20250514"
FAST_MODEL = "claude-3-5-haiku-20241022"


class TokenLimits:
    """Output token limits by response length."""

    DEFAULT = 1024
    SHORT = 512  # task decomposition, briefings
    MEDIUM = 2048  # research
    LONG = 4096  # document drafting
    MAX = 8192


class TemperaturePreset:
    PRECISE = 0.0
    FOCUSED = 0.3
    BALANCED = 0.5
    CREATIVE = 0.7
    EXPLORATORY = 1.0


@dataclass(frozen=True)
class OperationPreset:
    model: str
    max_output_tokens: int
    temperature: float


OPERATION_PRESETS: dict[str, OperationPreset] = {
    "chat": OperationPreset(DEFAULT_MODEL, TokenLimits.DEFAULT, TemperaturePreset.BALANCED),
    "decompose": OperationPreset(DEFAULT_MODEL, TokenLimits.SHORT, TemperaturePreset.FOCUSED),
    "research": OperationPreset(DEFAULT_MODEL, TokenLimits.MEDIUM, TemperaturePreset.BALANCED),
    "draft": OperationPreset(DEFAULT_MODEL, TokenLimits.LONG, TemperaturePreset.CREATIVE),
    "briefing": OperationPreset(FAST_MODEL, TokenLimits.SHORT, TemperaturePreset.FOCUSED),
}


def get_operation_preset(operation: str) -> OperationPreset:
    """Preset for a caller feature.

    Raises:
        KeyError: If the operation has no preset
    """
    try:
        return OPERATION_PRESETS[operation]
    except KeyError:
        raise KeyError(
            f"Unknown operation: {operation}. Available: {', '.join(OPERATION_PRESETS)}"
        ) from None
