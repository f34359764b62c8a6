"""
Structured JSON logging for the AI gateway.

Gateway modules log through ``logging.getLogger(__name__)`` (or an injected
logger) with structured context in ``extra``; this module only decides how
those records are rendered. Call ``setup_logging`` once at process start.
"""

import json
import logging
import sys
from datetime import UTC, datetime

# Structured fields emitted by the gateway via ``extra=``
GATEWAY_FIELDS = (
    "provider",
    "model",
    "attempt",
    "delay_seconds",
    "error_kind",
    "status_code",
    "caller_id",
    "context_id",
    "input_tokens",
    "output_tokens",
    "stop_reason",
    "duration_ms",
    "streamed",
)


class JSONFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(JSONFormatter())
        >>> logger = logging.getLogger("ai_gateway")
        >>> logger.addHandler(handler)
        >>> logger.info("Chat completed", extra={"provider": "anthropic", "input_tokens": 12})
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for name in GATEWAY_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO") -> None:
    """
    Configure structured JSON logging to stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # SDK and transport loggers are chatty at INFO
    for noisy in ("httpx", "httpcore", "anthropic", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Structured JSON logging configured", extra={"log_level": level})
