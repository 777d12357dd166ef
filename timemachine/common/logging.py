"""Structured logging setup for the time machine.

Every log line carries: timestamp, level, module tag, message and an
optional JSON blob of structured data.

Usage:
    from timemachine.common.logging import get_logger
    logger = get_logger("TIMELINE")
    logger.info("Timeline built", extra={"data": {"symbol": "BTCUSD", "points": 742}})
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

from timemachine.common.config import get_settings

# Module tags for structured logging
MODULE_TAGS = {
    "TIMELINE",
    "LOADER",
    "CACHE",
    "PLAYBACK",
    "PREFS",
    "API",
    "SYSTEM",
    "TEST",
}


class StructuredFormatter(logging.Formatter):
    """Formats log records as pipe-separated lines.

    Output format:
        2025-02-15T10:30:00Z | INFO | TIMELINE | Timeline built | {"points": 742}
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        module_tag = getattr(record, "module_tag", "SYSTEM")

        # Request ID is only set while serving an HTTP request
        try:
            from timemachine.common.middleware import request_id_var

            rid = request_id_var.get("")
        except ImportError:
            rid = ""

        parts = [timestamp, record.levelname]
        if rid:
            parts.append(f"rid={rid[:8]}")
        parts.extend([module_tag, record.getMessage()])

        data = getattr(record, "data", None)
        if data is not None:
            try:
                parts.append(json.dumps(data, default=str))
            except (TypeError, ValueError):
                parts.append(str(data))

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " | ".join(parts)


class ModuleTagLogger(logging.LoggerAdapter):
    """Logger adapter that stamps every record with its module tag."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra", {})
        extra["module_tag"] = self.extra.get("module_tag", "SYSTEM")
        kwargs["extra"] = extra
        return msg, kwargs


_loggers: dict[str, ModuleTagLogger] = {}


def get_logger(module_tag: str) -> ModuleTagLogger:
    """Get a structured logger with the given module tag.

    Args:
        module_tag: One of MODULE_TAGS (TIMELINE, PLAYBACK, LOADER, etc.)

    Returns:
        A cached logger adapter that injects the tag into every line.
    """
    if module_tag in _loggers:
        return _loggers[module_tag]

    logger = logging.getLogger(f"timemachine.{module_tag.lower()}")

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(get_settings().log_level.upper())
        logger.propagate = False

    adapter = ModuleTagLogger(logger, {"module_tag": module_tag})
    _loggers[module_tag] = adapter
    return adapter
