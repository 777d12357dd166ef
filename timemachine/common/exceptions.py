"""Custom exceptions for the time machine.

Timeline code raises these instead of generic exceptions. The FastAPI
exception handler in main.py turns TimeMachineError into a structured
JSON error response. Playback never raises; it clamps.
"""

from __future__ import annotations


class TimeMachineError(Exception):
    """Base exception for all time machine errors.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured data for logging/debugging.
    """

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{super().__str__()} | context={self.context}"
        return super().__str__()


class UnknownTimeframeError(TimeMachineError):
    """Timeframe string is not one of the supported bucket widths."""


class SourceUnavailableError(TimeMachineError):
    """A data source (file, query) is missing or could not be read."""


class MalformedRecordError(TimeMachineError):
    """A raw record has missing or non-finite fields."""
