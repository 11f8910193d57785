from __future__ import annotations

from typing import Protocol

from .config import DEFAULT_LINE_FORMAT
from .models import LogEvent


class Formatter(Protocol):
    def format(self, event: LogEvent) -> str: ...


class SimpleFormatter:
    """Format an event as one line using ``str.format`` fields.

    Available fields: ``timestamp`` (ISO 8601), ``message``, ``priority`` and
    ``priority_name``.
    """

    def __init__(self, line_format: str | None = None) -> None:
        self._line_format = line_format or DEFAULT_LINE_FORMAT

    def format(self, event: LogEvent) -> str:
        line = self._line_format.format(
            timestamp=event.timestamp.isoformat(),
            message=event.message,
            priority=event.priority,
            priority_name=event.priority_name,
        )
        return line + "\n"


class MessageOnlyFormatter:
    def format(self, event: LogEvent) -> str:
        return event.message + "\n"
