from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

EMERG = 0
ALERT = 1
CRIT = 2
ERR = 3
WARN = 4
NOTICE = 5
INFO = 6
DEBUG = 7

PRIORITY_NAMES = {
    EMERG: "EMERG",
    ALERT: "ALERT",
    CRIT: "CRIT",
    ERR: "ERR",
    WARN: "WARN",
    NOTICE: "NOTICE",
    INFO: "INFO",
    DEBUG: "DEBUG",
}


@dataclass(frozen=True)
class LogEvent:
    timestamp: datetime
    message: str
    priority: int
    priority_name: str

    @classmethod
    def create(cls, message: str, priority: int = INFO, timestamp: Optional[datetime] = None) -> "LogEvent":
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            message=message,
            priority=priority,
            priority_name=PRIORITY_NAMES.get(priority, str(priority)),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LogEvent":
        """Build an event from the flat keys used by log facades.

        ``timestamp`` may be a datetime or an ISO 8601 string.
        """
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        priority = int(data.get("priority", INFO))
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            message=str(data.get("message", "")),
            priority=priority,
            priority_name=data.get("priorityName") or PRIORITY_NAMES.get(priority, str(priority)),
        )


@dataclass(frozen=True)
class RenderedBody:
    text: str
    html: Optional[str] = None

    @property
    def is_multipart(self) -> bool:
        return self.html is not None
