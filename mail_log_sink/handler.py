from __future__ import annotations

import logging
from datetime import datetime, timezone

from .models import CRIT, DEBUG, ERR, INFO, NOTICE, WARN, LogEvent
from .sink import MailSink

# Lower bound of each logging level band and the priority it maps to
_LEVEL_BANDS = (
    (logging.CRITICAL, CRIT),
    (logging.ERROR, ERR),
    (logging.WARNING, WARN),
    (logging.INFO + 5, NOTICE),
    (logging.INFO, INFO),
)


def priority_for_level(levelno: int) -> int:
    for lower_bound, priority in _LEVEL_BANDS:
        if levelno >= lower_bound:
            return priority
    return DEBUG


def event_from_record(record: logging.LogRecord) -> LogEvent:
    return LogEvent.create(
        message=record.getMessage(),
        priority=priority_for_level(record.levelno),
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
    )


class MailLogHandler(logging.Handler):
    """Logging handler that feeds a :class:`MailSink`.

    Records are only buffered; the mail goes out when the handler is closed,
    which ``logging.shutdown()`` does at interpreter exit.
    """

    def __init__(self, sink: MailSink, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink.write(event_from_record(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            self.sink.shutdown()
        finally:
            self.release()
        super().close()
