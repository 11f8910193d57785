from __future__ import annotations

from typing import Dict, List

from .models import LogEvent


class EventBuffer:
    def __init__(self) -> None:
        self._events: List[LogEvent] = []

    def append(self, event: LogEvent) -> None:
        self._events.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def counts(self) -> Dict[str, int]:
        """Number of events per priority name, in first-occurrence order."""
        counts: Dict[str, int] = {}
        for event in self._events:
            counts[event.priority_name] = counts.get(event.priority_name, 0) + 1
        return counts

    def drain(self) -> List[LogEvent]:
        events, self._events = self._events, []
        return events
