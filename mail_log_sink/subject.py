from __future__ import annotations

from typing import Mapping, Optional

from .config import ConfigurationError
from .mail import Mail


def format_counts(counts: Mapping[str, int]) -> str:
    return ", ".join(f"{name}={count}" for name, count in counts.items())


class SubjectComposer:
    def __init__(self, mail: Mail) -> None:
        self._mail = mail
        self.prepend_text: Optional[str] = None

    def set_prepend_text(self, text: str) -> None:
        if self._mail.get_subject() is not None:
            raise ConfigurationError("subject already set on mail; cannot set subject prepend text")
        if self.prepend_text is not None:
            raise ConfigurationError("subject prepend text already set")
        self.prepend_text = text

    def compose(self, counts: Mapping[str, int]) -> Optional[str]:
        """Return ``"<prepend> (INFO=2, WARN=1)"``, or None without prepend text."""
        if self.prepend_text is None:
            return None
        summary = format_counts(counts)
        if not summary:
            return self.prepend_text
        return f"{self.prepend_text} ({summary})"

    def apply(self, counts: Mapping[str, int]) -> None:
        subject = self.compose(counts)
        if subject is not None:
            self._mail.set_subject(subject)
