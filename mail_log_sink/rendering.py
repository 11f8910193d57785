from __future__ import annotations

from typing import Iterable, Optional

from .formatter import Formatter, SimpleFormatter
from .layout import Layout, escape_html
from .models import LogEvent


class BodyRenderer:
    """Turns buffered events into the plain-text and optional HTML bodies.

    The plain body always uses :attr:`formatter`. The HTML body exists only
    when a layout is attached; its lines come from :attr:`layout_formatter`
    when one is set, otherwise from :attr:`formatter`.
    """

    def __init__(
        self,
        formatter: Optional[Formatter] = None,
        layout: Optional[Layout] = None,
        layout_formatter: Optional[Formatter] = None,
    ) -> None:
        self.formatter: Formatter = formatter or SimpleFormatter()
        self.layout = layout
        self.layout_formatter = layout_formatter

    def effective_layout_formatter(self) -> Formatter:
        return self.layout_formatter or self.formatter

    def render_text(self, events: Iterable[LogEvent]) -> str:
        return "".join(self.formatter.format(event) for event in events)

    def render_html(self, events: Iterable[LogEvent]) -> Optional[str]:
        """Render the layout body, or return None without a layout.

        Raises LayoutRenderError when the layout fails.
        """
        if self.layout is None:
            return None
        formatter = self.effective_layout_formatter()
        lines = [escape_html(formatter.format(event).rstrip("\n")) for event in events]
        self.layout.events = "<br>\n".join(lines)
        return self.layout.render()
