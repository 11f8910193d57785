from __future__ import annotations

import logging
import warnings
from typing import Optional

from .buffer import EventBuffer
from .config import ConfigurationError
from .formatter import Formatter
from .layout import Layout, LayoutRenderError
from .mail import Mail
from .models import LogEvent, RenderedBody
from .rendering import BodyRenderer
from .subject import SubjectComposer
from .transport import Transport

logger = logging.getLogger(__name__)


class SinkWarning(UserWarning):
    """Base category for non-fatal problems reported during shutdown."""


class LayoutRenderWarning(SinkWarning):
    """The HTML layout could not be rendered; the plain body was still sent."""


class MailDeliveryWarning(SinkWarning):
    """The buffered log mail could not be sent."""


class MailSink:
    """Buffers log events and sends them as a single mail on shutdown.

    ``mail`` carries the addresses and, optionally, a subject; ``layout``
    enables an HTML alternative body. Both are borrowed: the sink only fills
    in the subject and bodies. Call :meth:`shutdown` (or use the sink as a
    context manager) to deliver. Render and delivery problems are reported as
    :class:`SinkWarning` and never raised.
    """

    def __init__(
        self,
        mail: Mail,
        layout: Optional[Layout] = None,
        *,
        transport: Optional[Transport] = None,
        formatter: Optional[Formatter] = None,
    ) -> None:
        self._mail = mail
        self._layout = layout
        self._transport = transport
        self._buffer = EventBuffer()
        self._renderer = BodyRenderer(formatter=formatter, layout=layout)
        self._subject = SubjectComposer(mail)
        self._closed = False

    @property
    def mail(self) -> Mail:
        return self._mail

    @property
    def layout(self) -> Optional[Layout]:
        return self._layout

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._buffer)

    def counts(self) -> dict[str, int]:
        return self._buffer.counts()

    def write(self, event: LogEvent) -> None:
        if self._closed:
            return
        self._buffer.append(event)

    def set_formatter(self, formatter: Formatter) -> "MailSink":
        self._renderer.formatter = formatter
        return self

    def get_formatter(self) -> Formatter:
        return self._renderer.formatter

    def set_layout_formatter(self, formatter: Formatter) -> "MailSink":
        if self._layout is None:
            raise ConfigurationError("cannot set formatter for layout; layout not in use")
        self._renderer.layout_formatter = formatter
        return self

    def get_layout_formatter(self) -> Formatter:
        return self._renderer.effective_layout_formatter()

    def set_subject_prepend_text(self, text: str) -> "MailSink":
        self._subject.set_prepend_text(text)
        return self

    def get_subject_prepend_text(self) -> Optional[str]:
        return self._subject.prepend_text

    def shutdown(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not len(self._buffer):
            return

        counts = self._buffer.counts()
        events = self._buffer.drain()

        try:
            self._subject.apply(counts)
        except ConfigurationError as exc:
            warnings.warn(f"unable to compose subject for log mail; keeping existing subject; {exc}", SinkWarning, stacklevel=2)

        text_body = self._renderer.render_text(events)
        html_body = None
        try:
            html_body = self._renderer.render_html(events)
        except LayoutRenderError as exc:
            warnings.warn(
                "exception occurred when rendering layout; unable to set html body for message; "
                f"message = {exc}; exception class = {type(exc).__name__}",
                LayoutRenderWarning,
                stacklevel=2,
            )

        body = RenderedBody(text=text_body, html=html_body)
        self._mail.set_body_text(body.text)
        if body.is_multipart:
            self._mail.set_body_html(body.html)

        try:
            self._mail.send(self._transport)
        except Exception as exc:  # noqa: BLE001
            warnings.warn(
                f"unable to send log entries via email; message = {exc}; exception class = {type(exc).__name__}",
                MailDeliveryWarning,
                stacklevel=2,
            )
            return
        logger.debug("Sent %s buffered log events by mail", len(events))

    close = shutdown

    def __enter__(self) -> "MailSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True) and len(self._buffer):
            warnings.warn(
                f"MailSink was never shut down; {len(self._buffer)} buffered log events were not sent",
                ResourceWarning,
                stacklevel=2,
            )
