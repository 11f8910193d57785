"""Buffered log sink that delivers its entries as one mail on shutdown."""

from .config import ConfigurationError, TransportSettings
from .factory import sink_from_config
from .formatter import SimpleFormatter
from .handler import MailLogHandler
from .layout import Layout, LayoutRenderError
from .mail import Mail
from .models import LogEvent
from .sink import LayoutRenderWarning, MailDeliveryWarning, MailSink, SinkWarning
from .transport import InMemoryTransport, Transport, TransportError, build_transport

__all__ = [
    "ConfigurationError",
    "InMemoryTransport",
    "Layout",
    "LayoutRenderError",
    "LayoutRenderWarning",
    "LogEvent",
    "Mail",
    "MailDeliveryWarning",
    "MailLogHandler",
    "MailSink",
    "SimpleFormatter",
    "SinkWarning",
    "Transport",
    "TransportError",
    "TransportSettings",
    "build_transport",
    "sink_from_config",
]
