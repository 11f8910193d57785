from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from mail_log_sink import factory
from mail_log_sink.config import ConfigurationError
from mail_log_sink.factory import (
    parse_recipients,
    register_formatter,
    register_layout_class,
    register_mail_class,
    register_transport,
    sink_from_config,
)
from mail_log_sink.formatter import SimpleFormatter
from mail_log_sink.layout import Layout
from mail_log_sink.mail import Mail
from mail_log_sink.models import LogEvent
from mail_log_sink.sink import MailSink
from mail_log_sink.transport import InMemoryTransport

FILES = Path(__file__).parent / "_files"


class CustomMail(Mail):
    pass


class CustomLayout(Layout):
    pass


class UpperFormatter:
    def format(self, event: LogEvent) -> str:
        return event.message.upper() + "\n"


@pytest.fixture
def transport():
    transport = InMemoryTransport()
    Mail.set_default_transport(transport)
    yield transport
    Mail.clear_default_transport()


@pytest.fixture
def registries(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("_MAIL_CLASSES", "_LAYOUT_CLASSES", "_FORMATTERS", "_TRANSPORTS"):
        monkeypatch.setattr(factory, name, dict(getattr(factory, name)))


def _event() -> LogEvent:
    return LogEvent.from_mapping(
        {
            "timestamp": datetime(2024, 12, 7, 9, 30, tzinfo=timezone.utc).isoformat(),
            "message": "an info message",
            "priority": 6,
            "priorityName": "INFO",
        }
    )


def test_factory_builds_sink_from_addresses_and_subject(transport: InMemoryTransport) -> None:
    sink = sink_from_config(
        {
            "from": {"email": "log@test.example.com"},
            "to": "admin@domain.com",
            "subject": "[error] exceptions on my application",
        }
    )
    assert isinstance(sink, MailSink)

    sink.write(_event())
    sink.shutdown()

    assert transport.recipients == ["admin@domain.com"]
    assert "an info message" in transport.body
    assert "From: log@test.example.com" in transport.header
    assert "To: admin@domain.com" in transport.header
    assert "Subject: [error] exceptions on my application" in transport.header


def test_factory_sets_subject_prepend_text(transport: InMemoryTransport) -> None:
    sink = sink_from_config({"subjectPrependText": "[error] exceptions on my application"})
    sink.write(_event())
    sink.shutdown()

    assert "Subject: [error] exceptions on my application (INFO=1)" in transport.header


def test_factory_rejects_subject_and_prepend_text_together() -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"subject": "fixed", "subjectPrependText": "prefix"})


def test_factory_accepts_custom_mail_class() -> None:
    sink = sink_from_config({"class": CustomMail})
    assert isinstance(sink, MailSink)
    assert isinstance(sink.mail, CustomMail)


def test_factory_accepts_registered_mail_class(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(factory._MAIL_CLASSES, "custom", CustomMail)
    sink = sink_from_config({"class": "custom"})
    assert isinstance(sink.mail, CustomMail)


@pytest.mark.parametrize("path", ["mail_log_sink.mail.Mail", "mail_log_sink.mail:Mail"])
def test_factory_accepts_dotted_class_path(path: str) -> None:
    sink = sink_from_config({"class": path})
    assert type(sink.mail) is Mail


@pytest.mark.parametrize("value", ["NoSuchMail", "mail_log_sink.mail.NoSuchMail", "no_such_module.Mail"])
def test_factory_rejects_unknown_mail_class(value: str) -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"class": value})


def test_factory_sets_charset(transport: InMemoryTransport) -> None:
    sink = sink_from_config({"charset": "UTF-8"})
    sink.write(_event())
    sink.shutdown()

    assert "Content-Type: text/plain; charset=UTF-8" in transport.header


def test_factory_allows_multiple_recipients(transport: InMemoryTransport) -> None:
    sink = sink_from_config(
        {
            "to": {"John Doe": "admin1@domain.com", 0: "admin2@domain.com"},
            "cc": ["bug@domain.com", {"project": "projectname@domain.com"}],
        }
    )
    sink.write(_event())
    sink.shutdown()

    assert transport.recipients == [
        "admin1@domain.com",
        "admin2@domain.com",
        "bug@domain.com",
        "projectname@domain.com",
    ]
    assert "To: John Doe <admin1@domain.com>, admin2@domain.com" in transport.header
    assert "Cc: bug@domain.com, project <projectname@domain.com>" in transport.header


def test_factory_bcc_is_not_in_header(transport: InMemoryTransport) -> None:
    sink = sink_from_config({"to": "admin@domain.com", "bcc": ["audit@domain.com"]})
    sink.write(_event())
    sink.shutdown()

    assert "audit@domain.com" in transport.recipients
    assert "audit@domain.com" not in transport.header


@pytest.mark.parametrize("value", [42, ["ok@domain.com", 3], {"name": ""}, [("a", "b")]])
def test_factory_rejects_malformed_recipients(value) -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"to": value})


def test_factory_rejects_from_without_email() -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"from": {"name": "Logger"}})


def test_factory_with_layout(transport: InMemoryTransport) -> None:
    sink = sink_from_config({"layoutOptions": {"layoutPath": str(FILES)}})
    sink.write(_event())
    sink.shutdown()

    assert transport.boundary
    assert "Content-Type: multipart/" in transport.header
    assert "boundary=" in transport.header
    assert "Content-Type: text/plain" in transport.body
    assert "Content-Type: text/html" in transport.body
    assert transport.boundary in transport.body
    assert transport.body.count("an info message") == 2


def test_factory_sets_layout_formatter() -> None:
    sink = sink_from_config(
        {
            "layoutOptions": {"layoutPath": "/path/to/layout/scripts"},
            "layoutFormatter": "simple",
        }
    )
    assert isinstance(sink.get_layout_formatter(), SimpleFormatter)


def test_factory_rejects_layout_formatter_without_layout() -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"layoutFormatter": "simple"})


def test_factory_with_custom_layout_class() -> None:
    sink = sink_from_config({"layout": CustomLayout})
    assert isinstance(sink, MailSink)
    assert isinstance(sink.layout, CustomLayout)


def test_factory_rejects_unknown_layout_option() -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"layoutOptions": {"noSuchOption": True}})


def test_factory_uses_configured_transport() -> None:
    transport = InMemoryTransport()
    sink = sink_from_config({"to": "admin@domain.com", "transport": transport})
    sink.write(_event())
    sink.shutdown()
    assert len(transport.outbox) == 1


def test_parse_recipients_keeps_order_and_names() -> None:
    assert parse_recipients(["a@x.com", {"B": "b@x.com"}, "c@x.com"], "to") == [
        ("a@x.com", None),
        ("b@x.com", "B"),
        ("c@x.com", None),
    ]
    assert parse_recipients(None, "cc") == []


def _hello() -> LogEvent:
    return LogEvent.create("hello", timestamp=datetime(2024, 12, 7, 9, 30, tzinfo=timezone.utc))


@pytest.mark.parametrize(
    "value", ["memory", "mail_log_sink.transport.InMemoryTransport", "mail_log_sink.transport:InMemoryTransport"]
)
def test_factory_resolves_transport_by_name_or_path(
    transport: InMemoryTransport, recwarn: pytest.WarningsRecorder, value: str
) -> None:
    sink = sink_from_config({"to": "admin@domain.com", "transport": value, "formatter": "message"})
    sink.write(_hello())
    sink.shutdown()

    assert sink.mail.get_body_text() == "hello\n"
    assert transport.outbox == []
    assert not [w for w in recwarn if issubclass(w.category, UserWarning)]


def test_factory_builds_transport_from_environment(
    transport: InMemoryTransport, monkeypatch: pytest.MonkeyPatch, recwarn: pytest.WarningsRecorder
) -> None:
    monkeypatch.setenv("MAIL_LOG_TRANSPORT", "memory")
    sink = sink_from_config({"to": "admin@domain.com", "transport": "env"})
    sink.write(_hello())
    sink.shutdown()

    assert "hello" in sink.mail.get_body_text()
    assert transport.outbox == []
    assert not [w for w in recwarn if issubclass(w.category, UserWarning)]


def test_factory_env_transport_without_credentials_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_LOG_TRANSPORT", "brevo")
    monkeypatch.delenv("BREVO_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        sink_from_config({"transport": "env"})


def test_factory_rejects_unknown_transport() -> None:
    with pytest.raises(ConfigurationError):
        sink_from_config({"transport": "carrier-pigeon"})


def test_factory_formatter_option_sets_plain_body(transport: InMemoryTransport) -> None:
    sink = sink_from_config({"to": "admin@domain.com", "formatter": "message"})
    sink.write(_hello())
    sink.shutdown()

    assert transport.body == "hello\n"


def test_register_mail_class(registries: None) -> None:
    register_mail_class("custom", CustomMail)
    assert isinstance(sink_from_config({"class": "custom"}).mail, CustomMail)


def test_register_layout_class(registries: None) -> None:
    register_layout_class("custom", CustomLayout)
    sink = sink_from_config({"layout": "custom"})
    assert isinstance(sink.layout, CustomLayout)


def test_register_formatter(registries: None, transport: InMemoryTransport) -> None:
    register_formatter("upper", UpperFormatter)
    sink = sink_from_config({"to": "admin@domain.com", "formatter": "upper"})
    sink.write(_hello())
    sink.shutdown()

    assert transport.body == "HELLO\n"


def test_register_transport(registries: None) -> None:
    outbox_transport = InMemoryTransport()
    register_transport("outbox", lambda: outbox_transport)
    sink = sink_from_config({"to": "admin@domain.com", "transport": "outbox"})
    sink.write(_hello())
    sink.shutdown()

    assert len(outbox_transport.outbox) == 1
    assert outbox_transport.recipients == ["admin@domain.com"]


def test_registrations_do_not_leak_between_tests() -> None:
    assert "custom" not in factory._MAIL_CLASSES
    assert "outbox" not in factory._TRANSPORTS
