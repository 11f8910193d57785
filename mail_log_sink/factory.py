from __future__ import annotations

import importlib
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import ConfigurationError, TransportSettings
from .formatter import MessageOnlyFormatter, SimpleFormatter
from .layout import Layout
from .mail import Mail, Recipient
from .sink import MailSink
from .transport import InMemoryTransport, Transport, TransportError, build_transport

logger = logging.getLogger(__name__)


def _transport_from_env() -> Transport:
    try:
        return build_transport(TransportSettings.from_env())
    except (ValueError, TransportError) as exc:
        raise ConfigurationError(f"transport could not be built from environment: {exc}") from exc


_MAIL_CLASSES: Dict[str, Callable[..., Any]] = {"mail": Mail}
_LAYOUT_CLASSES: Dict[str, Callable[..., Any]] = {"layout": Layout}
_FORMATTERS: Dict[str, Callable[..., Any]] = {"simple": SimpleFormatter, "message": MessageOnlyFormatter}
_TRANSPORTS: Dict[str, Callable[..., Any]] = {"memory": InMemoryTransport, "env": _transport_from_env}


def register_mail_class(name: str, factory: Callable[..., Any]) -> None:
    _MAIL_CLASSES[name] = factory


def register_layout_class(name: str, factory: Callable[..., Any]) -> None:
    _LAYOUT_CLASSES[name] = factory


def register_formatter(name: str, factory: Callable[..., Any]) -> None:
    _FORMATTERS[name] = factory


def register_transport(name: str, factory: Callable[..., Any]) -> None:
    _TRANSPORTS[name] = factory


def resolve(kind: str, value: Any, registry: Mapping[str, Callable[..., Any]]) -> Callable[..., Any]:
    """Resolve a registered name, a dotted import path or a callable."""
    if not isinstance(value, str):
        if callable(value):
            return value
        raise ConfigurationError(f"{kind} must be a name or a callable, got {type(value).__name__}")
    if value in registry:
        return registry[value]
    if "." not in value and ":" not in value:
        raise ConfigurationError(f"unknown {kind} '{value}'")
    module_name, _, attr = value.replace(":", ".").rpartition(".")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f"{kind} '{value}' could not be imported: {exc}") from exc


def parse_recipients(value: Any, option: str) -> List[Recipient]:
    """Normalise an address option into ``(address, name)`` pairs.

    Accepts a single address, a sequence of addresses or single-entry
    ``{name: address}`` mappings, or a mapping whose string keys are display
    names and whose integer keys mean "no name".
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [(_check_address(value, option), None)]
    if isinstance(value, Mapping):
        return [_mapping_entry(key, address, option) for key, address in value.items()]
    if isinstance(value, (list, tuple)):
        recipients: List[Recipient] = []
        for entry in value:
            if isinstance(entry, str):
                recipients.append((_check_address(entry, option), None))
            elif isinstance(entry, Mapping):
                recipients.extend(_mapping_entry(key, address, option) for key, address in entry.items())
            else:
                raise ConfigurationError(f"'{option}' entries must be addresses or name/address mappings")
        return recipients
    raise ConfigurationError(f"'{option}' must be an address, a sequence or a mapping")


def _mapping_entry(key: Any, address: Any, option: str) -> Recipient:
    if not isinstance(key, (str, int)):
        raise ConfigurationError(f"'{option}' display names must be strings")
    name = key if isinstance(key, str) and key else None
    return (_check_address(address, option), name)


def _check_address(address: Any, option: str) -> str:
    if not isinstance(address, str) or not address.strip():
        raise ConfigurationError(f"'{option}' contains an invalid address: {address!r}")
    return address.strip()


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _build_mail(config: Mapping[str, Any]) -> Mail:
    mail_factory = resolve("mail class", config.get("class", "mail"), _MAIL_CLASSES)
    mail = mail_factory()
    if config.get("charset"):
        mail.set_charset(config["charset"])

    sender = config.get("from")
    if isinstance(sender, str):
        mail.set_from(_check_address(sender, "from"))
    elif isinstance(sender, Mapping):
        if "email" not in sender:
            raise ConfigurationError("'from' requires an 'email' entry")
        mail.set_from(_check_address(sender["email"], "from"), sender.get("name"))
    elif sender is not None:
        raise ConfigurationError("'from' must be an address or a mapping with 'email' and 'name'")

    for address, name in parse_recipients(config.get("to"), "to"):
        mail.add_to(address, name)
    for address, name in parse_recipients(config.get("cc"), "cc"):
        mail.add_cc(address, name)
    for address, _ in parse_recipients(config.get("bcc"), "bcc"):
        mail.add_bcc(address)

    if config.get("subject"):
        mail.set_subject(config["subject"])
    return mail


def _build_layout(config: Mapping[str, Any]) -> Optional[Any]:
    if "layout" not in config and "layoutOptions" not in config:
        return None
    layout_factory = resolve("layout class", config.get("layout", "layout"), _LAYOUT_CLASSES)
    options = config.get("layoutOptions") or {}
    if not isinstance(options, Mapping):
        raise ConfigurationError("'layoutOptions' must be a mapping")
    try:
        return layout_factory(**{_snake_case(key): value for key, value in options.items()})
    except TypeError as exc:
        raise ConfigurationError(f"invalid layoutOptions: {exc}") from exc


def _build_transport(config: Mapping[str, Any]) -> Optional[Transport]:
    value = config.get("transport")
    if value is None or isinstance(value, Transport):
        return value
    return resolve("transport", value, _TRANSPORTS)()


def sink_from_config(config: Mapping[str, Any]) -> MailSink:
    """Build a :class:`MailSink` from a flat option mapping.

    Recognised keys: ``from``, ``to``, ``cc``, ``bcc``, ``subject``,
    ``subjectPrependText``, ``charset``, ``class``, ``layout``,
    ``layoutOptions``, ``layoutFormatter``, ``formatter`` and ``transport``.
    Every problem is reported as ConfigurationError before the sink exists.
    """
    mail = _build_mail(config)
    layout = _build_layout(config)
    sink = MailSink(mail, layout, transport=_build_transport(config))

    if config.get("formatter"):
        sink.set_formatter(resolve("formatter", config["formatter"], _FORMATTERS)())
    if config.get("layoutFormatter"):
        formatter = resolve("layout formatter", config["layoutFormatter"], _FORMATTERS)()
        sink.set_layout_formatter(formatter)
    if config.get("subjectPrependText") is not None:
        sink.set_subject_prepend_text(config["subjectPrependText"])

    logger.debug(
        "Built mail sink recipients=%s layout=%s",
        len(mail.get_recipients()),
        type(layout).__name__ if layout is not None else None,
    )
    return sink
