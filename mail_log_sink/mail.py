from __future__ import annotations

import secrets
from dataclasses import dataclass
from email.header import Header
from email.utils import formataddr, formatdate
from typing import TYPE_CHECKING, ClassVar, List, Optional, Tuple

from .config import DEFAULT_CHARSET, ConfigurationError
from .transport import TransportError

if TYPE_CHECKING:
    from .transport import Transport

Recipient = Tuple[str, Optional[str]]

_EOL = "\r\n"


@dataclass(frozen=True)
class RenderedMail:
    header: str
    body: str
    boundary: Optional[str] = None


class Mail:
    """Outgoing message composed by a sink.

    Holds addresses, subject and body parts, and renders them into header and
    body text for transports. A process-wide default transport can be set so
    that :meth:`send` works without an explicit transport.
    """

    _default_transport: ClassVar[Optional["Transport"]] = None

    def __init__(self, charset: str = DEFAULT_CHARSET) -> None:
        self.charset = charset
        self._from: Optional[Recipient] = None
        self._to: List[Recipient] = []
        self._cc: List[Recipient] = []
        self._bcc: List[str] = []
        self._subject: Optional[str] = None
        self._body_text: Optional[str] = None
        self._body_html: Optional[str] = None
        self._text_charset: Optional[str] = None
        self._html_charset: Optional[str] = None

    # -- default transport -------------------------------------------------

    @classmethod
    def set_default_transport(cls, transport: "Transport") -> None:
        Mail._default_transport = transport

    @classmethod
    def get_default_transport(cls) -> Optional["Transport"]:
        return Mail._default_transport

    @classmethod
    def clear_default_transport(cls) -> None:
        Mail._default_transport = None

    # -- addresses ---------------------------------------------------------

    def set_from(self, address: str, name: str | None = None) -> "Mail":
        if self._from is not None:
            raise ConfigurationError("From header set twice")
        self._from = (address, name)
        return self

    def get_from(self) -> Optional[Recipient]:
        return self._from

    def add_to(self, address: str, name: str | None = None) -> "Mail":
        self._to.append((address, name))
        return self

    def add_cc(self, address: str, name: str | None = None) -> "Mail":
        self._cc.append((address, name))
        return self

    def add_bcc(self, address: str) -> "Mail":
        self._bcc.append(address)
        return self

    def get_to(self) -> List[Recipient]:
        return list(self._to)

    def get_cc(self) -> List[Recipient]:
        return list(self._cc)

    def get_bcc(self) -> List[str]:
        return list(self._bcc)

    def get_recipients(self) -> List[str]:
        """Unique envelope addresses (to, cc, bcc) in the order they were added."""
        seen: List[str] = []
        for address in [a for a, _ in self._to] + [a for a, _ in self._cc] + self._bcc:
            if address not in seen:
                seen.append(address)
        return seen

    # -- subject and body --------------------------------------------------

    def set_subject(self, subject: str) -> "Mail":
        if self._subject is not None:
            raise ConfigurationError("Subject set twice")
        self._subject = subject
        return self

    def get_subject(self) -> Optional[str]:
        return self._subject

    def set_charset(self, charset: str) -> "Mail":
        self.charset = charset
        return self

    def set_body_text(self, text: str, charset: str | None = None) -> "Mail":
        self._body_text = text
        self._text_charset = charset
        return self

    def set_body_html(self, html: str, charset: str | None = None) -> "Mail":
        self._body_html = html
        self._html_charset = charset
        return self

    def get_body_text(self) -> Optional[str]:
        return self._body_text

    def get_body_html(self) -> Optional[str]:
        return self._body_html

    # -- rendering and delivery --------------------------------------------

    def render(self) -> RenderedMail:
        text_charset = self._text_charset or self.charset
        headers: List[str] = []
        if self._from is not None:
            headers.append(f"From: {self.format_address(self._from)}")
        if self._to:
            headers.append("To: " + ", ".join(self.format_address(r) for r in self._to))
        if self._cc:
            headers.append("Cc: " + ", ".join(self.format_address(r) for r in self._cc))
        if self._subject is not None:
            headers.append(f"Subject: {self._encode_header(self._subject)}")
        headers.append(f"Date: {formatdate(localtime=True)}")
        headers.append("MIME-Version: 1.0")

        text = self._body_text or ""
        if self._body_html is None:
            headers.append(f"Content-Type: text/plain; charset={text_charset}")
            headers.append("Content-Transfer-Encoding: 8bit")
            return RenderedMail(header=_EOL.join(headers) + _EOL, body=text)

        boundary = "=_" + secrets.token_hex(16)
        html_charset = self._html_charset or self.charset
        headers.append(f'Content-Type: multipart/alternative;{_EOL} boundary="{boundary}"')
        parts = [
            self._render_part(boundary, f"text/plain; charset={text_charset}", text),
            self._render_part(boundary, f"text/html; charset={html_charset}", self._body_html),
        ]
        body = "".join(parts) + f"--{boundary}--{_EOL}"
        return RenderedMail(header=_EOL.join(headers) + _EOL, body=body, boundary=boundary)

    def send(self, transport: "Transport | None" = None) -> "Mail":
        if transport is None:
            transport = Mail._default_transport
        if transport is None:
            raise TransportError("No transport given and no default transport set")
        transport.send(self)
        return self

    def format_address(self, recipient: Recipient) -> str:
        address, name = recipient
        if not name:
            return address
        return formataddr((name, address), charset=self._header_charset(name))

    def _encode_header(self, value: str) -> str:
        if value.isascii():
            return value
        return Header(value, self._header_charset(value)).encode()

    def _header_charset(self, value: str) -> str:
        # Headers the mail charset cannot represent fall back to UTF-8
        try:
            value.encode(self.charset)
        except (UnicodeEncodeError, LookupError):
            return "UTF-8"
        return self.charset

    @staticmethod
    def _render_part(boundary: str, content_type: str, content: str) -> str:
        return (
            f"--{boundary}{_EOL}"
            f"Content-Type: {content_type}{_EOL}"
            f"Content-Transfer-Encoding: 8bit{_EOL}"
            f"{_EOL}"
            f"{content}{_EOL}"
        )
