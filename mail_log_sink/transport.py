from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Bcc, Cc, Email, To
from sendgrid.helpers.mail import Mail as SendGridMail

from .config import BREVO_API_URL, HTTP_TIMEOUT_SECONDS, TransportSettings

if TYPE_CHECKING:
    from .mail import Mail, RenderedMail

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when a composed mail cannot be delivered."""


class Transport:
    """Base class for mail transports.

    :meth:`send` renders the mail and keeps the envelope recipients, header,
    body and multipart boundary of the last message on the instance before
    handing it to :meth:`_send_mail`. Delivery is a single attempt.
    """

    provider = "abstract"

    def __init__(self) -> None:
        self.recipients: List[str] = []
        self.header = ""
        self.body = ""
        self.boundary: Optional[str] = None

    def send(self, mail: "Mail") -> None:
        rendered = mail.render()
        self.recipients = mail.get_recipients()
        self.header = rendered.header
        self.body = rendered.body
        self.boundary = rendered.boundary
        self._send_mail(mail, rendered)

    def _send_mail(self, mail: "Mail", rendered: "RenderedMail") -> None:
        raise NotImplementedError


class InMemoryTransport(Transport):
    """Keeps delivered mail in :attr:`outbox`; intended for tests."""

    provider = "memory"

    def __init__(self) -> None:
        super().__init__()
        self.outbox: List["RenderedMail"] = []

    def _send_mail(self, mail: "Mail", rendered: "RenderedMail") -> None:
        self.outbox.append(rendered)


def _require_sender(mail: "Mail") -> tuple[str, Optional[str]]:
    sender = mail.get_from()
    if sender is None:
        raise TransportError("Mail has no From address")
    if not mail.get_recipients():
        raise TransportError("Mail has no recipients")
    return sender


class BrevoTransport(Transport):
    provider = "brevo"

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = BREVO_API_URL,
        http_transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__()
        self._api_key = api_key
        self._api_url = api_url
        self._http_transport = http_transport

    def _send_mail(self, mail: "Mail", rendered: "RenderedMail") -> None:
        from_email, from_name = _require_sender(mail)
        sender: Dict[str, str] = {"email": from_email}
        if from_name:
            sender["name"] = from_name
        payload: Dict[str, Any] = {
            "sender": sender,
            "to": [_brevo_contact(address, name) for address, name in mail.get_to()],
            "subject": mail.get_subject() or "",
            "textContent": mail.get_body_text() or "",
        }
        if mail.get_cc():
            payload["cc"] = [_brevo_contact(address, name) for address, name in mail.get_cc()]
        if mail.get_bcc():
            payload["bcc"] = [{"email": address} for address in mail.get_bcc()]
        html_body = mail.get_body_html()
        if html_body:
            payload["htmlContent"] = html_body

        headers = {"api-key": self._api_key, "content-type": "application/json"}
        try:
            with httpx.Client(timeout=HTTP_TIMEOUT_SECONDS, transport=self._http_transport) as client:
                response = client.post(self._api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(f"Brevo returned error status: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to send email: {exc}") from exc
        logger.info("Mail sent with status %s", response.status_code)


def _brevo_contact(address: str, name: Optional[str]) -> Dict[str, str]:
    contact = {"email": address}
    if name:
        contact["name"] = name
    return contact


class SendGridTransport(Transport):
    provider = "sendgrid"

    def __init__(self, api_key: str, client: Optional[Any] = None) -> None:
        super().__init__()
        self._client = client or SendGridAPIClient(api_key)

    def _send_mail(self, mail: "Mail", rendered: "RenderedMail") -> None:
        from_email, from_name = _require_sender(mail)
        message = SendGridMail(
            from_email=Email(email=from_email, name=from_name),
            to_emails=[To(email=address, name=name) for address, name in mail.get_to()],
            subject=mail.get_subject() or "",
            plain_text_content=mail.get_body_text() or "",
            html_content=mail.get_body_html(),
        )
        for address, name in mail.get_cc():
            message.add_cc(Cc(email=address, name=name))
        for address in mail.get_bcc():
            message.add_bcc(Bcc(email=address))
        try:
            response = self._client.send(message)
        except Exception as exc:  # noqa: BLE001
            raise TransportError(f"Failed to send email: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"SendGrid returned error status: {response.status_code}")
        logger.info("Mail sent with status %s", response.status_code)


class SESTransport(Transport):
    provider = "ses"

    def __init__(
        self,
        *,
        aws_region: str,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        client: Optional[Any] = None,
    ) -> None:
        super().__init__()
        client_kwargs = {"region_name": aws_region}
        if aws_access_key_id and aws_secret_access_key:
            client_kwargs["aws_access_key_id"] = aws_access_key_id
            client_kwargs["aws_secret_access_key"] = aws_secret_access_key
            if aws_session_token:
                client_kwargs["aws_session_token"] = aws_session_token
        self._client = client if client is not None else boto3.client("sesv2", **client_kwargs)

    def _send_mail(self, mail: "Mail", rendered: "RenderedMail") -> None:
        _require_sender(mail)
        charset = mail.charset
        body: Dict[str, Dict[str, str]] = {"Text": {"Data": mail.get_body_text() or "", "Charset": charset}}
        html_body = mail.get_body_html()
        if html_body:
            body["Html"] = {"Data": html_body, "Charset": charset}

        destination: Dict[str, List[str]] = {"ToAddresses": [mail.format_address(r) for r in mail.get_to()]}
        if mail.get_cc():
            destination["CcAddresses"] = [mail.format_address(r) for r in mail.get_cc()]
        if mail.get_bcc():
            destination["BccAddresses"] = mail.get_bcc()

        request = {
            "FromEmailAddress": mail.format_address(mail.get_from()),
            "Destination": destination,
            "Content": {
                "Simple": {
                    "Subject": {"Data": mail.get_subject() or "", "Charset": charset},
                    "Body": body,
                }
            },
        }
        try:
            response = self._client.send_email(**request)
        except (ClientError, BotoCoreError) as exc:
            raise TransportError(f"Failed to send email: {exc}") from exc
        status_code = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if isinstance(status_code, int) and status_code >= 400:
            raise TransportError(f"SES returned error status: {status_code}")
        logger.info("Mail sent with status %s", status_code)


def build_transport(settings: TransportSettings) -> Transport:
    """
    Provider selection follows ``settings.provider``:
    - "brevo", "sendgrid" and "ses" need their credentials.
    - "memory" keeps messages in process.
    """
    provider = settings.provider
    if provider == "memory":
        return InMemoryTransport()
    if provider == "brevo" and settings.brevo_api_key:
        return BrevoTransport(settings.brevo_api_key)
    if provider == "sendgrid" and settings.sendgrid_api_key:
        return SendGridTransport(settings.sendgrid_api_key)
    if provider == "ses" and settings.aws_region:
        return SESTransport(
            aws_region=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
        )
    raise TransportError(f"Transport '{provider}' is not configured.")
