"""Email delivery backends for product fulfillment."""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import List, Optional, Protocol
from uuid import uuid4

import httpx
from loguru import logger


class MailerError(RuntimeError):
    """Raised when a backend refuses or fails to deliver a message."""

    def __init__(self, message: str, *, code: str = "DeliveryFailed", status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class Mailer(Protocol):
    """Minimal protocol for sending fulfillment emails."""

    async def send(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> str:
        """Deliver the message and return the provider's message identifier."""
        ...


class ResendMailer:
    """Sends through the Resend HTTP API."""

    def __init__(
        self,
        *,
        api_key: str,
        sender_email: str,
        api_url: str = "https://api.resend.com",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._sender_email = sender_email
        self._api_url = api_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = http_client is None

    async def send(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> str:
        body = {
            "from": self._sender_email,
            "to": [recipient],
            "subject": subject,
            "text": body_text,
        }
        if body_html:
            body["html"] = body_html

        try:
            response = await self._client.post(
                f"{self._api_url}/emails",
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.TimeoutException as exc:
            raise MailerError("Email provider timed out", code="DeliveryTimeout") from exc
        except httpx.HTTPError as exc:
            raise MailerError(f"Email provider unreachable: {exc}") from exc

        payload = _json_or_empty(response)
        if response.status_code >= 400:
            code = payload.get("name") if isinstance(payload.get("name"), str) else "DeliveryFailed"
            message = payload.get("message") if isinstance(payload.get("message"), str) else response.text
            raise MailerError(
                f"Email provider rejected message (HTTP {response.status_code}): {message}",
                code=code,
                status_code=response.status_code,
            )

        message_id = payload.get("id")
        if not isinstance(message_id, str) or not message_id:
            raise MailerError("Email provider response did not include a message id")
        return message_id

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class SMTPMailer:
    """SMTP-powered backend that sends emails via standard library."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool,
        sender_email: str,
        timeout_seconds: float = 15.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._sender_email = sender_email
        self._timeout = timeout_seconds

    async def send(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> str:
        """Send email asynchronously by offloading blocking call."""

        message = _build_message(recipient, subject, body_text, body_html)
        message["From"] = self._sender_email
        message_id = make_msgid(domain=self._sender_email.rpartition("@")[2] or None)
        message["Message-ID"] = message_id

        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailerError(f"SMTP delivery failed: {exc}", code=type(exc).__name__) from exc
        return message_id.strip("<>")

    def _send(self, message: EmailMessage) -> None:
        smtp = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        try:
            if self._use_tls:
                smtp.starttls()
            if self._username and self._password:
                smtp.login(self._username, self._password)
            smtp.send_message(message)
        finally:
            smtp.quit()


@dataclass
class InMemoryMailer:
    """Test backend storing outbound messages in memory."""

    sent_messages: List[EmailMessage]
    fail_with: MailerError | None

    def __init__(self, *, fail_with: MailerError | None = None) -> None:
        self.sent_messages = []
        self.fail_with = fail_with

    async def send(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        message = _build_message(recipient, subject, body_text, body_html)
        message_id = uuid4().hex
        message["Message-ID"] = message_id
        self.sent_messages.append(message)
        logger.debug("Captured outbound email", recipient=recipient, message_id=message_id)
        return message_id


def _build_message(recipient: str, subject: str, body_text: str, body_html: str | None) -> EmailMessage:
    message = EmailMessage()
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body_text)
    if body_html:
        message.add_alternative(body_html, subtype="html")
    return message


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        parsed = response.json()
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
