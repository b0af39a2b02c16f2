from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache

import httpx
import structlog

from clubevents.core.config import settings
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import DependencyError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    sender: str
    subject: str
    text: str
    html: str


class EmailSender(ABC):
    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        """Deliver the message or raise DependencyError."""


class ConsoleEmailSender(EmailSender):
    def send(self, message: EmailMessage) -> None:
        logger.info(
            "email_console_send",
            to=message.to,
            sender=message.sender,
            subject=message.subject,
            text=message.text,
        )


class SendGridEmailSender(EmailSender):
    """SendGrid v3 ``mail/send`` over HTTP."""

    def __init__(self, api_key: str, api_url: str, timeout: float = 10.0) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._timeout = timeout

    def _payload(self, message: EmailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": message.sender},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }

    def send(self, message: EmailMessage) -> None:
        try:
            response = httpx.post(
                self._api_url,
                json=self._payload(message),
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DependencyError(
                ErrorCode.EMAIL_DELIVERY_FAILED.value,
                f"sendgrid request failed: {exc}",
            ) from exc


def create_email_sender(backend: str | None = None) -> EmailSender:
    selected = (backend or settings.email_backend).strip().lower()
    if selected == "console":
        return ConsoleEmailSender()
    if selected == "sendgrid":
        if not settings.sendgrid_api_key:
            raise ValueError("SENDGRID_API_KEY is required for the sendgrid email backend")
        return SendGridEmailSender(
            settings.sendgrid_api_key,
            settings.sendgrid_api_url,
            timeout=settings.http_timeout_seconds,
        )
    raise ValueError(f"unsupported email backend: {selected}")


@lru_cache(maxsize=1)
def get_email_sender() -> EmailSender:
    return create_email_sender()
