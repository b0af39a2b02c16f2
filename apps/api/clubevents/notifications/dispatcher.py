"""Reactive handlers for committed registration changes.

Handlers are registered per ``(record_type, kind)`` and never write to the
store. Changes to different registrations may arrive in any order.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.orm import Session

from clubevents.models import Event, RegistrationStatus
from clubevents.notifications import templates
from clubevents.notifications.changes import ChangeEvent, ChangeKind
from clubevents.notifications.email import EmailMessage, EmailSender
from clubevents.policy.access import RecordType
from clubevents.services.exceptions import DependencyError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class HandlerContext:
    db: Session
    sender: EmailSender
    email_from: str


Handler = Callable[[ChangeEvent, HandlerContext], None]


class Dispatcher:
    def __init__(self) -> None:
        self._handlers: dict[tuple[str, str], list[Handler]] = {}

    def register(self, record_type: str, kind: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self._handlers.setdefault((record_type, kind), []).append(handler)
            return handler

        return decorator

    def handlers_for(self, change: ChangeEvent) -> list[Handler]:
        return list(self._handlers.get(change.key, ()))

    def dispatch(self, change: ChangeEvent, context: HandlerContext) -> int:
        handlers = self.handlers_for(change)
        for handler in handlers:
            handler(change, context)
        return len(handlers)


dispatcher = Dispatcher()


def _find_event(db: Session, event_id: Any) -> Event | None:
    try:
        return db.get(Event, uuid.UUID(str(event_id)))
    except ValueError:
        return None


def _deliver(context: HandlerContext, change: ChangeEvent, to: str, email: templates.RenderedEmail) -> None:
    message = EmailMessage(
        to=to,
        sender=context.email_from,
        subject=email.subject,
        text=email.text,
        html=email.html,
    )
    try:
        context.sender.send(message)
    except DependencyError:
        logger.error(
            "notification_email_failed",
            registration_id=change.record_id,
            kind=change.kind,
            subject=email.subject,
        )
        raise
    logger.info(
        "notification_email_sent",
        registration_id=change.record_id,
        kind=change.kind,
        subject=email.subject,
    )


@dispatcher.register(RecordType.REGISTRATION.value, ChangeKind.CREATED.value)
def send_registration_received(change: ChangeEvent, context: HandlerContext) -> None:
    after = change.after or {}
    event = _find_event(context.db, after.get("event_id"))
    if event is None:
        logger.error(
            "notification_event_not_found",
            registration_id=change.record_id,
            event_id=after.get("event_id"),
        )
        return

    _deliver(
        context,
        change,
        after["user_email"],
        templates.registration_received(after["user_name"], event.title),
    )


@dispatcher.register(RecordType.REGISTRATION.value, ChangeKind.UPDATED.value)
def send_registration_approved(change: ChangeEvent, context: HandlerContext) -> None:
    before_status = (change.before or {}).get("status")
    after = change.after or {}
    confirmed = RegistrationStatus.CONFIRMED.value
    if before_status == confirmed or after.get("status") != confirmed:
        return

    event = _find_event(context.db, after.get("event_id"))
    if event is None:
        logger.error(
            "notification_event_not_found",
            registration_id=change.record_id,
            event_id=after.get("event_id"),
        )
        return

    _deliver(
        context,
        change,
        after["user_email"],
        templates.registration_approved(after["user_name"], event.title),
    )
