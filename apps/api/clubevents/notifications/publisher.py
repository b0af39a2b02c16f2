from __future__ import annotations

import structlog
from sqlalchemy.orm import Session

from clubevents.core.config import settings
from clubevents.db import SessionLocal
from clubevents.notifications.changes import ChangeEvent
from clubevents.notifications.dispatcher import HandlerContext, dispatcher
from clubevents.notifications.email import get_email_sender
from clubevents.worker.celery_app import celery_app

logger = structlog.get_logger(__name__)

DISPATCH_TASK = "dispatch_change_event"


def run_dispatch(change: ChangeEvent, db: Session | None = None) -> int:
    """Run every handler registered for ``change``; handler errors propagate."""
    own_session = db is None
    session = db or SessionLocal()
    try:
        context = HandlerContext(
            db=session,
            sender=get_email_sender(),
            email_from=settings.email_from,
        )
        return dispatcher.dispatch(change, context)
    finally:
        if own_session:
            session.close()


def publish_change(change: ChangeEvent) -> None:
    """Hand a committed change to the notification handlers.

    Called after the originating transaction has committed, so failures here
    are logged and never surface to the caller.
    """
    backend = settings.notifications_backend.strip().lower()
    log = logger.bind(record_type=change.record_type, kind=change.kind, record_id=change.record_id)

    if backend == "disabled":
        return

    if backend == "inline":
        try:
            run_dispatch(change)
        except Exception:
            log.exception("notification_dispatch_failed")
        return

    if backend == "celery":
        try:
            celery_app.send_task(DISPATCH_TASK, args=[change.to_payload()])
        except Exception:
            log.exception("notification_enqueue_failed")
        return

    log.error("notifications_backend_unsupported", backend=backend)
