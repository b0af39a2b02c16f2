from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from clubevents.exports.base import ExportTarget
from clubevents.exports.factory import get_export_target
from clubevents.models import Event, Registration
from clubevents.policy.access import require_authenticated
from clubevents.policy.principal import Principal, is_admin, is_organizer
from clubevents.policy.validation import parse_uuid
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import (
    DependencyError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

HEADER = ["Name", "Email", "Reason", "Status", "Timestamp"]
EXPORT_RANGE = "Sheet1!A1"


@dataclass(frozen=True)
class ExportResult:
    document_id: str
    exported_count: int
    url: str


def build_rows(registrations: Iterable[Registration]) -> list[list[str]]:
    rows = [list(HEADER)]
    for registration in registrations:
        rows.append(
            [
                registration.user_name,
                registration.user_email,
                registration.reason or "",
                registration.status.value,
                registration.registration_time.isoformat(),
            ]
        )
    return rows


def export_registrations(
    db: Session,
    principal: Principal,
    event_id: Any,
    target_document_id: str | None = None,
    target: ExportTarget | None = None,
) -> ExportResult:
    """Write every registration of an event to a tabular document.

    Authorization and argument checks run before any registration is read.
    Target failures are logged in full and reported with a generic message.
    """
    user = require_authenticated(principal)
    if not is_organizer(user):
        raise PermissionDeniedError(
            ErrorCode.FORBIDDEN_ROLE.value, "User must be admin or organizer"
        )

    if event_id is None or not str(event_id).strip():
        raise ValidationError(ErrorCode.MISSING_EVENT_ID.value, "Event ID is required")
    event = db.get(Event, parse_uuid(str(event_id).strip(), ErrorCode.INVALID_EVENT_ID, "event_id"))
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "Event not found")

    if not is_admin(user) and event.organizer_id != user.user_id:
        raise PermissionDeniedError(
            ErrorCode.FORBIDDEN_OWNER.value, "User must be the event organizer or admin"
        )

    registrations = list(
        db.scalars(
            select(Registration)
            .where(Registration.event_id == event.id)
            .order_by(Registration.registration_time.asc(), Registration.id.asc())
        )
    )
    rows = build_rows(registrations)

    log = logger.bind(event_id=str(event.id), user_id=user.user_id)
    try:
        target = target or get_export_target()
        document_id = target_document_id or target.create_document(
            f"Event Registrations - {event.title}"
        )
        target.write_range(document_id, EXPORT_RANGE, rows)
        url = target.document_url(document_id)
    except DependencyError as exc:
        log.error("export_failed", code=exc.code, detail=exc.message)
        raise DependencyError(ErrorCode.EXPORT_FAILED.value, "Failed to export data") from exc
    except Exception as exc:
        log.exception("export_failed", code=ErrorCode.EXPORT_FAILED.value, detail=str(exc))
        raise DependencyError(ErrorCode.EXPORT_FAILED.value, "Failed to export data") from exc

    log.info("registrations_exported", document_id=document_id, exported_count=len(registrations))
    return ExportResult(document_id=document_id, exported_count=len(registrations), url=url)
