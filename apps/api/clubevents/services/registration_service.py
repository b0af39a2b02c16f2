"""Registration workflow.

Every write runs as a single transaction:

* the event row is locked (``SELECT ... FOR UPDATE`` where supported),
* seats move through conditional UPDATEs on ``events.current_attendees``
  so concurrent writers can never push the counter past ``max_attendees``,
* status changes are compare-and-set on the registration's previous status,
* the partial unique index on live ``(event_id, user_id)`` pairs is the
  last line against duplicate registrations.

``current_attendees`` counts confirmed registrations only. Change events
are published after commit.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubevents.models import Event, EventStatus, Registration, RegistrationStatus
from clubevents.models.base import utcnow
from clubevents.notifications.changes import (
    registration_created,
    registration_snapshot,
    registration_updated,
)
from clubevents.notifications.publisher import publish_change
from clubevents.policy.access import Action, Resource, authorize
from clubevents.policy.principal import Principal
from clubevents.policy.validation import (
    optional_text,
    parse_uuid,
    require_text,
    validate_email,
    validate_registration_fields,
)
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import (
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

CONFIRMED = RegistrationStatus.CONFIRMED
CANCELLED = RegistrationStatus.CANCELLED


def _already_registered() -> ConflictError:
    return ConflictError(ErrorCode.ALREADY_REGISTERED.value, "already registered for this event")


def _lock_event(db: Session, event_id: Any) -> Event | None:
    return db.scalar(select(Event).where(Event.id == event_id).with_for_update())


def _live_registration(db: Session, event_id: Any, user_id: str) -> Registration | None:
    return db.scalar(
        select(Registration).where(
            Registration.event_id == event_id,
            Registration.user_id == user_id,
            Registration.status != CANCELLED,
        )
    )


def _load_registration(db: Session, registration_id: Any) -> Registration:
    registration = db.get(Registration, parse_uuid(registration_id, field="registration_id"))
    if not registration:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND.value, "registration not found")
    return registration


def _organizer_of(db: Session, event_id: Any) -> str | None:
    return db.scalar(select(Event.organizer_id).where(Event.id == event_id))


def _take_seat(db: Session, event_id: Any) -> None:
    result = db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.status == EventStatus.ACTIVE,
            Event.current_attendees < Event.max_attendees,
        )
        .values(current_attendees=Event.current_attendees + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    # Lost the race or never qualified; report what the row says now
    event = db.get(Event, event_id, populate_existing=True)
    if event is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    if event.status != EventStatus.ACTIVE:
        raise ConflictError(ErrorCode.EVENT_NOT_ACTIVE.value, "event is not accepting registrations")
    raise ConflictError(ErrorCode.EVENT_FULL.value, "event is full")


def _release_seat(db: Session, event_id: Any) -> None:
    db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(
            current_attendees=case(
                (Event.current_attendees > 0, Event.current_attendees - 1),
                else_=0,
            ),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


def _transition_status(
    db: Session,
    registration: Registration,
    before: RegistrationStatus,
    after: RegistrationStatus,
    extra: dict[str, Any] | None = None,
) -> None:
    result = db.execute(
        update(Registration)
        .where(Registration.id == registration.id, Registration.status == before)
        .values(status=after, updated_at=utcnow(), **(extra or {}))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        if before == CONFIRMED:
            _release_seat(db, registration.event_id)
        elif after == CONFIRMED:
            _take_seat(db, registration.event_id)
        return

    current = db.get(Registration, registration.id, populate_existing=True)
    if current is None:
        raise NotFoundError(ErrorCode.REGISTRATION_NOT_FOUND.value, "registration not found")
    if current.status == CANCELLED:
        raise ConflictError(ErrorCode.REGISTRATION_NOT_ACTIVE.value, "registration is already cancelled")
    raise ConflictError(ErrorCode.REGISTRATION_CHANGED.value, "registration was modified concurrently")


def _commit_or_rollback(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _already_registered() from exc


def register_for_event(
    db: Session,
    principal: Principal,
    event_id: Any,
    user_name: str | None,
    user_email: str | None,
    reason: str | None = None,
) -> Registration:
    authorize(principal, Action.CREATE, Resource.registration(user_id=principal.user_id))
    event_uuid = parse_uuid(event_id, ErrorCode.INVALID_EVENT_ID, "event_id")
    name = require_text(user_name, "user_name")
    email = validate_email(user_email, "user_email")

    try:
        event = _lock_event(db, event_uuid)
        if not event:
            raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
        if _live_registration(db, event.id, principal.user_id):
            raise _already_registered()
        if event.status != EventStatus.ACTIVE:
            raise ConflictError(ErrorCode.EVENT_NOT_ACTIVE.value, "event is not accepting registrations")
        if event.current_attendees >= event.max_attendees:
            raise ConflictError(ErrorCode.EVENT_FULL.value, "event is full")

        _take_seat(db, event.id)
        registration = Registration(
            event_id=event.id,
            user_id=principal.user_id,
            user_name=name,
            user_email=email,
            status=CONFIRMED,
            reason=optional_text(reason),
        )
        db.add(registration)
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise _already_registered() from exc
    except ServiceError:
        db.rollback()
        raise

    _commit_or_rollback(db)
    db.refresh(registration)

    logger.info(
        "registration_created",
        registration_id=str(registration.id),
        event_id=str(registration.event_id),
        user_id=registration.user_id,
    )
    publish_change(registration_created(registration))
    return registration


def get_registration(db: Session, principal: Principal, registration_id: Any) -> Registration:
    registration = _load_registration(db, registration_id)
    authorize(
        principal,
        Action.READ,
        Resource.registration(registration.user_id, _organizer_of(db, registration.event_id)),
    )
    return registration


def _apply_update(
    db: Session,
    registration: Registration,
    fields: dict[str, Any],
) -> Registration:
    """Commit ``fields`` onto ``registration``; a status change moves seats."""
    before = registration_snapshot(registration)
    previous = registration.status
    new_status = fields.pop("status", previous)

    if new_status == previous and not fields:
        if previous == CANCELLED:
            raise ConflictError(ErrorCode.REGISTRATION_NOT_ACTIVE.value, "registration is already cancelled")
        return registration

    try:
        _lock_event(db, registration.event_id)
        if new_status != previous:
            _transition_status(db, registration, previous, new_status, fields)
        else:
            for key, value in fields.items():
                setattr(registration, key, value)
            db.add(registration)
            db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise _already_registered() from exc
    except ServiceError:
        db.rollback()
        raise

    _commit_or_rollback(db)
    db.refresh(registration)

    logger.info(
        "registration_updated",
        registration_id=str(registration.id),
        event_id=str(registration.event_id),
        status_before=previous.value,
        status_after=registration.status.value,
    )
    publish_change(registration_updated(before, registration))
    return registration


def cancel_registration(
    db: Session,
    principal: Principal,
    registration_id: Any,
    event_id: Any = None,
) -> Registration:
    registration = _load_registration(db, registration_id)
    if event_id is not None:
        if parse_uuid(event_id, ErrorCode.INVALID_EVENT_ID, "event_id") != registration.event_id:
            raise ValidationError(
                ErrorCode.EVENT_ID_MISMATCH.value, "registration does not belong to this event"
            )

    authorize(
        principal,
        Action.UPDATE,
        Resource.registration(
            registration.user_id,
            _organizer_of(db, registration.event_id),
            changes={"status"},
            new_status=CANCELLED,
        ),
    )
    if registration.status == CANCELLED:
        raise ConflictError(ErrorCode.REGISTRATION_NOT_ACTIVE.value, "registration is already cancelled")

    return _apply_update(db, registration, {"status": CANCELLED})


def update_registration(
    db: Session,
    principal: Principal,
    registration_id: Any,
    changes: dict[str, Any],
) -> Registration:
    if not changes:
        raise ValidationError(ErrorCode.NO_CHANGES.value, "no changes provided")

    registration = _load_registration(db, registration_id)
    fields = validate_registration_fields(changes)
    authorize(
        principal,
        Action.UPDATE,
        Resource.registration(
            registration.user_id,
            _organizer_of(db, registration.event_id),
            changes=changes.keys(),
            new_status=fields.get("status"),
        ),
    )
    return _apply_update(db, registration, fields)


def approve_registration(db: Session, principal: Principal, registration_id: Any) -> Registration:
    registration = _load_registration(db, registration_id)
    authorize(
        principal,
        Action.UPDATE,
        Resource.registration(
            registration.user_id,
            _organizer_of(db, registration.event_id),
            changes={"status"},
            new_status=CONFIRMED,
        ),
    )
    if registration.status == CONFIRMED:
        return registration
    return _apply_update(db, registration, {"status": CONFIRMED})


def list_event_registrations(
    db: Session,
    principal: Principal,
    event_id: Any,
    status: RegistrationStatus | None = None,
) -> list[Registration]:
    event = db.get(Event, parse_uuid(event_id, ErrorCode.INVALID_EVENT_ID, "event_id"))
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    # No owner: only the event's organizer or an admin qualifies
    authorize(principal, Action.READ, Resource.registration(None, event.organizer_id))

    stmt = select(Registration).where(Registration.event_id == event.id)
    if status is not None:
        stmt = stmt.where(Registration.status == status)
    stmt = stmt.order_by(Registration.registration_time.asc(), Registration.id.asc())
    return list(db.scalars(stmt).all())


def list_user_registrations(
    db: Session,
    principal: Principal,
    user_id: str | None = None,
) -> list[Registration]:
    target = user_id or principal.user_id
    authorize(principal, Action.READ, Resource.registration(target))

    stmt = (
        select(Registration)
        .where(Registration.user_id == target)
        .order_by(Registration.registration_time.desc(), Registration.id.desc())
    )
    return list(db.scalars(stmt).all())
