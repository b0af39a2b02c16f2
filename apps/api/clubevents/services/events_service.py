from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.orm import Session

from clubevents.core.config import settings
from clubevents.models import Event, EventStatus, Registration
from clubevents.models.base import utcnow
from clubevents.policy.access import Action, Resource, authorize
from clubevents.policy.principal import Principal
from clubevents.policy.validation import parse_uuid, validate_choice, validate_event_fields
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import ConflictError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EventPage:
    items: list[Event]
    next_cursor: str | None
    limit: int


def _load_event(db: Session, event_id: Any) -> Event:
    event = db.get(Event, parse_uuid(event_id, ErrorCode.INVALID_EVENT_ID, "event_id"))
    if not event:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    return event


def _page_limit(limit: int | None) -> int:
    if limit is None:
        return settings.events_page_size
    return max(1, min(limit, settings.events_page_size_max))


def create_event(db: Session, principal: Principal, data: dict[str, Any]) -> Event:
    authorize(principal, Action.CREATE, Resource.event())

    # New events always open for registration
    fields = validate_event_fields(
        {k: v for k, v in data.items() if k != "status"},
        creating=True,
    )
    event = Event(
        **fields,
        status=EventStatus.ACTIVE,
        current_attendees=0,
        organizer_id=principal.user_id,
        organizer_name=principal.display_name,
    )
    db.add(event)
    db.commit()
    db.refresh(event)

    logger.info("event_created", event_id=str(event.id), organizer_id=event.organizer_id)
    return event


def get_event(db: Session, principal: Principal, event_id: Any) -> Event:
    event = _load_event(db, event_id)
    authorize(principal, Action.READ, Resource.event(event.organizer_id, event.status))
    return event


def list_events(
    db: Session,
    principal: Principal,
    *,
    status: EventStatus | str | None = None,
    organizer_id: str | None = None,
    limit: int | None = None,
    cursor: str | None = None,
) -> EventPage:
    """Events ordered by date, paginated by the id of the last event seen."""
    status = validate_choice(
        status or EventStatus.ACTIVE, EventStatus, ErrorCode.INVALID_STATUS, "status"
    )
    authorize(principal, Action.READ, Resource.event(status=status))
    page_size = _page_limit(limit)

    stmt = select(Event).where(Event.status == status)
    if organizer_id:
        stmt = stmt.where(Event.organizer_id == organizer_id)

    if cursor:
        last = db.get(Event, parse_uuid(cursor, ErrorCode.INVALID_CURSOR, "cursor"))
        if last is None:
            raise ValidationError(ErrorCode.INVALID_CURSOR.value, "cursor does not match an event")
        stmt = stmt.where(
            or_(
                Event.date > last.date,
                and_(Event.date == last.date, Event.id > last.id),
            )
        )

    rows = list(db.scalars(stmt.order_by(Event.date.asc(), Event.id.asc()).limit(page_size + 1)))
    items = rows[:page_size]
    next_cursor = str(items[-1].id) if len(rows) > page_size else None
    return EventPage(items=items, next_cursor=next_cursor, limit=page_size)


def _set_capacity(db: Session, event: Event, new_max: int) -> None:
    # Guarded on the live counter so a registration committed since the read still counts
    event_id = event.id
    result = db.execute(
        update(Event)
        .where(Event.id == event_id, Event.current_attendees <= new_max)
        .values(max_attendees=new_max, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    db.rollback()
    if db.get(Event, event_id, populate_existing=True) is None:
        raise NotFoundError(ErrorCode.EVENT_NOT_FOUND.value, "event not found")
    raise ConflictError(
        ErrorCode.CAPACITY_BELOW_ATTENDEES.value,
        "max_attendees cannot be below current attendees",
    )


def update_event(db: Session, principal: Principal, event_id: Any, changes: dict[str, Any]) -> Event:
    if not changes:
        raise ValidationError(ErrorCode.NO_CHANGES.value, "no changes provided")

    event = _load_event(db, event_id)
    authorize(
        principal,
        Action.UPDATE,
        Resource.event(event.organizer_id, event.status, changes=changes.keys()),
    )

    fields = validate_event_fields(changes, creating=False)
    new_max = fields.pop("max_attendees", None)
    if new_max is not None:
        _set_capacity(db, event, new_max)

    for key, value in fields.items():
        setattr(event, key, value)

    db.add(event)
    db.commit()
    db.refresh(event)

    logger.info("event_updated", event_id=str(event.id), fields=sorted(changes))
    return event


def delete_event(db: Session, principal: Principal, event_id: Any) -> None:
    event = _load_event(db, event_id)
    authorize(principal, Action.DELETE, Resource.event(event.organizer_id, event.status))

    # SQLite does not enforce the cascade unless foreign keys are switched on
    removed = db.execute(
        delete(Registration)
        .where(Registration.event_id == event.id)
        .execution_options(synchronize_session=False)
    ).rowcount
    db.delete(event)
    db.commit()

    logger.info("event_deleted", event_id=str(event_id), registrations_removed=removed)
