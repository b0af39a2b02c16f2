from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response

from clubevents.api.errors import http_error_from_service
from clubevents.api.v1.schemas.events import EventCreate, EventListOut, EventOut, EventUpdate
from clubevents.api.v1.schemas.registrations import RegistrationCreate, RegistrationOut
from clubevents.auth.deps import CurrentPrincipal, CurrentUser, DBSession
from clubevents.models.event import EventStatus
from clubevents.models.registration import RegistrationStatus
from clubevents.services import events_service, registration_service
from clubevents.services.exceptions import ServiceError

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=EventListOut)
def list_events(
    principal: CurrentPrincipal,
    db: DBSession,
    status: EventStatus | None = None,
    organizer_id: str | None = None,
    limit: int | None = Query(default=None, ge=1),
    cursor: str | None = None,
):
    try:
        page = events_service.list_events(
            db,
            principal,
            status=status,
            organizer_id=organizer_id,
            limit=limit,
            cursor=cursor,
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return EventListOut(items=page.items, next_cursor=page.next_cursor, limit=page.limit)


@router.post("", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, user: CurrentUser, db: DBSession):
    try:
        return events_service.create_event(db, user, payload.model_dump())
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: UUID, principal: CurrentPrincipal, db: DBSession):
    try:
        return events_service.get_event(db, principal, event_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.patch("/{event_id}", response_model=EventOut)
def update_event(event_id: UUID, payload: EventUpdate, user: CurrentUser, db: DBSession):
    try:
        return events_service.update_event(
            db, user, event_id, payload.model_dump(exclude_unset=True)
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.delete("/{event_id}", status_code=204)
def delete_event(event_id: UUID, user: CurrentUser, db: DBSession):
    try:
        events_service.delete_event(db, user, event_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return Response(status_code=204)


@router.post("/{event_id}/registrations", response_model=RegistrationOut, status_code=201)
def register_for_event(
    event_id: UUID,
    payload: RegistrationCreate,
    user: CurrentUser,
    db: DBSession,
):
    try:
        return registration_service.register_for_event(
            db,
            user,
            event_id,
            user_name=payload.user_name or user.display_name,
            user_email=payload.user_email or user.email,
            reason=payload.reason,
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.get("/{event_id}/registrations", response_model=list[RegistrationOut])
def list_event_registrations(
    event_id: UUID,
    user: CurrentUser,
    db: DBSession,
    status: RegistrationStatus | None = None,
):
    try:
        return registration_service.list_event_registrations(db, user, event_id, status=status)
    except ServiceError as err:
        raise http_error_from_service(err) from err
