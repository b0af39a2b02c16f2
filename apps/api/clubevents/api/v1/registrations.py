from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from clubevents.api.errors import http_error_from_service
from clubevents.api.v1.schemas.registrations import CancelIn, RegistrationOut, RegistrationUpdate
from clubevents.auth.deps import CurrentUser, DBSession
from clubevents.services import registration_service
from clubevents.services.exceptions import ServiceError

router = APIRouter(prefix="/registrations", tags=["registrations"])


@router.get("/mine", response_model=list[RegistrationOut])
def list_my_registrations(user: CurrentUser, db: DBSession):
    try:
        return registration_service.list_user_registrations(db, user)
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.get("/{registration_id}", response_model=RegistrationOut)
def get_registration(registration_id: UUID, user: CurrentUser, db: DBSession):
    try:
        return registration_service.get_registration(db, user, registration_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.patch("/{registration_id}", response_model=RegistrationOut)
def update_registration(
    registration_id: UUID,
    payload: RegistrationUpdate,
    user: CurrentUser,
    db: DBSession,
):
    try:
        return registration_service.update_registration(
            db, user, registration_id, payload.model_dump(exclude_unset=True)
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.post("/{registration_id}/cancel", response_model=RegistrationOut)
def cancel_registration(
    registration_id: UUID,
    user: CurrentUser,
    db: DBSession,
    payload: CancelIn | None = None,
):
    try:
        return registration_service.cancel_registration(
            db, user, registration_id, payload.event_id if payload else None
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err


@router.post("/{registration_id}/approve", response_model=RegistrationOut)
def approve_registration(registration_id: UUID, user: CurrentUser, db: DBSession):
    try:
        return registration_service.approve_registration(db, user, registration_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err
