from __future__ import annotations

from fastapi import APIRouter

from clubevents.api.errors import http_error_from_service
from clubevents.api.v1.schemas.profiles import ProfileOut, ProfileUpdate
from clubevents.auth.deps import CurrentUser, DBSession
from clubevents.services import profile_service
from clubevents.services.exceptions import ServiceError

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _read(db, user, user_id: str) -> ProfileOut:
    try:
        profile = profile_service.get_profile(db, user, user_id)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return ProfileOut.from_profile(profile)


def _update(db, user, user_id: str, payload: ProfileUpdate) -> ProfileOut:
    try:
        profile = profile_service.update_profile(
            db, user, user_id, payload.model_dump(exclude_unset=True)
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return ProfileOut.from_profile(profile)


@router.get("/me", response_model=ProfileOut)
def get_my_profile(user: CurrentUser, db: DBSession):
    return _read(db, user, user.user_id)


@router.patch("/me", response_model=ProfileOut)
def update_my_profile(payload: ProfileUpdate, user: CurrentUser, db: DBSession):
    return _update(db, user, user.user_id, payload)


@router.get("/{user_id}", response_model=ProfileOut)
def get_profile(user_id: str, user: CurrentUser, db: DBSession):
    return _read(db, user, user_id)


@router.patch("/{user_id}", response_model=ProfileOut)
def update_profile(user_id: str, payload: ProfileUpdate, user: CurrentUser, db: DBSession):
    return _update(db, user, user_id, payload)
