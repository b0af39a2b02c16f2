from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from clubevents.api.errors import http_error_from_service
from clubevents.api.v1.schemas.profiles import AdminUserUpdate, ProfileOut
from clubevents.auth.deps import DBSession, require_role
from clubevents.models.user import UserRole
from clubevents.policy.principal import Admin
from clubevents.services import profile_service
from clubevents.services.exceptions import ServiceError

router = APIRouter(
    prefix="/admin/users",
    tags=["admin"],
    dependencies=[Depends(require_role(UserRole.ADMIN))],
)

AdminUser = Annotated[Admin, Depends(require_role(UserRole.ADMIN))]


@router.get("", response_model=list[ProfileOut])
def list_users(
    db: DBSession,
    admin: AdminUser,
    query: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=50, ge=1, le=200),
):
    try:
        profiles = profile_service.list_profiles(db, admin, query=query, limit=limit)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return [ProfileOut.from_profile(p) for p in profiles]


@router.patch("/{user_id}", response_model=ProfileOut)
def update_user(user_id: str, payload: AdminUserUpdate, db: DBSession, admin: AdminUser):
    try:
        profile = profile_service.update_profile(
            db, admin, user_id, payload.model_dump(exclude_unset=True)
        )
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return ProfileOut.from_profile(profile)
