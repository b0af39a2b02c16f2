from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from clubevents.api.errors import http_error_from_service
from clubevents.api.v1.schemas.profiles import ProfileOut
from clubevents.auth.deps import CurrentIdentity, DBSession, bearer_token
from clubevents.auth.revocation import revoke_token
from clubevents.services import profile_service
from clubevents.services.exceptions import ServiceError

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-in", response_model=ProfileOut)
def sign_in(claims: CurrentIdentity, db: DBSession):
    """Verify the identity credential and create or refresh the caller's profile."""
    try:
        profile = profile_service.sync_profile_on_sign_in(db, claims)
    except ServiceError as err:
        raise http_error_from_service(err) from err
    return ProfileOut.from_profile(profile)


class SignOutOut(BaseModel):
    status: str = "ok"
    revoked: bool


@router.post("/sign-out", response_model=SignOutOut)
def sign_out(request: Request, claims: CurrentIdentity):
    token = bearer_token(request)
    revoked = revoke_token(token, claims.expires_at) if token else False
    return SignOutOut(revoked=revoked)
