from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from clubevents.auth.identity import IdentityClaims, InvalidCredentialError, get_identity_provider
from clubevents.auth.revocation import is_token_revoked
from clubevents.db import get_db
from clubevents.models import UserProfile, UserRole
from clubevents.policy.principal import (
    ROLE_TYPES,
    Anonymous,
    AuthenticatedUser,
    Principal,
    principal_from_identity,
)

DBSession = Annotated[Session, Depends(get_db)]


def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "UNAUTHENTICATED", "message": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


def bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if not auth:
        return None
    if not auth.startswith("Bearer "):
        raise _unauthorized("missing bearer token")
    token = auth.removeprefix("Bearer ").strip()
    return token or None


def get_identity(request: Request) -> IdentityClaims | None:
    """Claims for the presented credential, or None for anonymous callers."""
    token = bearer_token(request)
    if token is None:
        return None

    try:
        provider = get_identity_provider()
    except ValueError:
        raise _unauthorized("auth not configured") from None

    try:
        claims = provider.verify(token)
    except InvalidCredentialError as exc:
        raise _unauthorized(str(exc)) from None

    if is_token_revoked(token):
        raise _unauthorized("token revoked")
    return claims


def require_identity(claims: Annotated[IdentityClaims | None, Depends(get_identity)]) -> IdentityClaims:
    if claims is None:
        raise _unauthorized("missing bearer token")
    return claims


def get_principal(
    claims: Annotated[IdentityClaims | None, Depends(get_identity)],
    db: DBSession,
) -> Principal:
    profile = db.get(UserProfile, claims.user_id) if claims else None
    return principal_from_identity(claims, profile)


def get_callable_principal(request: Request, db: DBSession) -> Principal:
    """Principal for callable functions.

    A rejected credential resolves to ``Anonymous`` so the function reports
    it in its own error shape.
    """
    try:
        claims = get_identity(request)
    except HTTPException:
        return Anonymous()
    return get_principal(claims, db)


def require_authenticated(principal: Annotated[Principal, Depends(get_principal)]) -> AuthenticatedUser:
    if not isinstance(principal, AuthenticatedUser):
        raise _unauthorized("missing bearer token")
    return principal


def require_role(role: UserRole):
    required = ROLE_TYPES[role]

    def _dependency(
        principal: Annotated[AuthenticatedUser, Depends(require_authenticated)],
    ) -> AuthenticatedUser:
        if not isinstance(principal, required):
            raise HTTPException(
                status_code=403,
                detail={"code": "FORBIDDEN_ROLE", "message": f"{role.value} role required"},
            )
        return principal

    return _dependency


CurrentIdentity = Annotated[IdentityClaims, Depends(require_identity)]
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
CallablePrincipal = Annotated[Principal, Depends(get_callable_principal)]
CurrentUser = Annotated[AuthenticatedUser, Depends(require_authenticated)]
