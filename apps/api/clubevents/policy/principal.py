"""Principals: who is performing an operation.

A principal is resolved once per request and passed explicitly into every
service call. Role privileges nest through inheritance, so ``Admin`` is an
``Organizer`` and an ``Organizer`` is an ``AuthenticatedUser``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Union

from clubevents.models.user import UserRole

if TYPE_CHECKING:
    from clubevents.auth.identity import IdentityClaims
    from clubevents.models.user import UserProfile


@dataclass(frozen=True)
class Anonymous:
    kind: ClassVar[str] = "anonymous"
    is_authenticated: ClassVar[bool] = False

    user_id: ClassVar[None] = None


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: str | None = None
    display_name: str | None = None

    kind: ClassVar[str] = "user"
    is_authenticated: ClassVar[bool] = True

    @property
    def role(self) -> UserRole:
        return UserRole(self.kind)


@dataclass(frozen=True)
class Organizer(AuthenticatedUser):
    kind: ClassVar[str] = "organizer"


@dataclass(frozen=True)
class Admin(Organizer):
    kind: ClassVar[str] = "admin"


Principal = Union[Anonymous, AuthenticatedUser]

ROLE_TYPES: dict[UserRole, type[AuthenticatedUser]] = {
    UserRole.USER: AuthenticatedUser,
    UserRole.ORGANIZER: Organizer,
    UserRole.ADMIN: Admin,
}


def principal_for_role(
    role: UserRole,
    user_id: str,
    email: str | None = None,
    display_name: str | None = None,
) -> AuthenticatedUser:
    return ROLE_TYPES[role](user_id=user_id, email=email, display_name=display_name)


def principal_from_identity(
    claims: IdentityClaims | None,
    profile: UserProfile | None,
) -> Principal:
    if claims is None:
        return Anonymous()
    if profile is None:
        # Not signed in yet: no stored role, so plain user privileges
        return AuthenticatedUser(
            user_id=claims.user_id,
            email=claims.email,
            display_name=claims.display_name,
        )
    return principal_for_role(
        profile.role,
        user_id=profile.id,
        email=profile.email,
        display_name=profile.display_name,
    )


def is_organizer(principal: Principal) -> bool:
    return isinstance(principal, Organizer)


def is_admin(principal: Principal) -> bool:
    return isinstance(principal, Admin)
