"""Read/write authorization rules per record type.

``evaluate`` is a pure function of the principal, the action and a
description of the record being touched; it never queries the store.
Services describe the record with a ``Resource`` and call ``authorize``
before committing anything.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from clubevents.models.event import EventStatus
from clubevents.models.registration import RegistrationStatus
from clubevents.policy.principal import Admin, AuthenticatedUser, Organizer, Principal
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import PermissionDeniedError, UnauthenticatedError


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class RecordType(str, Enum):
    PROFILE = "users"
    EVENT = "events"
    REGISTRATION = "registrations"


PROFILE_OWNER_FIELDS = frozenset(
    {"display_name", "photo_url", "email_notifications", "event_reminders"}
)
PROFILE_ADMIN_FIELDS = PROFILE_OWNER_FIELDS | {"email", "role"}

EVENT_MUTABLE_FIELDS = frozenset(
    {"title", "description", "location", "date", "max_attendees", "status", "tags", "image_url"}
)

REGISTRATION_MANAGER_FIELDS = frozenset(
    {"status", "reason", "notes", "attendance", "user_name", "user_email"}
)


@dataclass(frozen=True)
class Resource:
    record_type: RecordType
    # profile id, event organizer, or registering user
    owner_id: str | None = None
    # registrations only: organizer of the referenced event
    organizer_id: str | None = None
    # events only: current status, governs anonymous reads
    status: str | None = None
    changes: frozenset[str] = frozenset()
    new_status: str | None = None

    @classmethod
    def profile(cls, profile_id: str | None, changes: Iterable[str] = ()) -> Resource:
        return cls(RecordType.PROFILE, owner_id=profile_id, changes=frozenset(changes))

    @classmethod
    def event(
        cls,
        organizer_id: str | None = None,
        status: EventStatus | str | None = None,
        changes: Iterable[str] = (),
    ) -> Resource:
        return cls(
            RecordType.EVENT,
            owner_id=organizer_id,
            status=_value(status),
            changes=frozenset(changes),
        )

    @classmethod
    def registration(
        cls,
        user_id: str | None = None,
        organizer_id: str | None = None,
        changes: Iterable[str] = (),
        new_status: RegistrationStatus | str | None = None,
    ) -> Resource:
        return cls(
            RecordType.REGISTRATION,
            owner_id=user_id,
            organizer_id=organizer_id,
            changes=frozenset(changes),
            new_status=_value(new_status),
        )


@dataclass(frozen=True)
class Decision:
    allowed: bool
    code: ErrorCode | None = None
    reason: str = ""


ALLOW = Decision(True)


def _value(item: Enum | str | None) -> str | None:
    if isinstance(item, Enum):
        return item.value
    return item


def _deny(code: ErrorCode, reason: str) -> Decision:
    return Decision(False, code, reason)


_UNAUTHENTICATED = _deny(ErrorCode.UNAUTHENTICATED, "authentication required")


def _owns(principal: Principal, owner_id: str | None) -> bool:
    return owner_id is not None and principal.user_id == owner_id


def _fields_within(changes: frozenset[str], allowed: frozenset[str]) -> Decision:
    extra = sorted(changes - allowed)
    if extra:
        return _deny(ErrorCode.FORBIDDEN_FIELD, f"cannot modify: {', '.join(extra)}")
    return ALLOW


# UserProfile


def _read_profile(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if isinstance(principal, Admin) or _owns(principal, resource.owner_id):
        return ALLOW
    return _deny(ErrorCode.FORBIDDEN_OWNER, "can only read own profile")


def _create_profile(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if _owns(principal, resource.owner_id):
        return ALLOW
    return _deny(ErrorCode.FORBIDDEN_OWNER, "profile id must match the signed-in user")


def _update_profile(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if isinstance(principal, Admin):
        return _fields_within(resource.changes, PROFILE_ADMIN_FIELDS)
    if _owns(principal, resource.owner_id):
        return _fields_within(resource.changes, PROFILE_OWNER_FIELDS)
    return _deny(ErrorCode.FORBIDDEN_OWNER, "can only update own profile")


# Event


def _read_event(principal: Principal, resource: Resource) -> Decision:
    if resource.status == EventStatus.ACTIVE.value or principal.is_authenticated:
        return ALLOW
    return _UNAUTHENTICATED


def _create_event(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if isinstance(principal, Organizer):
        return ALLOW
    return _deny(ErrorCode.FORBIDDEN_ROLE, "only organizers or admins can create events")


def _manage_event(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if not isinstance(principal, Organizer):
        return _deny(ErrorCode.FORBIDDEN_ROLE, "only organizers or admins can manage events")
    if not isinstance(principal, Admin) and not _owns(principal, resource.owner_id):
        return _deny(ErrorCode.FORBIDDEN_OWNER, "not organizer for this event")
    return _fields_within(resource.changes, EVENT_MUTABLE_FIELDS)


# Registration


def _manages_registration(principal: Principal, resource: Resource) -> bool:
    if isinstance(principal, Admin):
        return True
    return isinstance(principal, Organizer) and _owns(principal, resource.organizer_id)


def _read_registration(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if _owns(principal, resource.owner_id) or _manages_registration(principal, resource):
        return ALLOW
    return _deny(ErrorCode.FORBIDDEN_OWNER, "not allowed to read this registration")


def _create_registration(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if _owns(principal, resource.owner_id):
        return ALLOW
    return _deny(ErrorCode.FORBIDDEN_OWNER, "can only register yourself")


def _update_registration(principal: Principal, resource: Resource) -> Decision:
    if not principal.is_authenticated:
        return _UNAUTHENTICATED
    if _manages_registration(principal, resource):
        return _fields_within(resource.changes, REGISTRATION_MANAGER_FIELDS)
    if _owns(principal, resource.owner_id):
        if resource.changes != {"status"}:
            return _deny(ErrorCode.FORBIDDEN_FIELD, "registrants may only change status")
        if resource.new_status != RegistrationStatus.CANCELLED.value:
            return _deny(ErrorCode.FORBIDDEN_FIELD, "registrants may only cancel")
        return ALLOW
    return _deny(ErrorCode.FORBIDDEN_OWNER, "not allowed to modify this registration")


Rule = Callable[[Principal, Resource], Decision]

_RULES: dict[tuple[RecordType, Action], Rule] = {
    (RecordType.PROFILE, Action.READ): _read_profile,
    (RecordType.PROFILE, Action.CREATE): _create_profile,
    (RecordType.PROFILE, Action.UPDATE): _update_profile,
    (RecordType.EVENT, Action.READ): _read_event,
    (RecordType.EVENT, Action.CREATE): _create_event,
    (RecordType.EVENT, Action.UPDATE): _manage_event,
    (RecordType.EVENT, Action.DELETE): _manage_event,
    (RecordType.REGISTRATION, Action.READ): _read_registration,
    (RecordType.REGISTRATION, Action.CREATE): _create_registration,
    (RecordType.REGISTRATION, Action.UPDATE): _update_registration,
}


def evaluate(principal: Principal, action: Action, resource: Resource) -> Decision:
    rule = _RULES.get((resource.record_type, action))
    if rule is None:
        return _deny(ErrorCode.FORBIDDEN, f"{action.value} is not permitted on {resource.record_type.value}")
    return rule(principal, resource)


def authorize(principal: Principal, action: Action, resource: Resource) -> None:
    decision = evaluate(principal, action, resource)
    if decision.allowed:
        return
    code = decision.code or ErrorCode.FORBIDDEN
    if code == ErrorCode.UNAUTHENTICATED:
        raise UnauthenticatedError(code.value, decision.reason)
    raise PermissionDeniedError(code.value, decision.reason)


def require_authenticated(principal: Principal) -> AuthenticatedUser:
    if not isinstance(principal, AuthenticatedUser):
        raise UnauthenticatedError(ErrorCode.UNAUTHENTICATED.value, "authentication required")
    return principal
