from clubevents.policy.access import Action, Decision, RecordType, Resource, authorize, evaluate
from clubevents.policy.principal import (
    Admin,
    Anonymous,
    AuthenticatedUser,
    Organizer,
    Principal,
    is_admin,
    is_organizer,
    principal_for_role,
    principal_from_identity,
)

__all__ = [
    "Action",
    "Decision",
    "RecordType",
    "Resource",
    "authorize",
    "evaluate",
    "Principal",
    "Anonymous",
    "AuthenticatedUser",
    "Organizer",
    "Admin",
    "is_admin",
    "is_organizer",
    "principal_for_role",
    "principal_from_identity",
]
