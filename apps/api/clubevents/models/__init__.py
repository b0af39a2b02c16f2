from clubevents.models.base import Base
from clubevents.models.event import Event, EventStatus
from clubevents.models.registration import Registration, RegistrationStatus
from clubevents.models.user import UserProfile, UserRole

__all__ = [
    "Base",
    "UserProfile",
    "UserRole",
    "Event",
    "EventStatus",
    "Registration",
    "RegistrationStatus",
]
