from clubevents.api.v1.schemas.events import (
    EventCreate,
    EventListOut,
    EventOut,
    EventUpdate,
)
from clubevents.api.v1.schemas.functions import ExportRequest, ExportResponse
from clubevents.api.v1.schemas.profiles import AdminUserUpdate, ProfileOut, ProfileUpdate
from clubevents.api.v1.schemas.registrations import (
    CancelIn,
    RegistrationCreate,
    RegistrationOut,
    RegistrationUpdate,
)

__all__ = [
    "EventCreate",
    "EventUpdate",
    "EventOut",
    "EventListOut",
    "ExportRequest",
    "ExportResponse",
    "ProfileOut",
    "ProfileUpdate",
    "AdminUserUpdate",
    "CancelIn",
    "RegistrationCreate",
    "RegistrationOut",
    "RegistrationUpdate",
]
