from __future__ import annotations

from datetime import datetime
from uuid import UUID

from clubevents.api.v1.schemas.events import SchemaBase, TZAwareMixin
from clubevents.models.registration import RegistrationStatus


class RegistrationCreate(SchemaBase):
    # Default to the signed-in profile when omitted
    user_name: str | None = None
    user_email: str | None = None
    reason: str | None = None


class RegistrationUpdate(SchemaBase):
    status: RegistrationStatus | None = None
    reason: str | None = None
    notes: str | None = None
    attendance: bool | None = None
    user_name: str | None = None
    user_email: str | None = None


class CancelIn(SchemaBase):
    event_id: UUID | None = None


class RegistrationOut(TZAwareMixin, SchemaBase):
    id: UUID
    event_id: UUID
    user_id: str
    user_name: str
    user_email: str
    registration_time: datetime
    status: RegistrationStatus
    reason: str | None = None
    notes: str | None = None
    attendance: bool | None = None
    updated_at: datetime
