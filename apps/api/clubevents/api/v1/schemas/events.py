from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clubevents.models.event import EventStatus


def _ensure_tzaware(value: datetime | None) -> datetime | None:
    if value is None:
        return value
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError("datetime must be timezone-aware")
    return value


class SchemaBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class TZAwareMixin(BaseModel):
    @field_validator(
        "date",
        "created_at",
        "updated_at",
        "registration_time",
        "last_login",
        mode="after",
        check_fields=False,
    )
    @classmethod
    def _validate_tzaware(cls, value: datetime | None) -> datetime | None:
        return _ensure_tzaware(value)


class EventCreate(TZAwareMixin, SchemaBase):
    # Field rules (non-empty, future date, positive capacity) are checked by
    # the service so failures carry a specific error code
    title: str
    description: str
    location: str
    date: datetime
    max_attendees: int
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None


class EventUpdate(TZAwareMixin, SchemaBase):
    title: str | None = None
    description: str | None = None
    location: str | None = None
    date: datetime | None = None
    max_attendees: int | None = None
    status: EventStatus | None = None
    tags: list[str] | None = None
    image_url: str | None = None


class EventOut(TZAwareMixin, SchemaBase):
    id: UUID
    title: str
    description: str
    location: str
    date: datetime
    max_attendees: int
    current_attendees: int
    organizer_id: str
    organizer_name: str | None = None
    status: EventStatus
    tags: list[str]
    image_url: str | None = None
    created_at: datetime
    updated_at: datetime


class EventListOut(SchemaBase):
    items: list[EventOut]
    next_cursor: str | None = None
    limit: int = Field(ge=1)
