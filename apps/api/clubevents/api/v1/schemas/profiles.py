from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from clubevents.api.v1.schemas.events import SchemaBase, TZAwareMixin
from clubevents.models.user import UserProfile, UserRole


class PreferencesOut(BaseModel):
    email_notifications: bool
    event_reminders: bool


class ProfileOut(TZAwareMixin, SchemaBase):
    id: str
    email: str
    display_name: str
    photo_url: str | None = None
    role: UserRole
    preferences: PreferencesOut
    created_at: datetime
    last_login: datetime

    @classmethod
    def from_profile(cls, profile: UserProfile) -> ProfileOut:
        return cls(
            id=profile.id,
            email=profile.email,
            display_name=profile.display_name,
            photo_url=profile.photo_url,
            role=profile.role,
            preferences=PreferencesOut(
                email_notifications=profile.email_notifications,
                event_reminders=profile.event_reminders,
            ),
            created_at=profile.created_at,
            last_login=profile.last_login,
        )


class ProfileUpdate(SchemaBase):
    display_name: str | None = None
    photo_url: str | None = None
    email_notifications: bool | None = None
    event_reminders: bool | None = None


class AdminUserUpdate(SchemaBase):
    role: UserRole | None = None
    email: str | None = None
    display_name: str | None = None
