from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clubevents.models.base import Base, UTCDateTime, UUIDPrimaryKeyMixin, enum_values, utcnow

_LIVE = sa.text("status <> 'cancelled'")


class RegistrationStatus(str, Enum):
    CONFIRMED = "confirmed"
    WAITLIST = "waitlist"
    CANCELLED = "cancelled"


class Registration(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "registrations"
    __table_args__ = (
        # At most one non-cancelled registration per (event, user)
        sa.Index(
            "uq_registrations_event_user_live",
            "event_id",
            "user_id",
            unique=True,
            postgresql_where=_LIVE,
            sqlite_where=_LIVE,
        ),
        sa.Index("ix_registrations_user_time", "user_id", "registration_time"),
    )

    event_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # Snapshot of the registrant at registration time
    user_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False)

    registration_time: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow
    )
    status: Mapped[RegistrationStatus] = mapped_column(
        sa.Enum(RegistrationStatus, name="registration_status", values_callable=enum_values),
        nullable=False,
        default=RegistrationStatus.CONFIRMED,
    )

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attendance: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow
    )
