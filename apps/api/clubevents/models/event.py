from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from clubevents.models.base import Base, TimestampMixin, UTCDateTime, UUIDPrimaryKeyMixin, enum_values


class EventStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Event(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "events"
    __table_args__ = (
        sa.CheckConstraint("max_attendees > 0", name="ck_events_max_attendees_positive"),
        sa.CheckConstraint("current_attendees >= 0", name="ck_events_current_attendees_non_negative"),
        sa.Index("ix_events_status_date", "status", "date"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String(300), nullable=False)
    date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    max_attendees: Mapped[int] = mapped_column(Integer, nullable=False)
    # Only the registration workflow moves this counter
    current_attendees: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )

    organizer_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    organizer_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[EventStatus] = mapped_column(
        sa.Enum(EventStatus, name="event_status", values_callable=enum_values),
        nullable=False,
        default=EventStatus.ACTIVE,
    )

    tags: Mapped[list[str]] = mapped_column(sa.JSON, nullable=False, default=list)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
