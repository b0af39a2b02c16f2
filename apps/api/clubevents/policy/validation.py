"""Field-level write validation, applied regardless of who is writing."""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from clubevents.models.event import EventStatus
from clubevents.models.registration import RegistrationStatus
from clubevents.models.user import UserRole
from clubevents.services.error_codes import ErrorCode
from clubevents.services.exceptions import ValidationError

E = TypeVar("E", bound=Enum)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(value: str | None, field: str = "email") -> str:
    email = (value or "").strip()
    if not EMAIL_RE.match(email):
        raise ValidationError(ErrorCode.INVALID_EMAIL.value, f"{field} must be a valid email address")
    return email


def require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(ErrorCode.FIELD_REQUIRED.value, f"{field} is required")
    return text


def optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def validate_future(value: datetime | None, field: str = "date", now: datetime | None = None) -> datetime:
    if value is None:
        raise ValidationError(ErrorCode.FIELD_REQUIRED.value, f"{field} is required")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if value <= now:
        raise ValidationError(ErrorCode.DATE_NOT_IN_FUTURE.value, f"{field} must be in the future")
    return value


def validate_positive(value: int | None, field: str = "max_attendees") -> int:
    if value is None or isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(
            ErrorCode.MAX_ATTENDEES_NOT_POSITIVE.value, f"{field} must be a positive integer"
        )
    return value


def validate_choice(value: Any, enum_cls: type[E], code: ErrorCode, field: str) -> E:
    try:
        return enum_cls(value.value if isinstance(value, Enum) else value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(code.value, f"{field} must be one of: {allowed}") from None


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    if not tags:
        return []
    cleaned = {tag.strip() for tag in tags if isinstance(tag, str) and tag.strip()}
    return sorted(cleaned)


def parse_uuid(value: Any, code: ErrorCode = ErrorCode.INVALID_FIELD, field: str = "id") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(code.value, f"{field} is not a valid identifier") from None


def validate_event_fields(
    data: Mapping[str, Any],
    *,
    creating: bool,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Validate and normalize event fields present in ``data``.

    On creation every required field must be present and ``date`` must be
    in the future; on update only the supplied fields are checked.
    """
    out: dict[str, Any] = {}

    for field in ("title", "description", "location"):
        if creating or field in data:
            out[field] = require_text(data.get(field), field)

    if creating:
        out["date"] = validate_future(data.get("date"), "date", now=now)
    elif "date" in data:
        if data["date"] is None:
            raise ValidationError(ErrorCode.FIELD_REQUIRED.value, "date is required")
        out["date"] = data["date"]

    if creating or "max_attendees" in data:
        out["max_attendees"] = validate_positive(data.get("max_attendees"))

    if "status" in data:
        out["status"] = validate_choice(data["status"], EventStatus, ErrorCode.INVALID_STATUS, "status")

    if creating or "tags" in data:
        out["tags"] = normalize_tags(data.get("tags"))

    if "image_url" in data:
        out["image_url"] = optional_text(data["image_url"])

    return out


def validate_registration_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if "status" in data:
        out["status"] = validate_choice(
            data["status"], RegistrationStatus, ErrorCode.INVALID_STATUS, "status"
        )
    if "user_name" in data:
        out["user_name"] = require_text(data["user_name"], "user_name")
    if "user_email" in data:
        out["user_email"] = validate_email(data["user_email"], "user_email")
    for field in ("reason", "notes"):
        if field in data:
            out[field] = optional_text(data[field])
    if "attendance" in data:
        attendance = data["attendance"]
        if attendance is not None and not isinstance(attendance, bool):
            raise ValidationError(ErrorCode.INVALID_FIELD.value, "attendance must be a boolean")
        out["attendance"] = attendance
    return out


def validate_profile_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if "email" in data:
        out["email"] = validate_email(data["email"])
    if "display_name" in data:
        out["display_name"] = require_text(data["display_name"], "display_name")
    if "photo_url" in data:
        out["photo_url"] = optional_text(data["photo_url"])
    if "role" in data:
        out["role"] = validate_choice(data["role"], UserRole, ErrorCode.INVALID_ROLE, "role")
    for field in ("email_notifications", "event_reminders"):
        if field in data:
            if not isinstance(data[field], bool):
                raise ValidationError(ErrorCode.INVALID_FIELD.value, f"{field} must be a boolean")
            out[field] = data[field]
    return out
