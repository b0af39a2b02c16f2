from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from clubevents.models import Registration
from clubevents.policy.access import RecordType


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed write to a record, as seen by reactive handlers.

    ``before``/``after`` are JSON-safe snapshots so the event can cross the
    Celery broker unchanged.
    """

    record_type: str
    kind: str
    record_id: str
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.record_type, self.kind)

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ChangeEvent:
        return cls(
            record_type=payload["record_type"],
            kind=payload["kind"],
            record_id=payload["record_id"],
            before=payload.get("before"),
            after=payload.get("after"),
        )


def registration_snapshot(registration: Registration) -> dict[str, Any]:
    return {
        "id": str(registration.id),
        "event_id": str(registration.event_id),
        "user_id": registration.user_id,
        "user_name": registration.user_name,
        "user_email": registration.user_email,
        "status": registration.status.value,
        "reason": registration.reason,
        "registration_time": registration.registration_time.isoformat()
        if registration.registration_time
        else None,
    }


def registration_created(registration: Registration) -> ChangeEvent:
    return ChangeEvent(
        record_type=RecordType.REGISTRATION.value,
        kind=ChangeKind.CREATED.value,
        record_id=str(registration.id),
        after=registration_snapshot(registration),
    )


def registration_updated(before: dict[str, Any], registration: Registration) -> ChangeEvent:
    return ChangeEvent(
        record_type=RecordType.REGISTRATION.value,
        kind=ChangeKind.UPDATED.value,
        record_id=str(registration.id),
        before=before,
        after=registration_snapshot(registration),
    )
