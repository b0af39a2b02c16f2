from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event as sa_event

from clubevents.db import engine
from clubevents.exports.base import ExportTarget
from clubevents.exports.factory import create_export_target
from clubevents.exports.local import LocalCsvExportTarget
from clubevents.models.user import UserRole
from clubevents.policy.principal import Anonymous, principal_for_role
from clubevents.services import export_service
from clubevents.services.exceptions import (
    DependencyError,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
    ValidationError,
)
from tests.test_auth_rbac import auth_headers, make_role, sign_in
from tests.test_registration_workflow import ADMIN, ORGANIZER, make_event, member, register


class FakeTarget(ExportTarget):
    def __init__(self) -> None:
        self.documents: dict[str, dict[str, list[list[str]]]] = {}

    def create_document(self, title: str) -> str:
        document_id = f"doc-{len(self.documents) + 1}"
        self.documents[document_id] = {"title": title}
        return document_id

    def write_range(self, document_id: str, range_: str, rows: Sequence[Sequence[str]]) -> None:
        self.documents.setdefault(document_id, {})[range_] = [list(row) for row in rows]

    def document_url(self, document_id: str) -> str:
        return f"fake://{document_id}"


class BrokenTarget(FakeTarget):
    def write_range(self, document_id: str, range_: str, rows: Sequence[Sequence[str]]) -> None:
        raise DependencyError("EXPORT_FAILED", "quota exceeded for project 1234")


@pytest.fixture
def statements():
    seen: list[str] = []

    def record(conn, cursor, statement, parameters, context, executemany):
        seen.append(statement)

    sa_event.listen(engine, "before_cursor_execute", record)
    yield seen
    sa_event.remove(engine, "before_cursor_execute", record)


def _reads_registrations(statements: list[str]) -> bool:
    return any("FROM registrations" in s for s in statements)


def test_export_writes_header_and_rows(db_session):
    event = make_event(db_session, title="Open Mic")
    register(db_session, member("Alice"), event, reason="Sing")
    register(db_session, member("Bob"), event)
    target = FakeTarget()

    result = export_service.export_registrations(db_session, ORGANIZER, str(event.id), target=target)

    assert result.exported_count == 2
    assert result.document_id == "doc-1"
    assert result.url == "fake://doc-1"
    assert target.documents["doc-1"]["title"] == "Event Registrations - Open Mic"
    rows = target.documents["doc-1"]["Sheet1!A1"]
    assert rows[0] == ["Name", "Email", "Reason", "Status", "Timestamp"]
    assert [row[:4] for row in rows[1:]] == [
        ["Alice", "alice@example.com", "Sing", "confirmed"],
        ["Bob", "bob@example.com", "", "confirmed"],
    ]


def test_export_into_existing_document(db_session):
    event = make_event(db_session)
    target = FakeTarget()

    result = export_service.export_registrations(
        db_session, ADMIN, event.id, target_document_id="sheet-42", target=target
    )

    assert result.document_id == "sheet-42"
    assert result.exported_count == 0
    assert target.documents["sheet-42"]["Sheet1!A1"] == [export_service.HEADER]


def test_export_authorization_runs_before_reads(db_session, statements):
    event = make_event(db_session)
    register(db_session, member("Alice"), event)
    rival = principal_for_role(UserRole.ORGANIZER, "rival@example.com", "rival@example.com")
    target = FakeTarget()
    statements.clear()

    with pytest.raises(PermissionDeniedError) as not_owner:
        export_service.export_registrations(db_session, rival, event.id, target=target)
    assert not_owner.value.message == "User must be the event organizer or admin"
    assert not _reads_registrations(statements)

    with pytest.raises(PermissionDeniedError) as not_organizer:
        export_service.export_registrations(db_session, member("Alice"), event.id, target=target)
    assert not_organizer.value.message == "User must be admin or organizer"

    with pytest.raises(UnauthenticatedError):
        export_service.export_registrations(db_session, Anonymous(), event.id, target=target)

    assert target.documents == {}


def test_export_argument_checks(db_session, statements):
    statements.clear()
    with pytest.raises(ValidationError) as missing:
        export_service.export_registrations(db_session, ORGANIZER, "  ", target=FakeTarget())
    assert missing.value.code == "MISSING_EVENT_ID"
    assert missing.value.message == "Event ID is required"
    assert statements == []

    with pytest.raises(ValidationError) as malformed:
        export_service.export_registrations(db_session, ORGANIZER, "abc", target=FakeTarget())
    assert malformed.value.code == "INVALID_EVENT_ID"

    with pytest.raises(NotFoundError) as absent:
        export_service.export_registrations(
            db_session, ORGANIZER, "0f0e8c1a-55b9-4a36-9f0e-7a1c2b3d4e5f", target=FakeTarget()
        )
    assert absent.value.message == "Event not found"


def test_target_failure_is_reported_generically(db_session):
    event = make_event(db_session)

    with pytest.raises(DependencyError) as exc:
        export_service.export_registrations(db_session, ORGANIZER, event.id, target=BrokenTarget())
    assert exc.value.code == "EXPORT_FAILED"
    assert exc.value.message == "Failed to export data"
    assert "quota" not in str(exc.value)


def test_local_target_writes_csv(tmp_path: Path):
    target = LocalCsvExportTarget(tmp_path)
    document_id = target.create_document("Event Registrations - Chess & Tea")

    assert document_id.startswith("event-registrations-chess-tea-")
    target.write_range(document_id, "Sheet1!A1", [["Name"], ["Ada"]])

    with (tmp_path / document_id / "Sheet1.csv").open(newline="", encoding="utf-8") as fh:
        assert list(csv.reader(fh)) == [["Name"], ["Ada"]]
    assert target.document_url(document_id) == f"local://{document_id}"


def test_local_target_rejects_escaping_ids(tmp_path: Path):
    target = LocalCsvExportTarget(tmp_path)

    with pytest.raises(ValueError):
        target.write_range("../outside", "Sheet1!A1", [["x"]])
    with pytest.raises(ValueError):
        target.write_range("doc", "Sheet1!B2", [["x"]])
    with pytest.raises(ValueError):
        target.write_range("doc", "no-sheet", [["x"]])


def test_factory_rejects_unknown_backend(tmp_path: Path):
    assert isinstance(create_export_target("local", tmp_path), LocalCsvExportTarget)
    with pytest.raises(ValueError):
        create_export_target("dropbox", tmp_path)


def test_export_callable_over_http(client: TestClient, db_session):
    organizer = make_role(client, db_session, "host@example.com", UserRole.ORGANIZER)
    member_token = sign_in(client, "guest@example.com", "Gus")
    event_id = client.post(
        "/v1/events",
        json={
            "title": "Film Club",
            "description": "Double feature",
            "location": "Cinema Room",
            "date": "2999-05-01T19:00:00+00:00",
            "max_attendees": 30,
        },
        headers=auth_headers(organizer),
    ).json()["id"]
    client.post(f"/v1/events/{event_id}/registrations", json={}, headers=auth_headers(member_token))

    ok = client.post(
        "/v1/functions/export-registrations",
        json={"eventId": event_id},
        headers=auth_headers(organizer),
    )
    assert ok.status_code == 200
    body = ok.json()
    assert body["success"] is True
    assert body["exportedCount"] == 1
    assert body["spreadsheetUrl"] == f"local://{body['spreadsheetId']}"

    anonymous = client.post("/v1/functions/export-registrations", json={"eventId": event_id})
    assert anonymous.status_code == 401
    assert anonymous.json()["error"]["status"] == "unauthenticated"

    missing = client.post("/v1/functions/export-registrations", json={}, headers=auth_headers(organizer))
    assert missing.status_code == 400
    assert missing.json()["error"] == {
        "status": "invalid-argument",
        "message": "Event ID is required",
        "code": "MISSING_EVENT_ID",
    }

    forbidden = client.post(
        "/v1/functions/export-registrations",
        json={"eventId": event_id},
        headers=auth_headers(member_token),
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["error"]["status"] == "permission-denied"


class CrashingTarget(FakeTarget):
    def create_document(self, title: str) -> str:
        raise RuntimeError("unexpected response from provider")


def test_unexpected_target_errors_are_reported_generically(db_session):
    event = make_event(db_session)

    with pytest.raises(DependencyError) as exc:
        export_service.export_registrations(db_session, ORGANIZER, event.id, target=CrashingTarget())
    assert exc.value.code == "EXPORT_FAILED"
    assert exc.value.message == "Failed to export data"


def test_local_target_root_that_cannot_be_created(tmp_path: Path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")

    with pytest.raises(DependencyError) as exc:
        LocalCsvExportTarget(blocker / "exports")
    assert exc.value.code == "EXPORT_FAILED"


def test_export_callable_reports_broken_target_as_internal(
    client: TestClient, db_session, tmp_path: Path, monkeypatch
):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")
    monkeypatch.setattr(
        export_service,
        "get_export_target",
        lambda: create_export_target("local", blocker / "exports"),
    )
    organizer = make_role(client, db_session, "host@example.com", UserRole.ORGANIZER)
    event_id = client.post(
        "/v1/events",
        json={
            "title": "Board Night",
            "description": "Games",
            "location": "Room 4",
            "date": "2999-05-01T19:00:00+00:00",
            "max_attendees": 10,
        },
        headers=auth_headers(organizer),
    ).json()["id"]

    resp = client.post(
        "/v1/functions/export-registrations",
        json={"eventId": event_id},
        headers=auth_headers(organizer),
    )
    assert resp.status_code == 500
    assert resp.json()["error"] == {
        "status": "internal",
        "message": "Failed to export data",
        "code": "EXPORT_FAILED",
    }


def test_export_callable_rejected_credentials_use_callable_shape(client: TestClient):
    for headers in (auth_headers("not-a-valid-token"), {"Authorization": "Basic abc"}):
        resp = client.post(
            "/v1/functions/export-registrations", json={"eventId": "whatever"}, headers=headers
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["status"] == "unauthenticated"
