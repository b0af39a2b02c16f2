from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy import func, select, update

from clubevents.models import Event, Registration
from clubevents.models.user import UserRole
from tests.test_auth_rbac import auth_headers, make_role, sign_in


def _future(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def _create_event(client: TestClient, token: str, **overrides):
    payload = {
        "title": "Chess Club Open Night",
        "description": "Casual games for all levels",
        "location": "Student Union, Room 2",
        "date": _future(),
        "max_attendees": 20,
        "tags": ["games", "social"],
    }
    payload.update(overrides)
    return client.post("/v1/events", json=payload, headers=auth_headers(token))


def test_organizer_creates_active_event(client: TestClient, db_session):
    token = make_role(client, db_session, "org1@example.com", UserRole.ORGANIZER, name="Olive")

    resp = _create_event(client, token, status="cancelled")
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "active"
    assert body["current_attendees"] == 0
    assert body["organizer_id"] == "org1@example.com"
    assert body["organizer_name"] == "Olive"


def test_event_round_trip(client: TestClient, db_session):
    token = make_role(client, db_session, "org2@example.com", UserRole.ORGANIZER)
    created = _create_event(client, token, tags=["social", "games", "social"]).json()

    fetched = client.get(f"/v1/events/{created['id']}")
    assert fetched.status_code == 200
    body = fetched.json()
    assert body["title"] == created["title"]
    assert body["max_attendees"] == 20
    assert body["status"] == "active"
    assert set(body["tags"]) == {"games", "social"}


def test_create_event_field_validation(client: TestClient, db_session):
    token = make_role(client, db_session, "org3@example.com", UserRole.ORGANIZER)

    past = _create_event(client, token, date=(datetime.now(timezone.utc) - timedelta(hours=1)).isoformat())
    assert past.status_code == 422
    assert past.json()["detail"]["code"] == "DATE_NOT_IN_FUTURE"

    zero = _create_event(client, token, max_attendees=0)
    assert zero.status_code == 422
    assert zero.json()["detail"]["code"] == "MAX_ATTENDEES_NOT_POSITIVE"

    blank = _create_event(client, token, title="   ")
    assert blank.status_code == 422
    assert blank.json()["detail"]["code"] == "FIELD_REQUIRED"

    naive = _create_event(client, token, date="2999-01-01T10:00:00")
    assert naive.status_code == 422


def test_anonymous_reads_only_active_events(client: TestClient, db_session):
    token = make_role(client, db_session, "org4@example.com", UserRole.ORGANIZER)
    event_id = _create_event(client, token).json()["id"]

    assert client.get(f"/v1/events/{event_id}").status_code == 200

    cancel = client.patch(
        f"/v1/events/{event_id}", json={"status": "cancelled"}, headers=auth_headers(token)
    )
    assert cancel.status_code == 200

    anon = client.get(f"/v1/events/{event_id}")
    assert anon.status_code == 401

    member_token = sign_in(client, "member@example.com")
    assert client.get(f"/v1/events/{event_id}", headers=auth_headers(member_token)).status_code == 200

    assert client.get("/v1/events", params={"status": "cancelled"}).status_code == 401
    listed = client.get(
        "/v1/events", params={"status": "cancelled"}, headers=auth_headers(member_token)
    )
    assert [item["id"] for item in listed.json()["items"]] == [event_id]


def test_only_owner_or_admin_updates_event(client: TestClient, db_session):
    owner = make_role(client, db_session, "owner@example.com", UserRole.ORGANIZER)
    other = make_role(client, db_session, "other@example.com", UserRole.ORGANIZER)
    admin = make_role(client, db_session, "admin@example.com", UserRole.ADMIN)
    member = sign_in(client, "member2@example.com")
    event_id = _create_event(client, owner).json()["id"]

    denied = client.patch(f"/v1/events/{event_id}", json={"title": "Hijack"}, headers=auth_headers(other))
    assert denied.status_code == 403
    assert denied.json()["detail"]["code"] == "FORBIDDEN_OWNER"

    member_denied = client.patch(
        f"/v1/events/{event_id}", json={"title": "Nope"}, headers=auth_headers(member)
    )
    assert member_denied.status_code == 403
    assert member_denied.json()["detail"]["code"] == "FORBIDDEN_ROLE"

    by_admin = client.patch(
        f"/v1/events/{event_id}", json={"title": "Renamed"}, headers=auth_headers(admin)
    )
    assert by_admin.status_code == 200
    assert by_admin.json()["title"] == "Renamed"

    empty = client.patch(f"/v1/events/{event_id}", json={}, headers=auth_headers(owner))
    assert empty.status_code == 422
    assert empty.json()["detail"]["code"] == "NO_CHANGES"


def test_capacity_cannot_drop_below_attendees(client: TestClient, db_session):
    token = make_role(client, db_session, "org5@example.com", UserRole.ORGANIZER)
    event_id = _create_event(client, token, max_attendees=5).json()["id"]
    db_session.execute(
        update(Event).where(Event.id == uuid.UUID(event_id)).values(current_attendees=3)
    )
    db_session.commit()

    resp = client.patch(f"/v1/events/{event_id}", json={"max_attendees": 2}, headers=auth_headers(token))
    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "CAPACITY_BELOW_ATTENDEES"

    ok = client.patch(f"/v1/events/{event_id}", json={"max_attendees": 3}, headers=auth_headers(token))
    assert ok.status_code == 200


def test_list_events_is_date_ordered_with_cursor(client: TestClient, db_session):
    token = make_role(client, db_session, "org6@example.com", UserRole.ORGANIZER)
    third = _create_event(client, token, title="Third", date=_future(30)).json()["id"]
    first = _create_event(client, token, title="First", date=_future(2)).json()["id"]
    second = _create_event(client, token, title="Second", date=_future(10)).json()["id"]

    page1 = client.get("/v1/events", params={"limit": 2}).json()
    assert [item["id"] for item in page1["items"]] == [first, second]
    assert page1["next_cursor"] == second
    assert page1["limit"] == 2

    page2 = client.get("/v1/events", params={"limit": 2, "cursor": page1["next_cursor"]}).json()
    assert [item["id"] for item in page2["items"]] == [third]
    assert page2["next_cursor"] is None

    by_organizer = client.get("/v1/events", params={"organizer_id": "nobody@example.com"}).json()
    assert by_organizer["items"] == []


def test_list_events_rejects_unknown_cursor(client: TestClient):
    resp = client.get("/v1/events", params={"cursor": str(uuid.uuid4())})
    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "INVALID_CURSOR"

    garbage = client.get("/v1/events", params={"cursor": "not-a-cursor"})
    assert garbage.status_code == 422


def test_delete_event_removes_registrations(client: TestClient, db_session):
    token = make_role(client, db_session, "org7@example.com", UserRole.ORGANIZER)
    member = sign_in(client, "member3@example.com", "Mia")
    event_id = _create_event(client, token).json()["id"]

    reg = client.post(f"/v1/events/{event_id}/registrations", json={}, headers=auth_headers(member))
    assert reg.status_code == 201

    deleted = client.delete(f"/v1/events/{event_id}", headers=auth_headers(token))
    assert deleted.status_code == 204
    assert client.get(f"/v1/events/{event_id}").status_code == 404

    remaining = db_session.scalar(
        select(func.count()).select_from(Registration).where(Registration.event_id == uuid.UUID(event_id))
    )
    assert remaining == 0
