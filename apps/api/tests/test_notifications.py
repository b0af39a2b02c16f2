from __future__ import annotations

import dataclasses

import httpx
import pytest

from clubevents.notifications import publisher, templates
from clubevents.notifications.changes import ChangeEvent, ChangeKind
from clubevents.notifications.dispatcher import HandlerContext, dispatcher
from clubevents.notifications.email import EmailMessage, EmailSender, SendGridEmailSender
from clubevents.services import registration_service
from clubevents.services.exceptions import DependencyError
from clubevents.worker.tasks import dispatch_change_event
from tests.test_registration_workflow import ORGANIZER, make_event, member, register


class FailingEmailSender(EmailSender):
    def send(self, message: EmailMessage) -> None:
        raise DependencyError("EMAIL_DELIVERY_FAILED", "provider unavailable")


class FakeCelery:
    def __init__(self) -> None:
        self.sent: list[tuple[str, list]] = []

    def send_task(self, name: str, args: list) -> None:
        self.sent.append((name, args))


def _use_backend(monkeypatch, backend: str) -> None:
    monkeypatch.setattr(
        publisher,
        "settings",
        dataclasses.replace(publisher.settings, notifications_backend=backend),
    )


def _change(kind: ChangeKind, before_status: str | None, after_status: str, event_id: str) -> ChangeEvent:
    after = {
        "id": "4b1f1b7e-0d5e-4c8e-9a0c-3f1c4b6e2d10",
        "event_id": event_id,
        "user_id": "alice@example.com",
        "user_name": "Alice",
        "user_email": "alice@example.com",
        "status": after_status,
        "reason": None,
        "registration_time": "2030-01-01T10:00:00+00:00",
    }
    before = None if before_status is None else {**after, "status": before_status}
    return ChangeEvent("registrations", kind.value, after["id"], before=before, after=after)


def test_registration_sends_received_email(db_session, outbox):
    event = make_event(db_session, title="Robotics Demo")
    register(db_session, member("Alice"), event)

    assert outbox.subjects() == ["Registration Received - Robotics Demo"]
    message = outbox.sent[0]
    assert message.to == "alice@example.com"
    assert "Dear Alice" in message.text
    assert '"Robotics Demo"' in message.text


def test_approval_sends_approved_email_once(db_session, outbox):
    event = make_event(db_session, title="Robotics Demo")
    registration = register(db_session, member("Alice"), event)
    registration_service.update_registration(db_session, ORGANIZER, registration.id, {"status": "waitlist"})
    registration_service.approve_registration(db_session, ORGANIZER, registration.id)
    registration_service.approve_registration(db_session, ORGANIZER, registration.id)

    assert outbox.subjects() == [
        "Registration Received - Robotics Demo",
        "Registration Approved - Robotics Demo",
    ]


def test_cancel_and_note_edits_send_nothing(db_session, outbox):
    event = make_event(db_session)
    alice = member("Alice")
    registration = register(db_session, alice, event)
    outbox.sent.clear()

    registration_service.update_registration(db_session, ORGANIZER, registration.id, {"notes": "front row"})
    registration_service.cancel_registration(db_session, alice, registration.id)

    assert outbox.sent == []


def test_dispatcher_routes_by_record_type_and_kind(db_session, outbox):
    event = make_event(db_session, title="Poetry Slam")
    context = HandlerContext(db=db_session, sender=outbox, email_from="noreply@club.example")

    assert dispatcher.dispatch(_change(ChangeKind.UPDATED, "confirmed", "cancelled", str(event.id)), context) == 1
    assert dispatcher.dispatch(_change(ChangeKind.UPDATED, "confirmed", "confirmed", str(event.id)), context) == 1
    assert outbox.sent == []

    dispatcher.dispatch(_change(ChangeKind.UPDATED, "waitlist", "confirmed", str(event.id)), context)
    assert outbox.subjects() == ["Registration Approved - Poetry Slam"]
    assert outbox.sent[0].sender == "noreply@club.example"

    unrelated = ChangeEvent("events", ChangeKind.CREATED.value, "x")
    assert dispatcher.dispatch(unrelated, context) == 0


def test_missing_event_is_skipped(db_session, outbox):
    change = _change(ChangeKind.CREATED, None, "confirmed", "2b8f8c4e-3f6d-4a42-8f55-4a1d1f0a9c77")
    assert publisher.run_dispatch(change, db=db_session) == 1
    assert outbox.sent == []


def test_delivery_failure_propagates_from_dispatch_but_not_from_publish(db_session, monkeypatch):
    event = make_event(db_session)
    monkeypatch.setattr(publisher, "get_email_sender", lambda: FailingEmailSender())
    change = _change(ChangeKind.CREATED, None, "confirmed", str(event.id))

    with pytest.raises(DependencyError):
        publisher.run_dispatch(change, db=db_session)

    publisher.publish_change(change)

    # The registration itself still commits
    registration = register(db_session, member("Bob"), event)
    assert registration.id is not None


def test_disabled_backend_sends_nothing(db_session, outbox, monkeypatch):
    _use_backend(monkeypatch, "disabled")
    register(db_session, member("Alice"), make_event(db_session))
    assert outbox.sent == []


def test_celery_backend_enqueues_payload(db_session, outbox, monkeypatch):
    _use_backend(monkeypatch, "celery")
    fake = FakeCelery()
    monkeypatch.setattr(publisher, "celery_app", fake)

    registration = register(db_session, member("Alice"), make_event(db_session))

    assert outbox.sent == []
    assert len(fake.sent) == 1
    name, args = fake.sent[0]
    assert name == publisher.DISPATCH_TASK
    payload = args[0]
    assert payload["record_type"] == "registrations"
    assert payload["kind"] == "created"
    assert payload["record_id"] == str(registration.id)
    assert payload["after"]["status"] == "confirmed"


def test_worker_task_dispatches_payload(db_session, outbox):
    event = make_event(db_session, title="Jazz Evening")
    change = _change(ChangeKind.UPDATED, "waitlist", "confirmed", str(event.id))

    result = dispatch_change_event.apply(args=[change.to_payload()]).get()

    assert result == {"record_id": change.record_id, "handlers": 1}
    assert outbox.subjects() == ["Registration Approved - Jazz Evening"]


def test_change_event_payload_survives_the_broker_shape():
    change = _change(ChangeKind.UPDATED, "waitlist", "confirmed", "e")
    assert ChangeEvent.from_payload(change.to_payload()) == change
    assert change.key == ("registrations", "updated")


def test_templates_escape_html():
    email = templates.registration_approved("<b>Eve</b>", "Tom & Jerry")
    assert email.subject == "Registration Approved - Tom & Jerry"
    assert "&lt;b&gt;Eve&lt;/b&gt;" in email.html
    assert "Tom &amp; Jerry" in email.html
    assert "Dear <b>Eve</b>" in email.text


def test_sendgrid_errors_become_dependency_errors(monkeypatch):
    def fail(*args, **kwargs):
        raise httpx.ConnectError("no route to host")

    monkeypatch.setattr(httpx, "post", fail)
    sender = SendGridEmailSender("key", "https://api.sendgrid.example/v3/mail/send")

    with pytest.raises(DependencyError) as exc:
        sender.send(EmailMessage("a@example.com", "b@example.com", "s", "t", "<p>t</p>"))
    assert exc.value.code == "EMAIL_DELIVERY_FAILED"
