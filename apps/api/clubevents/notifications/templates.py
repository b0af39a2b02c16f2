from __future__ import annotations

from dataclasses import dataclass
from html import escape

_SIGNATURE = "Best regards,\nUniversity Club Team"

_HTML_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
    "{body}"
    "<br><p>Best regards,<br>University Club Team</p>"
    "</div>"
)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str


def registration_received(user_name: str, event_title: str) -> RenderedEmail:
    text = (
        f"Dear {user_name},\n\n"
        f'Thank you for your interest in "{event_title}"!\n\n'
        "We have received your registration request and will review it shortly. "
        "You will receive another email once your registration has been approved.\n\n"
        f"{_SIGNATURE}\n"
    )
    html = _HTML_WRAPPER.format(
        body=(
            "<h2>Registration Received</h2>"
            f"<p>Dear {escape(user_name)},</p>"
            f"<p>Thank you for your interest in <strong>&quot;{escape(event_title)}&quot;</strong>!</p>"
            "<p>We have received your registration request and will review it shortly. "
            "You will receive another email once your registration has been approved.</p>"
        )
    )
    return RenderedEmail(subject=f"Registration Received - {event_title}", text=text, html=html)


def registration_approved(user_name: str, event_title: str) -> RenderedEmail:
    text = (
        f"Dear {user_name},\n\n"
        f'Great news! Your registration for "{event_title}" has been approved.\n\n'
        "You are now confirmed to attend the event. We look forward to seeing you there!\n\n"
        f"{_SIGNATURE}\n"
    )
    html = _HTML_WRAPPER.format(
        body=(
            "<h2>Registration Approved</h2>"
            f"<p>Dear {escape(user_name)},</p>"
            f"<p>Great news! Your registration for <strong>&quot;{escape(event_title)}&quot;</strong> "
            "has been approved.</p>"
            "<p>You are now confirmed to attend the event. We look forward to seeing you there!</p>"
        )
    )
    return RenderedEmail(subject=f"Registration Approved - {event_title}", text=text, html=html)
