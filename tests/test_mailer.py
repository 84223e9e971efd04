import email

import boto3
import pytest

from eventhub.ical import generate_ical_event
from eventhub.mailer import Mailer, confirmation_email_html

from .helpers import REGION

SENDER = "noreply@example.com"
EVENT = {
    "id": "e-1",
    "name": "Conf; 2030, edition",
    "description": "Talks\nand workshops",
    "date": "2030-05-01T18:30:00+00:00",
}


@pytest.fixture
def ses(aws):
    client = boto3.client("ses", region_name=REGION)
    client.verify_email_identity(EmailAddress=SENDER)
    return client


@pytest.fixture
def live_mailer(ses):
    return Mailer(SENDER, ses, frontend_url="https://app.example.com/", app_url="https://api.example.com")


def sent_count(ses):
    return int(ses.get_send_quota()["SentLast24Hours"])


def test_unconfigured_mailer_skips():
    mailer = Mailer(None)
    assert not mailer.configured
    assert mailer.send_email("a@example.com", "Hi", "<p>hi</p>") is False
    assert mailer.send_event_subscription("a@example.com", EVENT) is False


def test_send_email(live_mailer, ses):
    assert live_mailer.send_email("a@example.com", "Hi", "<p>hi</p>") is True
    assert sent_count(ses) == 1


def test_unverified_sender_is_logged_not_raised(aws):
    client = boto3.client("ses", region_name=REGION)
    mailer = Mailer("unverified@example.com", client)
    assert mailer.send_email("a@example.com", "Hi", "<p>hi</p>") is False


def test_confirmation_link(live_mailer, ses, monkeypatch):
    captured = {}

    def fake_send(to, subject, body):
        captured.update(to=to, subject=subject, body=body)
        return True

    monkeypatch.setattr(live_mailer, "send_email", fake_send)
    assert live_mailer.send_confirmation_email("a@example.com", "tok-123")
    assert captured["subject"] == "Email Confirmation"
    assert "https://app.example.com/auth/confirm-email?token=tok-123" in captured["body"]


def test_confirmation_without_frontend_url(ses):
    assert Mailer(SENDER, ses).send_confirmation_email("a@example.com", "tok") is False
    assert sent_count(ses) == 0


def test_confirmation_html_escapes_link():
    assert "&amp;" in confirmation_email_html("https://x.test/?a=1&b=2")


def test_subscription_email_carries_calendar(live_mailer, ses, monkeypatch):
    raw = {}
    real_send = ses.send_raw_email

    def capture(**kwargs):
        raw.update(kwargs)
        return real_send(**kwargs)

    monkeypatch.setattr(ses, "send_raw_email", capture)

    assert live_mailer.send_event_subscription("p1@example.com", EVENT) is True
    assert sent_count(ses) == 1
    assert raw["Destinations"] == ["p1@example.com"]

    message = email.message_from_string(raw["RawMessage"]["Data"])
    assert message["Subject"] == "Event Subscription Confirmed"
    attachments = [p for p in message.walk() if p.get_filename() == "event.ics"]
    assert len(attachments) == 1
    assert attachments[0].get_content_type() == "text/calendar"
    calendar = attachments[0].get_payload(decode=True).decode("utf-8")
    assert "SUMMARY:Conf\\; 2030\\, edition" in calendar
    assert "URL:https://api.example.com/events/e-1" in calendar


@pytest.mark.parametrize("send", ["send_event_created", "send_event_canceled", "send_subscription_canceled"])
def test_event_notifications(live_mailer, ses, send):
    assert getattr(live_mailer, send)("p1@example.com", EVENT) is True
    assert sent_count(ses) == 1


def test_account_deactivated(live_mailer, ses):
    assert live_mailer.send_account_deactivated("p1@example.com", "Ana") is True


# Calendar
def test_ical_event_window_and_escaping():
    text = generate_ical_event(EVENT, "https://api.example.com/")
    lines = text.split("\r\n")

    assert lines[0] == "BEGIN:VCALENDAR"
    assert text.endswith("END:VCALENDAR\r\n")
    assert "UID:e-1@eventhub" in lines
    assert "DTSTART:20300501T183000Z" in lines
    assert "DTEND:20300501T203000Z" in lines
    assert "DESCRIPTION:Talks\\nand workshops" in lines
    assert "URL:https://api.example.com/events/e-1" in lines


def test_ical_converts_offsets_to_utc():
    text = generate_ical_event({**EVENT, "date": "2030-05-01T10:00:00-03:00"}, "http://localhost:8080")
    assert "DTSTART:20300501T130000Z" in text


def test_ical_folds_long_lines():
    description = "Keynote, panels and hands-on labs " * 6 + "café ünïcode"
    text = generate_ical_event({**EVENT, "description": description}, "http://localhost:8080")

    physical = text.split("\r\n")
    assert max(len(line.encode("utf-8")) for line in physical) <= 75
    assert any(line.startswith(" ") for line in physical)

    unfolded = text.replace("\r\n ", "")
    expected = description.replace(",", "\\,")
    assert f"DESCRIPTION:{expected}" in unfolded.split("\r\n")
