"""
iCalendar (RFC 5545) attachment for subscription emails.
"""
from datetime import datetime, timedelta, UTC
from typing import Optional

from . import config
from .utils import parse_instant

EVENT_DURATION = timedelta(hours=2)
CALENDAR_NAME = "Platform events"
MAX_LINE_OCTETS = 75


def _format_instant(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def _escape(text: Optional[str]) -> str:
    return (
        (text or "")
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def _fold(line: str) -> str:
    """Split a content line into 75-octet pieces joined by CRLF + space."""
    pieces, current, size = [], "", 0
    for char in line:
        width = len(char.encode("utf-8"))
        # continuation lines spend one octet on the leading space
        limit = MAX_LINE_OCTETS if not pieces else MAX_LINE_OCTETS - 1
        if size + width > limit:
            pieces.append(current)
            current, size = "", 0
        current += char
        size += width
    pieces.append(current)
    return "\r\n ".join(pieces)


def generate_ical_event(event: dict, app_url: Optional[str] = None) -> str:
    """Single-event VCALENDAR starting at the event date and lasting two hours."""
    start = parse_instant(event["date"])
    base_url = (app_url or config.APP_URL).rstrip("/")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//eventhub//Events//EN",
        f"X-WR-CALNAME:{CALENDAR_NAME}",
        "BEGIN:VEVENT",
        f"UID:{event['id']}@eventhub",
        f"DTSTAMP:{_format_instant(datetime.now(UTC))}",
        f"DTSTART:{_format_instant(start)}",
        f"DTEND:{_format_instant(start + EVENT_DURATION)}",
        f"SUMMARY:{_escape(event.get('name'))}",
        f"DESCRIPTION:{_escape(event.get('description'))}",
        f"URL:{base_url}/events/{event['id']}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(_fold(line) for line in lines) + "\r\n"
