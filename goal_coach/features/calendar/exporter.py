"""
Calendar export: encode a reminder cadence as an iCalendar (RFC 5545) document.

The document holds one daily-recurring event (365 occurrences) starting now,
with one display alarm that repeats every `duration` minutes,
floor(1440 / interval) times, to approximate "every N minutes" nudges in
calendar clients.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from goal_coach.common import coerce_minutes

logger = logging.getLogger("calendar_export")

DEFAULT_TITLE = "Goal Focus Session"
MAX_TITLE_LENGTH = 120
DEFAULT_INTERVAL_MINUTES = 25
DEFAULT_DURATION_MINUTES = 5
MIN_MINUTES = 5
MINUTES_PER_DAY = 24 * 60
RECURRENCE_COUNT = 365

PRODID = "-//Goal Coach Agent//EN"
UID_DOMAIN = "goal-coach"
CONTENT_TYPE = "text/calendar; charset=utf-8"
FILENAME = "goal-reminder.ics"
CRLF = "\r\n"


@dataclass(frozen=True)
class ExportRequest:
    title: str
    interval_minutes: int
    alarm_duration_minutes: int

    @classmethod
    def build(cls, title: Optional[str], interval_minutes: Any, alarm_duration_minutes: Any) -> "ExportRequest":
        """Apply the title fallback/cap and the 5-minute floors."""
        title = (title or "")[:MAX_TITLE_LENGTH]
        if not title.strip():
            title = DEFAULT_TITLE
        return cls(
            title=title,
            interval_minutes=coerce_minutes(interval_minutes, DEFAULT_INTERVAL_MINUTES, MIN_MINUTES),
            alarm_duration_minutes=coerce_minutes(alarm_duration_minutes, DEFAULT_DURATION_MINUTES, MIN_MINUTES),
        )

    @property
    def alarm_repeat(self) -> int:
        return MINUTES_PER_DAY // self.interval_minutes


@dataclass(frozen=True)
class CalendarDocument:
    body: str
    content_type: str = CONTENT_TYPE
    filename: str = FILENAME

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def escape_text(text: str) -> str:
    """Escape a TEXT value: backslash first, then newline, comma, semicolon."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return (
        text.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def format_timestamp(dt: datetime) -> str:
    """Compact UTC form, e.g. 20250101T090000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def make_uid() -> str:
    return f"{time.time_ns()}@{UID_DOMAIN}"


def parse_export_params(title: Optional[str] = None, interval: Any = None, duration: Any = None) -> ExportRequest:
    """Turn raw query values into an ExportRequest; malformed numbers use defaults."""
    if title is None:
        title = DEFAULT_TITLE
    return ExportRequest.build(title, interval, duration)


def render(request: ExportRequest, *, now: Optional[datetime] = None, uid: Optional[str] = None) -> CalendarDocument:
    now = now or datetime.now(timezone.utc)
    stamp = format_timestamp(now)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{uid or make_uid()}",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{stamp}",
        f"SUMMARY:{escape_text(request.title)}",
        f"RRULE:FREQ=DAILY;INTERVAL=1;COUNT={RECURRENCE_COUNT}",
        "BEGIN:VALARM",
        "ACTION:DISPLAY",
        f"DESCRIPTION:{escape_text('Nudge: ' + request.title)}",
        "TRIGGER:-PT0M",
        f"DURATION:PT{request.alarm_duration_minutes}M",
        f"REPEAT:{request.alarm_repeat}",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return CalendarDocument(body=CRLF.join(lines) + CRLF)


def export(
    title: Optional[str],
    interval_minutes: Any = DEFAULT_INTERVAL_MINUTES,
    alarm_duration_minutes: Any = DEFAULT_DURATION_MINUTES,
    *,
    now: Optional[datetime] = None,
    uid: Optional[str] = None,
) -> CalendarDocument:
    """Build the recurring reminder calendar for a title and cadence."""
    request = ExportRequest.build(title, interval_minutes, alarm_duration_minutes)
    document = render(request, now=now, uid=uid)
    logger.info(
        "Exported calendar: interval=%d min, alarm=%d min, repeat=%d",
        request.interval_minutes,
        request.alarm_duration_minutes,
        request.alarm_repeat,
    )
    return document
