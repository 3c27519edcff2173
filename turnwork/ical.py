from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from .models import DayResolution, Event
from .timeutil import is_overnight, parse_time_to_minutes


def _escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\r\n", "\n")
        .replace("\r", "\n")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def _format_dtstamp(dt: datetime) -> str:
    utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return utc.strftime("%Y%m%dT%H%M%SZ")


def _format_local(day: date, minutes: int) -> str:
    return f"{day.strftime('%Y%m%d')}T{minutes // 60:02d}{minutes % 60:02d}00"


def _fold_ical_line(line: str) -> str:
    first_limit = 75
    next_limit = 74  # continuation lines start with a single space

    segments: list[str] = []
    current = ""
    current_limit = first_limit
    for ch in line:
        if current and len((current + ch).encode("utf-8")) > current_limit:
            segments.append(current)
            current = ch
            current_limit = next_limit
        else:
            current += ch
    if current:
        segments.append(current)

    if not segments:
        return line
    return "\r\n ".join(segments)


def _fold_lines(lines: Iterable[str]) -> str:
    return "\r\n".join(_fold_ical_line(line) for line in lines) + "\r\n"


def _shift_event_lines(day: DayResolution, cycle_id: str, stamp: str) -> list[str]:
    shift = day.displayShift or day.shift
    the_date = date.fromisoformat(day.dateISO)
    start = parse_time_to_minutes(day.startTime)
    end = parse_time_to_minutes(day.endTime)
    if start is None or end is None:
        timing = [
            f"DTSTART;VALUE=DATE:{the_date.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{(the_date + timedelta(days=1)).strftime('%Y%m%d')}",
        ]
    else:
        end_date = the_date + timedelta(days=1) if is_overnight(day.startTime, day.endTime) else the_date
        timing = [
            f"DTSTART:{_format_local(the_date, start)}",
            f"DTEND:{_format_local(end_date, end)}",
        ]
    description = f"Cycle day {day.dayNumber}, {day.hours:g} h"
    return [
        "BEGIN:VEVENT",
        f"UID:{_escape_text(f'{cycle_id}-{day.dateISO}@turnwork')}",
        f"DTSTAMP:{stamp}",
        *timing,
        f"SUMMARY:{_escape_text(shift.name)}",
        f"DESCRIPTION:{_escape_text(description)}",
        "END:VEVENT",
    ]


def _personal_event_lines(event: Event, stamp: str) -> list[str]:
    the_date = date.fromisoformat(event.dateISO)
    lines = [
        "BEGIN:VEVENT",
        f"UID:{_escape_text(f'event-{event.id}@turnwork')}",
        f"DTSTAMP:{stamp}",
        f"DTSTART;VALUE=DATE:{the_date.strftime('%Y%m%d')}",
        f"DTEND;VALUE=DATE:{(the_date + timedelta(days=1)).strftime('%Y%m%d')}",
        f"SUMMARY:{_escape_text(event.title)}",
    ]
    if event.location:
        lines.append(f"LOCATION:{_escape_text(event.location)}")
    if event.notes:
        lines.append(f"DESCRIPTION:{_escape_text(event.notes)}")
    lines.append("END:VEVENT")
    return lines


def generate_ics(
    days: Iterable[DayResolution],
    cal_name: str,
    *,
    cycle_id: str = "cycle",
    events: Iterable[Event] = (),
    dtstamp: Optional[datetime] = None,
) -> str:
    """Render resolved shift days (and optional personal events) as iCalendar.

    Unresolved days are skipped. Times are floating local times, matching
    how the app shows them.
    """
    stamp = _format_dtstamp(dtstamp or datetime.now(timezone.utc))
    lines: list[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//TurnWork//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{_escape_text(cal_name)}",
    ]
    for day in days:
        if day.status == "unresolved" or (day.displayShift or day.shift) is None:
            continue
        lines.extend(_shift_event_lines(day, cycle_id, stamp))
    for event in events:
        lines.extend(_personal_event_lines(event, stamp))
    lines.append("END:VCALENDAR")
    return _fold_lines(lines)
