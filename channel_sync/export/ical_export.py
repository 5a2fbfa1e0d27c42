"""
Outbound iCalendar feed of a unit's canonical bookings.
"""
from datetime import datetime
from typing import Callable, Iterable, List, Optional
from urllib.parse import urlparse

from ..utils.models import RentalUnit, CanonicalBooking, BookingStatus, EventKind, utc_now
from config.settings import api_config


MAX_LINE_OCTETS = 75


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> List[str]:
    """Split a content line into chunks of at most 75 octets (continuations start with a space)."""
    parts: List[str] = []
    current = ""
    for char in line:
        if len((current + char).encode("utf-8")) > MAX_LINE_OCTETS:
            parts.append(current)
            current = " "
        current += char
    parts.append(current)
    return parts


def generate_ical_feed(
    unit: RentalUnit,
    bookings: Iterable[CanonicalBooking],
    base_url: Optional[str] = None,
    clock: Callable[[], datetime] = utc_now,
) -> str:
    """
    Render the unit's active bookings as an iCalendar document.

    Notes:
    - Lines must not have leading spaces; in iCalendar, a leading space indicates
      a folded continuation line.
    - Use CRLF line endings per RFC 5545.
    - No guest data is published: bookings read "Reserved", blocks "Not available".
    """
    parsed = urlparse(base_url or api_config.base_url or "")
    uid_domain = (parsed.hostname or "example.com").strip()
    now = clock().strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{uid_domain}//Channel Sync//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_text(unit.name or unit.id)}",
    ]

    active = sorted(
        (b for b in bookings if b.status != BookingStatus.CANCELLED and b.unit_id == unit.id),
        key=lambda b: (b.check_in, b.id),
    )
    for booking in active:
        summary = "Not available" if booking.event_kind == EventKind.BLOCK else "Reserved"
        lines.extend([
            "BEGIN:VEVENT",
            f"UID:{booking.id}@{uid_domain}",
            f"DTSTAMP:{now}",
            f"DTSTART;VALUE=DATE:{booking.check_in.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{booking.check_out.strftime('%Y%m%d')}",
            f"SUMMARY:{summary}",
            "END:VEVENT",
        ])

    lines.append("END:VCALENDAR")

    folded: List[str] = []
    for line in lines:
        folded.extend(fold_line(line))
    return "\r\n".join(folded) + "\r\n"
