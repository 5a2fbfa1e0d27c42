"""
Feed parser for iCalendar (RFC 5545 style) availability feeds.

Turns raw feed text into normalized, date-only events. It knows nothing about
channels, storage or networking.
"""
import hashlib
import math
import re
from datetime import date, timedelta
from typing import Optional, Dict, Any, List, Tuple

from ..utils.models import ParsedEvent, EventKind, EventStatus
from ..utils.logger import get_logger


# Summaries that denote an anonymous date closure rather than a guest stay
BLOCK_SUMMARY_TERMS = (
    "not available",
    "unavailable",
    "blocked",
    "closed",
    "no disponible",
    "bloqueado",
    "bloqueo",
    "cerrado",
    "cierre",
    "indisponible",
    "non disponible",
    "fermé",
    "nicht verfügbar",
    "geschlossen",
    "non disponibile",
    "chiuso",
)

_BLOCK_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(term) for term in BLOCK_SUMMARY_TERMS) + r")\b",
    re.IGNORECASE,
)

_DURATION_PATTERN = re.compile(
    r"^[+-]?P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$",
    re.IGNORECASE,
)

_DATE_PATTERN = re.compile(r"(\d{4})(\d{2})(\d{2})")

CONSULTED_KEYS = {"UID", "SUMMARY", "DESCRIPTION", "DTSTART", "DTEND", "DURATION", "STATUS", "METHOD", "RRULE"}


def is_block_summary(summary: Optional[str]) -> bool:
    """True when a summary is empty or one of the placeholder closure terms."""
    normalized = (summary or "").strip()
    if not normalized:
        return True
    return bool(_BLOCK_PATTERN.search(normalized))


def unfold_lines(text: str) -> List[str]:
    """Undo RFC 5545 line folding; continuation lines start with a space or tab."""
    unfolded: List[str] = []
    for line in re.split(r"\r?\n", text or ""):
        if line[:1] in (" ", "\t"):
            if unfolded:
                unfolded[-1] += line[1:]
        elif line.strip():
            unfolded.append(line)
    return unfolded


def split_property(line: str) -> Tuple[str, Dict[str, str], str]:
    """Split `KEY;PARAM=V;...:VALUE` honouring quoted parameter values."""
    in_quotes = False
    colon_at = -1
    for index, char in enumerate(line):
        if char == '"':
            in_quotes = not in_quotes
        elif char == ":" and not in_quotes:
            colon_at = index
            break
    if colon_at == -1:
        return line.strip().upper(), {}, ""

    head, value = line[:colon_at], line[colon_at + 1:]
    parts = head.split(";")
    params: Dict[str, str] = {}
    for param in parts[1:]:
        if "=" in param:
            key, _, param_value = param.partition("=")
            params[key.strip().upper()] = param_value.strip().strip('"')
    return parts[0].strip().upper(), params, value


def unescape_text(value: str) -> str:
    """Decode TEXT escapes (\\n, \\, \\; and \\\\)."""
    return re.sub(
        r"\\([nN,;\\])",
        lambda m: "\n" if m.group(1) in "nN" else m.group(1),
        value,
    ).strip()


def parse_date_value(value: str, params: Dict[str, str]) -> Tuple[Optional[date], bool, Optional[str]]:
    """
    Reduce a DTSTART/DTEND value to a calendar date.

    Returns:
        (date or None, is_all_day, timezone hint)
    """
    is_all_day = params.get("VALUE", "").upper() == "DATE"
    timezone_hint = params.get("TZID")
    cleaned = value.strip()
    if not timezone_hint and cleaned.upper().endswith("Z"):
        timezone_hint = "UTC"
    if "T" not in cleaned.upper() and len(cleaned) == 8:
        is_all_day = True

    match = _DATE_PATTERN.search(cleaned)
    if not match:
        return None, is_all_day, timezone_hint
    try:
        parsed = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None, is_all_day, timezone_hint
    return parsed, is_all_day, timezone_hint


def parse_duration_days(value: str) -> Optional[int]:
    """
    Convert an ISO-8601 DURATION into whole nights.

    Hours, minutes and seconds count as fractions of a day and round up; a
    zero-length duration still books one night. Unparseable values return None.
    """
    match = _DURATION_PATTERN.match((value or "").strip())
    if not match or not any(match.groupdict().values()):
        return None
    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    total_days = (
        parts["weeks"] * 7
        + parts["days"]
        + parts["hours"] / 24
        + parts["minutes"] / 1440
        + parts["seconds"] / 86400
    )
    return max(1, math.ceil(total_days))


def normalize_status(value: Optional[str]) -> Optional[str]:
    """CANCELLED (or METHOD:CANCEL) maps to `cancelled`; other values pass through."""
    cleaned = (value or "").strip()
    if not cleaned:
        return None
    if cleaned.upper() in ("CANCELLED", "CANCEL"):
        return EventStatus.CANCELLED.value
    return cleaned


def fallback_uid(start: date, end: date, summary: str) -> str:
    """Stable identifier for events published without a UID."""
    digest = hashlib.sha256(f"{start.isoformat()}|{end.isoformat()}|{summary}".encode("utf-8")).hexdigest()
    return f"fallback-{digest[:32]}"


class FeedParser:
    """Parser for calendar feeds published by OTA channels."""

    def __init__(self):
        self.logger = get_logger("feed_parser")

    def parse(self, feed_text: str) -> List[ParsedEvent]:
        """
        Parse a calendar document into normalized events.

        Malformed events are dropped and logged; they never fail the feed.

        Args:
            feed_text: Raw iCalendar text

        Returns:
            List of ParsedEvent in document order
        """
        events: List[ParsedEvent] = []
        current: Optional[Dict[str, Any]] = None
        raw_buffer: List[str] = []

        for line in unfold_lines(feed_text):
            upper = line.strip().upper()
            if upper == "BEGIN:VEVENT":
                current = {}
                raw_buffer = [line]
                continue

            if upper == "END:VEVENT":
                if current is not None:
                    raw_buffer.append(line)
                    event = self._build_event(current, "\n".join(raw_buffer))
                    if event:
                        events.append(event)
                current = None
                raw_buffer = []
                continue

            if current is None:
                continue

            raw_buffer.append(line)
            key, params, value = split_property(line)
            if key not in CONSULTED_KEYS:
                continue
            # First occurrence wins; feeds sometimes repeat DESCRIPTION
            current.setdefault(key, (params, value))

        if current is not None:
            self.logger.warning("Unterminated VEVENT discarded", lines=len(raw_buffer))

        self.logger.debug("Feed parsed", events=len(events))
        return events

    def _build_event(self, fields: Dict[str, Any], raw: str) -> Optional[ParsedEvent]:
        """Apply date fallbacks, UID synthesis and classification to one event."""
        summary = unescape_text(fields.get("SUMMARY", ({}, ""))[1])
        description = unescape_text(fields.get("DESCRIPTION", ({}, ""))[1])

        start = end = None
        is_all_day = False
        timezone_hint = None

        if "DTSTART" in fields:
            params, value = fields["DTSTART"]
            start, all_day, timezone_hint = parse_date_value(value, params)
            is_all_day = is_all_day or all_day
        if "DTEND" in fields:
            params, value = fields["DTEND"]
            end, all_day, end_tz = parse_date_value(value, params)
            is_all_day = is_all_day or all_day
            timezone_hint = timezone_hint or end_tz

        if start and not end and "DURATION" in fields:
            nights = parse_duration_days(fields["DURATION"][1])
            if nights is not None:
                end = start + timedelta(days=nights)

        if start and not end:
            end = start + timedelta(days=1)
        elif end and not start:
            start = end - timedelta(days=1)

        if not start or not end:
            self.logger.warning("Event without usable dates dropped", summary=summary[:60])
            return None

        if end <= start:
            # Same-day timed events still occupy that night
            end = start + timedelta(days=1)

        uid = fields.get("UID", ({}, ""))[1].strip()
        uid_is_fallback = False
        if not uid:
            uid = fallback_uid(start, end, summary)
            uid_is_fallback = True
            self.logger.warning("Event without UID, using content hash", uid=uid, start=start.isoformat())

        status_source = fields.get("STATUS") or fields.get("METHOD") or ({}, "")
        status = normalize_status(status_source[1])

        return ParsedEvent(
            uid=uid,
            summary=summary,
            description=description,
            start_date=start,
            end_date=end,
            status=status,
            is_all_day=is_all_day,
            timezone_hint=timezone_hint,
            has_recurrence="RRULE" in fields,
            kind=EventKind.BLOCK if is_block_summary(summary) else EventKind.BOOKING,
            raw=raw,
            uid_is_fallback=uid_is_fallback,
        )
