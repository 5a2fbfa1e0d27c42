"""
Best-effort guest/amount scraping from feed free text.

Heuristic version 2:

* Guest name: the event summary with platform boilerplate removed. Leading
  labels ("Reserved - ", "Airbnb: ", "Booking.com - ", "Reserva - " ...) and
  reservation codes (``(HMABC123XY)``, ``#123456789``, ``- 4012345678``) are
  stripped. Whatever remains must not be a placeholder or closure term.
* Amount: the first currency-labeled figure in the description. Labeled
  forms (``Total: 450,00 EUR``, ``Price $1,200.50``, ``Importe: 1.234,56 €``)
  are preferred over bare currency figures (``€ 320``). Both European and US
  separators are understood; a lone separator followed by exactly three
  digits is read as a thousands separator.

Amounts found here enrich a booking; they are never the authoritative
financial record.
"""
import re
from typing import Optional

from .classifier import is_placeholder_guest_name


EXTRACTION_VERSION = 2

_PLATFORM_LABELS = (
    r"reserved",
    r"reservation",
    r"reserva(?:do)?",
    r"booked",
    r"airbnb",
    r"booking(?:\.com)?",
    r"vrbo",
    r"homeaway",
    r"expedia",
    r"guest",
    r"huésped",
)

_LEADING_LABEL = re.compile(
    r"^\s*(?:" + "|".join(_PLATFORM_LABELS) + r")\s*(?:[-:|–]\s*|\(\s*|$)",
    re.IGNORECASE,
)

_RESERVATION_CODE = re.compile(
    r"\(\s*[A-Z0-9]{6,}\s*\)"      # (HMABC123XY)
    r"|#\s*\d{5,}"                  # #123456789
    r"|\s[-–]\s*[A-Z]{0,3}\d{6,}\b"  # - 4012345678 / - HM1234567
)

_CODE_ONLY = re.compile(r"^(?=[A-Z]*\d)[A-Z0-9]{6,}$")

_CURRENCY = r"(?:€|\$|£|(?<![A-Za-z])(?:EUR|USD|GBP)(?![A-Za-z]))"
_NUMBER = r"\d[\d.,]*\d|\d"

_LABELED_AMOUNT = re.compile(
    r"(?:total(?:\s+price)?|amount|price|payout|importe|precio|montant|betrag)"
    r"\s*[:=]?\s*"
    rf"(?:{_CURRENCY}\s*(?P<number>{_NUMBER})|(?P<number_after>{_NUMBER})\s*{_CURRENCY})",
    re.IGNORECASE,
)

_CURRENCY_AMOUNT = re.compile(
    rf"{_CURRENCY}\s*(?P<number>{_NUMBER})|(?P<number_after>{_NUMBER})\s*{_CURRENCY}",
    re.IGNORECASE,
)


def extract_guest_name(summary: Optional[str]) -> Optional[str]:
    """Guest name from an event summary, or None when nothing identifies a guest."""
    text = (summary or "").strip()
    if not text:
        return None

    text = _RESERVATION_CODE.sub("", text).strip()

    # Labels can be stacked: "Airbnb - Reserved - Ana"
    previous = None
    while previous != text:
        previous = text
        text = _LEADING_LABEL.sub("", text, count=1).strip()

    text = _RESERVATION_CODE.sub("", text)
    text = text.strip(" -–:|()[]")
    text = " ".join(text.split())

    if not text or _CODE_ONLY.match(text) or is_placeholder_guest_name(text):
        return None
    return text


def parse_number(raw: str) -> Optional[float]:
    """Parse a figure written with European or US separators."""
    text = raw.strip().rstrip(".,")
    if not text:
        return None

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    else:
        for separator in (",", "."):
            if separator not in text:
                continue
            tail = text.rsplit(separator, 1)[1]
            if text.count(separator) > 1 or len(tail) == 3:
                text = text.replace(separator, "")
            else:
                text = text.replace(separator, ".")

    try:
        return float(text)
    except ValueError:
        return None


def extract_amount(description: Optional[str]) -> Optional[float]:
    """First currency-labeled amount in the text, rounded to cents; None if absent."""
    text = description or ""
    if not text:
        return None

    match = _LABELED_AMOUNT.search(text) or _CURRENCY_AMOUNT.search(text)
    if not match:
        return None
    raw = match.group("number") or match.group("number_after")

    value = parse_number(raw)
    if value is None or value <= 0:
        return None
    return round(value, 2)
