"""
Pure predicates separating real guest bookings from anonymous blocks.
"""
from datetime import date
from typing import Iterable, Optional

from ..feed_parser.parser import is_block_summary
from ..utils.models import CanonicalBooking, EventKind, EventState


PLACEHOLDER_GUEST_NAMES = frozenset({
    "",
    "blocked",
    "unavailable",
    "not available",
    "occupied",
    "reserved",
    "reservation",
    "booked",
    "guest",
    "unknown",
    "n/a",
    "tbd",
    "airbnb",
    "booking.com",
    "vrbo",
    "bloqueado",
    "no disponible",
    "ocupado",
    "reservado",
    "reserva",
    "huésped",
    "cierre",
    "bloqueo",
    "sin nombre",
})


def normalize(value: Optional[str]) -> str:
    return " ".join((value or "").split()).lower()


def is_placeholder_guest_name(name: Optional[str]) -> bool:
    normalized = normalize(name)
    return normalized in PLACEHOLDER_GUEST_NAMES or is_block_summary(normalized)


def has_real_guest(guest_name: Optional[str]) -> bool:
    return not is_placeholder_guest_name(guest_name)


def has_positive_amount(total_price: Optional[float]) -> bool:
    return (total_price or 0) > 0


def is_confirmed_booking(
    guest_name: Optional[str],
    total_price: Optional[float],
    kind: EventKind,
    state: EventState = EventState.CONFIRMED,
) -> bool:
    """A non-block, non-provisional record with a guest identity or an amount."""
    if kind == EventKind.BLOCK or state == EventState.PROVISIONAL:
        return False
    return has_real_guest(guest_name) or has_positive_amount(total_price)


def is_provisional_block(
    guest_name: Optional[str],
    total_price: Optional[float],
    kind: EventKind,
    state: EventState = EventState.CONFIRMED,
) -> bool:
    if kind == EventKind.BLOCK or state == EventState.PROVISIONAL:
        return True
    return not has_real_guest(guest_name) and not has_positive_amount(total_price)


def is_booking_confirmed(booking: CanonicalBooking) -> bool:
    """`is_confirmed_booking` applied to a canonical record."""
    return is_confirmed_booking(booking.guest_name, booking.total_price, booking.event_kind, booking.event_state)


def overlaps(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    """Half-open range overlap; the checkout day is not occupied."""
    return start_a < end_b and end_a > start_b


def is_covered(block: CanonicalBooking, confirmed: Iterable[CanonicalBooking]) -> bool:
    """True when the block overlaps any confirmed booking of the same unit."""
    if not block.check_in or not block.check_out:
        return False
    return any(
        other.unit_id == block.unit_id
        and overlaps(block.check_in, block.check_out, other.check_in, other.check_out)
        for other in confirmed
    )
