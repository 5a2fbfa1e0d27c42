"""
Channel priority lookup used as the reconciliation tie-breaker.
"""
from typing import Optional

from ..utils.models import Channel, ChannelConnection


FALLBACK_PRIORITY = 10
MIN_OVERRIDE = 0
MAX_OVERRIDE = 100

CHANNEL_PRIORITIES = {
    Channel.MANUAL.value: 1000,
    Channel.CALENDAR.value: 1000,
    Channel.BOOKING.value: 90,
    Channel.AIRBNB.value: 80,
    Channel.WEBSITE.value: 60,
    Channel.AGENCY.value: 50,
    Channel.VRBO.value: 40,
    Channel.PENDING_SYNC.value: 20,
    Channel.OTHER.value: 10,
    Channel.ICAL.value: 10,
}

# Spellings operators and feeds actually use
CHANNEL_ALIASES = {
    "BOOKING.COM": Channel.BOOKING.value,
    "BOOKINGCOM": Channel.BOOKING.value,
    "AIR BNB": Channel.AIRBNB.value,
    "HOMEAWAY": Channel.VRBO.value,
    "ABRITEL": Channel.VRBO.value,
    "DIRECT": Channel.WEBSITE.value,
    "WEB": Channel.WEBSITE.value,
    "MANUAL BLOCK": Channel.MANUAL.value,
}


def normalize_channel(channel: Optional[str]) -> str:
    """Upper-case, trimmed channel key with known aliases folded in."""
    key = " ".join((channel or "").split()).upper()
    return CHANNEL_ALIASES.get(key, key)


def get_channel_priority(channel: Optional[str]) -> int:
    """Default priority for a channel identity; unknown channels get the fallback."""
    return CHANNEL_PRIORITIES.get(normalize_channel(channel), FALLBACK_PRIORITY)


def resolve_priority(connection: ChannelConnection) -> int:
    """Connection override (clamped to 0-100) or the channel default."""
    if connection.priority is not None:
        return max(MIN_OVERRIDE, min(MAX_OVERRIDE, int(connection.priority)))
    return get_channel_priority(connection.channel)
