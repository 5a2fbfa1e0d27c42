"""
Reconciliation of channel signals into canonical bookings.
"""

from .priority import CHANNEL_PRIORITIES, FALLBACK_PRIORITY, normalize_channel, get_channel_priority, resolve_priority
from .classifier import (
    has_real_guest, has_positive_amount, is_confirmed_booking, is_provisional_block,
    is_booking_confirmed, overlaps, is_covered
)
from .extraction import EXTRACTION_VERSION, extract_guest_name, extract_amount
from .engine import ReconciliationEngine, classify_failure

__all__ = [
    'CHANNEL_PRIORITIES', 'FALLBACK_PRIORITY', 'normalize_channel', 'get_channel_priority', 'resolve_priority',
    'has_real_guest', 'has_positive_amount', 'is_confirmed_booking', 'is_provisional_block',
    'is_booking_confirmed', 'overlaps', 'is_covered',
    'EXTRACTION_VERSION', 'extract_guest_name', 'extract_amount',
    'ReconciliationEngine', 'classify_failure'
]
