"""
Utility modules for the channel sync engine.
"""

from .models import (
    Channel, ConnectionType, SyncStatus, EventStatus, EventKind, BookingStatus,
    EventState, ProvisionalStatus, BookingField, FieldSource, CancellationPolicyType,
    SyncInterval, RentalUnit, ChannelConnection, ParsedEvent, RawEvent, CanonicalBooking,
    ProvisionalBooking, CancellationRule, CancellationPolicy, CancellationOutcome,
    PullResult, SyncResult, utc_now
)
from .logger import setup_logger, get_logger, SyncLogger, ICalDebugLog
from .network import NetworkMonitor

__all__ = [
    'Channel', 'ConnectionType', 'SyncStatus', 'EventStatus', 'EventKind', 'BookingStatus',
    'EventState', 'ProvisionalStatus', 'BookingField', 'FieldSource', 'CancellationPolicyType',
    'SyncInterval', 'RentalUnit', 'ChannelConnection', 'ParsedEvent', 'RawEvent', 'CanonicalBooking',
    'ProvisionalBooking', 'CancellationRule', 'CancellationPolicy', 'CancellationOutcome',
    'PullResult', 'SyncResult', 'utc_now',
    'setup_logger', 'get_logger', 'SyncLogger', 'ICalDebugLog', 'NetworkMonitor'
]
