"""
Dict-backed store for tests, dry runs and the CLI demo mode.
"""
import copy
from typing import Any, Dict, List, Optional

from .base import SyncStore
from ..utils.models import (
    RentalUnit, ChannelConnection, RawEvent, CanonicalBooking, ProvisionalBooking
)


class InMemoryStore(SyncStore):
    """Everything handed out is a copy; callers never alias stored state."""

    def __init__(self, settings: Optional[Dict[str, Any]] = None):
        self.units: Dict[str, RentalUnit] = {}
        self.connections: Dict[str, ChannelConnection] = {}
        self.raw_events: Dict[str, RawEvent] = {}
        self.bookings: Dict[str, CanonicalBooking] = {}
        self.provisionals: Dict[str, ProvisionalBooking] = {}
        self.settings: Dict[str, Any] = dict(settings or {})
        self.booking_writes = 0
        self.raw_event_writes = 0

    def add_unit(self, unit: RentalUnit) -> RentalUnit:
        self.units[unit.id] = copy.deepcopy(unit)
        return unit

    def get_units(self) -> List[RentalUnit]:
        return [copy.deepcopy(u) for u in self.units.values()]

    def get_unit(self, unit_id: str) -> Optional[RentalUnit]:
        unit = self.units.get(unit_id)
        return copy.deepcopy(unit) if unit else None

    def get_connections(self, unit_id: Optional[str] = None) -> List[ChannelConnection]:
        return [
            copy.deepcopy(c) for c in self.connections.values()
            if unit_id is None or c.unit_id == unit_id
        ]

    def get_connection(self, connection_id: str) -> Optional[ChannelConnection]:
        connection = self.connections.get(connection_id)
        return copy.deepcopy(connection) if connection else None

    def save_connection(self, connection: ChannelConnection) -> None:
        self.connections[connection.id] = copy.deepcopy(connection)

    def delete_connection(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)

    def get_raw_events(self, connection_id: str) -> List[RawEvent]:
        return [copy.deepcopy(e) for e in self.raw_events.values() if e.connection_id == connection_id]

    def save_raw_event(self, event: RawEvent) -> None:
        self.raw_event_writes += 1
        self.raw_events[event.id] = copy.deepcopy(event)

    def delete_raw_events(self, connection_id: str) -> None:
        for event_id in [k for k, e in self.raw_events.items() if e.connection_id == connection_id]:
            del self.raw_events[event_id]

    def get_bookings(self, unit_id: str) -> List[CanonicalBooking]:
        return [copy.deepcopy(b) for b in self.bookings.values() if b.unit_id == unit_id]

    def save_booking(self, booking: CanonicalBooking) -> None:
        self.booking_writes += 1
        self.bookings[booking.id] = copy.deepcopy(booking)

    def get_provisional_bookings(self) -> List[ProvisionalBooking]:
        return [copy.deepcopy(p) for p in self.provisionals.values()]

    def save_provisional_booking(self, provisional: ProvisionalBooking) -> None:
        self.provisionals[provisional.id] = copy.deepcopy(provisional)

    def get_settings(self) -> Dict[str, Any]:
        return dict(self.settings)
