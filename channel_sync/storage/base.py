"""
Storage contract consumed by the reconciliation engine.
"""
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..utils.models import (
    RentalUnit, ChannelConnection, RawEvent, CanonicalBooking, ProvisionalBooking
)


class SyncStore(ABC):
    """CRUD over units, connections, raw events, bookings and provisional bookings."""

    # Units
    @abstractmethod
    def get_units(self) -> List[RentalUnit]:
        pass

    @abstractmethod
    def get_unit(self, unit_id: str) -> Optional[RentalUnit]:
        pass

    # Connections
    @abstractmethod
    def get_connections(self, unit_id: Optional[str] = None) -> List[ChannelConnection]:
        pass

    @abstractmethod
    def get_connection(self, connection_id: str) -> Optional[ChannelConnection]:
        pass

    @abstractmethod
    def save_connection(self, connection: ChannelConnection) -> None:
        pass

    @abstractmethod
    def delete_connection(self, connection_id: str) -> None:
        pass

    # Raw events
    @abstractmethod
    def get_raw_events(self, connection_id: str) -> List[RawEvent]:
        pass

    @abstractmethod
    def save_raw_event(self, event: RawEvent) -> None:
        pass

    @abstractmethod
    def delete_raw_events(self, connection_id: str) -> None:
        pass

    def get_unit_raw_events(self, unit_id: str) -> List[RawEvent]:
        """Raw events across every connection of a unit."""
        events: List[RawEvent] = []
        for connection in self.get_connections(unit_id):
            events.extend(self.get_raw_events(connection.id))
        return events

    # Canonical bookings
    @abstractmethod
    def get_bookings(self, unit_id: str) -> List[CanonicalBooking]:
        pass

    @abstractmethod
    def save_booking(self, booking: CanonicalBooking) -> None:
        pass

    # Provisional bookings
    @abstractmethod
    def get_provisional_bookings(self) -> List[ProvisionalBooking]:
        pass

    @abstractmethod
    def save_provisional_booking(self, provisional: ProvisionalBooking) -> None:
        pass

    # Settings / collaborators
    @abstractmethod
    def get_settings(self) -> Dict[str, Any]:
        pass

    def generate_locator(self) -> str:
        """Short human-facing booking reference."""
        return f"LOC-{uuid.uuid4().hex[:8].upper()}"
