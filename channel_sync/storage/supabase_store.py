"""
Supabase-backed store for units, connections, raw events and bookings.
"""
from datetime import datetime, date
from typing import Optional, Dict, Any, List

from supabase import create_client

from .base import SyncStore
from ..utils.models import (
    RentalUnit, ChannelConnection, RawEvent, CanonicalBooking, ProvisionalBooking
)
from ..utils.exceptions import StorageError
from ..utils.logger import get_logger
from config.settings import supabase_config, app_config


class SupabaseStore(SyncStore):
    """Supabase table client for the channel sync ledger."""

    def __init__(self, client=None):
        self.logger = get_logger("supabase_store")
        self.client = client
        self.initialized = client is not None

    def initialize(self) -> bool:
        """Initialize Supabase client from environment configuration."""
        if self.initialized:
            return True

        auth_key = supabase_config.get_auth_key()
        if not supabase_config.url or not auth_key:
            self.logger.error("Supabase configuration missing", url=bool(supabase_config.url))
            return False

        try:
            self.client = create_client(supabase_config.url, auth_key)
        except Exception as e:
            self.logger.error("Failed to initialize Supabase client", error=str(e))
            return False

        self.initialized = True
        self.logger.info("Supabase client initialized successfully", url=supabase_config.url)
        return True

    def _table(self, name: str):
        if not self.initialized and not self.initialize():
            raise StorageError("Supabase client not initialized")
        return self.client.table(name)

    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively convert dates and datetimes to ISO strings."""

        def serialize_value(value):
            if isinstance(value, (datetime, date)):
                return value.isoformat()
            if isinstance(value, dict):
                return {k: serialize_value(v) for k, v in value.items()}
            if isinstance(value, list):
                return [serialize_value(v) for v in value]
            return value

        return {k: serialize_value(v) for k, v in payload.items()}

    def _select(self, table: str, **filters) -> List[Dict[str, Any]]:
        try:
            query = self._table(table).select("*")
            for column, value in filters.items():
                query = query.eq(column, value)
            resp = query.execute()
            return getattr(resp, "data", None) or []
        except StorageError:
            raise
        except Exception as e:
            self.logger.error("Supabase select failed", table=table, filters=filters, error=str(e))
            raise StorageError(f"Failed to read {table}: {e}") from e

    def _upsert(self, table: str, payload: Dict[str, Any]) -> None:
        try:
            self._table(table).upsert(self._serialize_payload(payload), on_conflict="id").execute()
        except StorageError:
            raise
        except Exception as e:
            self.logger.error("Supabase upsert failed", table=table, record_id=payload.get("id"), error=str(e))
            raise StorageError(f"Failed to write {table}: {e}") from e

    def _delete(self, table: str, column: str, value: str) -> None:
        try:
            self._table(table).delete().eq(column, value).execute()
        except StorageError:
            raise
        except Exception as e:
            self.logger.error("Supabase delete failed", table=table, column=column, value=value, error=str(e))
            raise StorageError(f"Failed to delete from {table}: {e}") from e

    # Units
    def get_units(self) -> List[RentalUnit]:
        return [RentalUnit.from_dict(row) for row in self._select(app_config.units_collection)]

    def get_unit(self, unit_id: str) -> Optional[RentalUnit]:
        rows = self._select(app_config.units_collection, id=unit_id)
        return RentalUnit.from_dict(rows[0]) if rows else None

    # Connections
    def get_connections(self, unit_id: Optional[str] = None) -> List[ChannelConnection]:
        filters = {"unit_id": unit_id} if unit_id else {}
        rows = self._select(app_config.connections_collection, **filters)
        return [ChannelConnection.from_dict(row) for row in rows]

    def get_connection(self, connection_id: str) -> Optional[ChannelConnection]:
        rows = self._select(app_config.connections_collection, id=connection_id)
        return ChannelConnection.from_dict(rows[0]) if rows else None

    def save_connection(self, connection: ChannelConnection) -> None:
        self._upsert(app_config.connections_collection, connection.to_dict())

    def delete_connection(self, connection_id: str) -> None:
        self._delete(app_config.connections_collection, "id", connection_id)
        self.logger.info("Connection deleted", connection_id=connection_id)

    # Raw events
    def get_raw_events(self, connection_id: str) -> List[RawEvent]:
        rows = self._select(app_config.events_collection, connection_id=connection_id)
        return [RawEvent.from_dict(row) for row in rows]

    def get_unit_raw_events(self, unit_id: str) -> List[RawEvent]:
        rows = self._select(app_config.events_collection, unit_id=unit_id)
        return [RawEvent.from_dict(row) for row in rows]

    def save_raw_event(self, event: RawEvent) -> None:
        self._upsert(app_config.events_collection, event.to_dict())

    def delete_raw_events(self, connection_id: str) -> None:
        self._delete(app_config.events_collection, "connection_id", connection_id)

    # Bookings
    def get_bookings(self, unit_id: str) -> List[CanonicalBooking]:
        rows = self._select(app_config.bookings_collection, unit_id=unit_id)
        return [CanonicalBooking.from_dict(row) for row in rows]

    def save_booking(self, booking: CanonicalBooking) -> None:
        self._upsert(app_config.bookings_collection, booking.to_dict())

    # Provisional bookings
    def get_provisional_bookings(self) -> List[ProvisionalBooking]:
        rows = self._select(app_config.provisional_collection)
        return [ProvisionalBooking.from_dict(row) for row in rows]

    def save_provisional_booking(self, provisional: ProvisionalBooking) -> None:
        self._upsert(app_config.provisional_collection, provisional.to_dict())

    def get_settings(self) -> Dict[str, Any]:
        rows = self._select(app_config.settings_collection)
        return dict(rows[0]) if rows else {}
