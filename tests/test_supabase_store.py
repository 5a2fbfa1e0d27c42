"""
Unit tests for the Supabase store.
"""
import pytest
from unittest.mock import Mock, patch
from datetime import date, datetime, timezone

from channel_sync.storage.supabase_store import SupabaseStore
from channel_sync.utils.models import (
    ChannelConnection, CanonicalBooking, SyncStatus, BookingField, FieldSource
)
from channel_sync.utils.exceptions import StorageError


@pytest.fixture
def store():
    return SupabaseStore(client=Mock())


def _mock_table(mock_client, rows=None):
    table = Mock()
    mock_client.table.return_value = table
    table.select.return_value = table
    table.eq.return_value = table
    table.upsert.return_value = table
    table.delete.return_value = table

    res = Mock()
    res.data = rows or []
    table.execute.return_value = res
    return table


def test_get_unit_found(store):
    table = _mock_table(store.client, [{'id': 'unit-1', 'name': 'Sea View'}])

    unit = store.get_unit('unit-1')

    assert unit.name == 'Sea View'
    store.client.table.assert_called_with('units')
    table.eq.assert_called_once_with('id', 'unit-1')


def test_get_unit_missing(store):
    _mock_table(store.client, [])
    assert store.get_unit('missing') is None


def test_get_connections_filters_by_unit(store):
    table = _mock_table(store.client, [{
        'id': 'conn-1',
        'unit_id': 'unit-1',
        'channel': 'AIRBNB',
        'feed_url': 'https://www.airbnb.com/calendar/ical/1.ics',
        'last_status': 'BLOCKED',
        'last_sync': '2025-05-01T12:00:00Z',
    }])

    connections = store.get_connections('unit-1')

    assert len(connections) == 1
    assert connections[0].last_status == SyncStatus.BLOCKED
    assert connections[0].last_sync == datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
    table.eq.assert_called_once_with('unit_id', 'unit-1')


def test_get_all_connections_has_no_filter(store):
    table = _mock_table(store.client, [])
    store.get_connections()
    table.eq.assert_not_called()


def test_save_booking_serializes_dates(store):
    table = _mock_table(store.client)
    booking = CanonicalBooking(
        id='booking-1',
        unit_id='unit-1',
        check_in=date(2025, 6, 1),
        check_out=date(2025, 6, 5),
        field_sources={BookingField.TOTAL_PRICE: FieldSource.MANUAL},
        updated_at=datetime(2025, 5, 1, tzinfo=timezone.utc),
    )

    store.save_booking(booking)

    payload = table.upsert.call_args[0][0]
    assert payload['check_in'] == '2025-06-01'
    assert payload['updated_at'] == '2025-05-01T00:00:00+00:00'
    assert payload['field_sources'] == {'total_price': 'MANUAL'}
    assert table.upsert.call_args[1] == {'on_conflict': 'id'}
    store.client.table.assert_called_with('bookings')


def test_get_bookings_round_trips_field_sources(store):
    _mock_table(store.client, [{
        'id': 'booking-1',
        'unit_id': 'unit-1',
        'check_in': '2025-06-01',
        'check_out': '2025-06-05',
        'status': 'confirmed',
        'total_price': '450.00',
        'field_sources': {'total_price': 'MANUAL'},
    }])

    booking = store.get_bookings('unit-1')[0]

    assert booking.total_price == 450.0
    assert booking.is_manual(BookingField.TOTAL_PRICE)
    assert booking.check_in == date(2025, 6, 1)


def test_delete_raw_events_by_connection(store):
    table = _mock_table(store.client)

    store.delete_raw_events('conn-1')

    store.client.table.assert_called_with('calendar_events')
    table.delete.assert_called_once()
    table.eq.assert_called_once_with('connection_id', 'conn-1')


def test_unit_raw_events_single_query(store):
    table = _mock_table(store.client, [{
        'id': 'raw-1',
        'connection_id': 'conn-1',
        'external_uid': 'abc',
        'unit_id': 'unit-1',
        'start_date': '2025-06-01',
        'end_date': '2025-06-05',
        'status': 'cancelled',
        'kind': 'BLOCK',
    }])

    events = store.get_unit_raw_events('unit-1')

    assert events[0].is_active is False
    table.eq.assert_called_once_with('unit_id', 'unit-1')


def test_settings_first_row(store):
    _mock_table(store.client, [{'enable_minimal_bookings_from_ical': True}])
    assert store.get_settings() == {'enable_minimal_bookings_from_ical': True}


def test_settings_empty(store):
    _mock_table(store.client, [])
    assert store.get_settings() == {}


def test_backend_failure_raises_storage_error(store):
    table = _mock_table(store.client)
    table.execute.side_effect = Exception("connection reset")

    with pytest.raises(StorageError):
        store.save_connection(ChannelConnection(id='c', unit_id='u', channel='AIRBNB', feed_url='https://x'))


@patch('channel_sync.storage.supabase_store.supabase_config')
def test_missing_configuration(mock_config):
    mock_config.url = ""
    mock_config.get_auth_key.return_value = ""
    store = SupabaseStore()

    assert store.initialize() is False
    with pytest.raises(StorageError):
        store.get_units()


@patch('channel_sync.storage.supabase_store.create_client')
@patch('channel_sync.storage.supabase_store.supabase_config')
def test_lazy_initialization(mock_config, mock_create_client):
    mock_config.url = "https://project.supabase.co"
    mock_config.get_auth_key.return_value = "service-key"
    _mock_table(mock_create_client.return_value, [])
    store = SupabaseStore()

    assert store.get_units() == []
    mock_create_client.assert_called_once_with("https://project.supabase.co", "service-key")
    assert store.initialized is True
