"""
Tests for the reconciliation engine: ingestion, the canonical fold and cancellations.
"""
import itertools
import pytest
from datetime import date, datetime, timezone

from channel_sync.feed_parser.parser import FeedParser
from channel_sync.reconciliation.engine import (
    ReconciliationEngine, classify_failure, MINIMAL_BOOKINGS_SETTING
)
from channel_sync.storage.memory_store import InMemoryStore
from channel_sync.transport.base import ChannelAdapter
from channel_sync.transport.api_adapter import FutureApiAdapter
from channel_sync.transport.factory import AdapterFactory
from channel_sync.utils.logger import ICalDebugLog
from channel_sync.utils.models import (
    RentalUnit, ChannelConnection, CanonicalBooking, ProvisionalBooking, PullResult,
    SyncStatus, EventStatus, EventKind, BookingStatus, EventState, ProvisionalStatus,
    BookingField, FieldSource, Channel
)
from channel_sync.utils.exceptions import (
    OfflineError, TransportError, FeedHTTPError, AntiBotBlockedError, TokenExpiredError,
    PushNotSupportedError
)


NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
UNIT_ID = "unit-1"


def feed(*events: str) -> str:
    body = "\r\n".join(events)
    return f"BEGIN:VCALENDAR\r\nVERSION:2.0\r\n{body}\r\nEND:VCALENDAR\r\n"


def event(uid, start, end, summary="", description="", status=None):
    lines = ["BEGIN:VEVENT", f"UID:{uid}", f"DTSTART;VALUE=DATE:{start}", f"DTEND;VALUE=DATE:{end}"]
    if summary:
        lines.append(f"SUMMARY:{summary}")
    if description:
        lines.append(f"DESCRIPTION:{description}")
    if status:
        lines.append(f"STATUS:{status}")
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


class FakeAdapter(ChannelAdapter):
    """Serves canned feed text, results or failures per connection id."""

    def __init__(self):
        self.feeds = {}
        self.calls = []
        self.parser = FeedParser()

    def pull_reservations(self, connection):
        self.calls.append(connection.id)
        response = self.feeds[connection.id]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, PullResult):
            return response
        return PullResult(events=self.parser.parse(response), log="Download OK")

    def push_availability(self, connection, availability):
        raise PushNotSupportedError("read-only")

    def push_rates(self, connection, rates):
        raise PushNotSupportedError("read-only")

    def get_sync_status(self, connection):
        return SyncStatus.OK


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add_unit(RentalUnit(id=UNIT_ID, name="Sea View"))
    return store


@pytest.fixture
def adapter():
    return FakeAdapter()


def make_engine(store, adapter, minimal_bookings=False):
    counter = itertools.count(1)
    return ReconciliationEngine(
        store,
        AdapterFactory(ical_adapter=adapter, api_adapter=FutureApiAdapter()),
        clock=lambda: NOW,
        minimal_bookings=minimal_bookings,
        debug_log=ICalDebugLog(),
        id_factory=lambda: f"id-{next(counter)}",
    )


@pytest.fixture
def engine(store, adapter):
    return make_engine(store, adapter)


def add_connection(store, connection_id, channel, priority=None, alias=None, **kwargs):
    connection = ChannelConnection(
        id=connection_id,
        unit_id=UNIT_ID,
        channel=channel,
        feed_url=f"https://feeds.example.com/{connection_id}.ics",
        alias=alias,
        priority=priority,
        **kwargs
    )
    store.save_connection(connection)
    return connection


def active_bookings(store):
    return [b for b in store.get_bookings(UNIT_ID) if b.status != BookingStatus.CANCELLED]


def booking_for(store, external_ref):
    return next(b for b in store.get_bookings(UNIT_ID) if b.external_ref == external_ref)


class TestClassifyFailure:
    """Test cases for mapping failures onto connection statuses."""

    @pytest.mark.parametrize("error,expected", [
        (OfflineError(), SyncStatus.OFFLINE),
        (AntiBotBlockedError("captcha"), SyncStatus.BLOCKED),
        (TokenExpiredError("expired"), SyncStatus.TOKEN_EXPIRED),
        (TransportError("Calendar link expired, generate a new one"), SyncStatus.TOKEN_EXPIRED),
        (FeedHTTPError(401, "HTTP 401: Unauthorized"), SyncStatus.INVALID_TOKEN),
        (FeedHTTPError(500, "HTTP 500: boom"), SyncStatus.ERROR),
        (ValueError("unexpected"), SyncStatus.ERROR),
    ])
    def test_classification(self, error, expected):
        assert classify_failure(error) == expected


class TestIngestion:
    """Test cases for pulling feeds into raw events."""

    def test_sync_creates_raw_events_and_bookings(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(
            event("a-1", "20250601", "20250605", "John Smith", "Total: 450\\,00 EUR"),
        )

        result = engine.sync_unit(UNIT_ID)

        assert result.processed == 1
        assert result.errors == []
        raw = store.get_raw_events("conn-airbnb")
        assert len(raw) == 1
        assert raw[0].status == EventStatus.CONFIRMED

        booking = booking_for(store, "a-1")
        assert booking.guest_name == "John Smith"
        assert booking.total_price == 450.0
        assert booking.source == Channel.AIRBNB.value
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.connection_id == "conn-airbnb"
        assert booking.field_sources[BookingField.GUEST_NAME] == FieldSource.SYSTEM

        connection = store.get_connection("conn-airbnb")
        assert connection.last_status == SyncStatus.OK
        assert connection.last_sync == NOW
        assert connection.sync_log == "Download OK"

    def test_resync_of_identical_feed_writes_nothing(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(
            event("a-1", "20250601", "20250605", "John Smith"),
            event("a-2", "20250610", "20250612", "Not available"),
        )
        engine.sync_unit(UNIT_ID)
        store.raw_event_writes = 0
        store.booking_writes = 0

        engine.sync_unit(UNIT_ID)

        assert store.raw_event_writes == 0
        assert store.booking_writes == 0
        assert len(store.get_bookings(UNIT_ID)) == 2

    def test_changed_dates_update_existing_booking(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))
        engine.sync_unit(UNIT_ID)

        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250606", "John Smith"))
        engine.sync_unit(UNIT_ID)

        bookings = store.get_bookings(UNIT_ID)
        assert len(bookings) == 1
        assert bookings[0].check_out == date(2025, 6, 6)
        assert len(store.get_raw_events("conn-airbnb")) == 1

    def test_vanished_event_is_cancelled(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))
        engine.sync_unit(UNIT_ID)

        adapter.feeds["conn-airbnb"] = feed()
        engine.sync_unit(UNIT_ID)

        assert store.get_raw_events("conn-airbnb")[0].status == EventStatus.CANCELLED
        assert booking_for(store, "a-1").status == BookingStatus.CANCELLED

    def test_explicitly_cancelled_event(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))
        engine.sync_unit(UNIT_ID)

        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith", status="CANCELLED"))
        engine.sync_unit(UNIT_ID)

        assert booking_for(store, "a-1").status == BookingStatus.CANCELLED

    def test_unchanged_pull_keeps_bookings(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))
        engine.sync_unit(UNIT_ID)

        adapter.feeds["conn-airbnb"] = PullResult(log="No changes (304 Not Modified - direct)", unchanged=True)
        engine.sync_unit(UNIT_ID)

        assert booking_for(store, "a-1").status == BookingStatus.CONFIRMED
        assert store.get_raw_events("conn-airbnb")[0].is_active
        assert store.get_connection("conn-airbnb").sync_log.startswith("No changes")

    def test_duplicate_uids_in_one_feed(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(
            event("a-1", "20250601", "20250605", "John Smith"),
            event("a-1", "20250601", "20250605", "John Smith"),
        )

        engine.sync_unit(UNIT_ID)

        assert len(store.get_raw_events("conn-airbnb")) == 1

    def test_disabled_connection_is_not_pulled(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB", enabled=False)

        result = engine.sync_unit(UNIT_ID)

        assert adapter.calls == []
        assert result.processed == 0


class TestConflicts:
    """Test cases for priority ordering and conflict detection."""

    def test_overlapping_real_bookings_are_both_flagged(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING", priority=90)
        add_connection(store, "conn-airbnb", "AIRBNB", priority=50)
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250601", "20250605", "Reserved - John Smith"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250603", "20250607", "Maria Lopez"))

        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 1
        booking_com = booking_for(store, "b-1")
        airbnb = booking_for(store, "a-1")
        assert booking_com.guest_name == "John Smith"
        assert booking_com.conflict_detected is True
        assert airbnb.conflict_detected is True
        assert booking_com.status == BookingStatus.CONFIRMED
        assert airbnb.status == BookingStatus.CONFIRMED

    def test_adjacent_bookings_do_not_conflict(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250601", "20250605", "John Smith"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250605", "20250607", "Maria Lopez"))

        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 0
        assert not any(b.conflict_detected for b in store.get_bookings(UNIT_ID))

    def test_block_over_booking_is_not_a_conflict(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250603", "20250604", "CLOSED - Not available"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))

        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 0
        block = booking_for(store, "b-1")
        assert block.event_kind == EventKind.BLOCK
        assert block.source == Channel.CALENDAR.value
        assert block.conflict_detected is False
        assert booking_for(store, "a-1").conflict_detected is False

    def test_reservation_code_summary_is_a_block(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250601", "20250605", "Jane Doe"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved (HM12345678)"))

        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 0
        anonymous = booking_for(store, "a-1")
        assert anonymous.event_kind == EventKind.BLOCK
        assert anonymous.source == Channel.CALENDAR.value
        assert anonymous.guest_name is None
        assert booking_for(store, "b-1").conflict_detected is False

    def test_tentative_event_is_pending_and_not_a_conflict(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250601", "20250605", "John Smith"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250602", "20250604", "Maria Lopez", status="TENTATIVE"))

        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 0
        tentative = booking_for(store, "a-1")
        assert tentative.status == BookingStatus.PENDING
        assert tentative.event_state == EventState.PROVISIONAL

    def test_manual_booking_conflicts_with_feed_booking(self, store, adapter, engine):
        store.save_booking(CanonicalBooking(
            id="manual-1",
            unit_id=UNIT_ID,
            check_in=date(2025, 6, 1),
            check_out=date(2025, 6, 5),
            guest_name="Owner Friend",
        ))
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250603", "20250607", "John Smith"))

        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 1
        manual = next(b for b in store.get_bookings(UNIT_ID) if b.id == "manual-1")
        assert manual.conflict_detected is True
        assert manual.status == BookingStatus.CONFIRMED
        assert booking_for(store, "a-1").conflict_detected is True

    def test_conflict_clears_when_overlap_disappears(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250601", "20250605", "John Smith"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250603", "20250607", "Maria Lopez"))
        engine.sync_unit(UNIT_ID)

        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250605", "20250607", "Maria Lopez"))
        result = engine.sync_unit(UNIT_ID)

        assert result.conflicts == 0
        assert not any(b.conflict_detected for b in store.get_bookings(UNIT_ID))


class TestManualProtection:
    """Test cases for operator-owned fields."""

    def test_manual_price_survives_resync(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith", "Total: 450 EUR"))
        engine.sync_unit(UNIT_ID)

        booking = booking_for(store, "a-1")
        booking.total_price = 999.0
        booking.mark_manual(BookingField.TOTAL_PRICE)
        store.save_booking(booking)

        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith Jr", "Total: 500 EUR"))
        engine.sync_unit(UNIT_ID)

        updated = booking_for(store, "a-1")
        assert updated.total_price == 999.0
        assert updated.field_sources[BookingField.TOTAL_PRICE] == FieldSource.MANUAL
        assert updated.guest_name == "John Smith Jr"

    def test_manual_status_blocks_cancellation(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))
        engine.sync_unit(UNIT_ID)

        booking = booking_for(store, "a-1")
        booking.mark_manual(BookingField.STATUS)
        store.save_booking(booking)

        adapter.feeds["conn-airbnb"] = feed()
        engine.sync_unit(UNIT_ID)

        assert booking_for(store, "a-1").status == BookingStatus.CONFIRMED


class TestFailures:
    """Test cases for per-connection failure isolation."""

    def test_failing_connection_does_not_stop_others(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING", alias="Booking Main")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = AntiBotBlockedError("Booking.com returned a web page", channel="BOOKING")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))

        result = engine.sync_unit(UNIT_ID)

        assert result.processed == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Booking Main:")
        failed = store.get_connection("conn-booking")
        assert failed.last_status == SyncStatus.BLOCKED
        assert failed.sync_log.startswith("ERROR:")
        assert failed.last_sync == NOW
        assert booking_for(store, "a-1").status == BookingStatus.CONFIRMED

    def test_expired_token_skipped_by_scheduled_cycles(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB", alias="Airbnb Main", last_status=SyncStatus.TOKEN_EXPIRED)
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))

        result = engine.sync_unit(UNIT_ID, automated=True)

        assert adapter.calls == []
        assert result.errors == ["Airbnb Main: skipped (TOKEN_EXPIRED), manual sync required"]

    def test_expired_token_retried_by_manual_sync(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB", last_status=SyncStatus.INVALID_TOKEN)
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "John Smith"))

        result = engine.sync_unit(UNIT_ID, automated=False)

        assert adapter.calls == ["conn-airbnb"]
        assert result.processed == 1
        assert store.get_connection("conn-airbnb").last_status == SyncStatus.OK

    def test_unknown_unit_reconciles_nothing(self, engine):
        assert engine.reconcile_unit("missing") == 0


class TestDeleteConnection:
    """Test cases for removing a connection."""

    def test_delete_cancels_its_bookings(self, store, adapter, engine):
        add_connection(store, "conn-booking", "BOOKING")
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-booking"] = feed(event("b-1", "20250601", "20250605", "John Smith"))
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250603", "20250607", "Maria Lopez"))
        engine.sync_unit(UNIT_ID)

        result = engine.delete_connection("conn-airbnb")

        assert result.unit_id == UNIT_ID
        assert result.conflicts == 0
        assert store.get_connection("conn-airbnb") is None
        assert store.get_raw_events("conn-airbnb") == []
        assert booking_for(store, "a-1").status == BookingStatus.CANCELLED
        survivor = booking_for(store, "b-1")
        assert survivor.status == BookingStatus.CONFIRMED
        assert survivor.conflict_detected is False

    def test_delete_unknown_connection(self, engine):
        assert engine.delete_connection("missing") is None


class TestProvisionalBookings:
    """Test cases for provisional linking and ghost bookings."""

    def test_link_by_reservation_id(self, store, adapter, engine):
        store.save_provisional_booking(ProvisionalBooking(
            id="prov-1",
            provider="BOOKING",
            provider_reservation_id="4012345678",
            check_in=date(2025, 6, 1),
            check_out=date(2025, 6, 5),
            unit_hint=UNIT_ID,
            guest_name="Ana Garcia",
            guests=3,
            total_price=320.0,
        ))
        add_connection(store, "conn-booking", "BOOKING")
        adapter.feeds["conn-booking"] = feed(
            event("b-1", "20250601", "20250605", "CLOSED - Not available", "Reservation 4012345678"),
        )

        engine.sync_unit(UNIT_ID)

        provisional = store.provisionals["prov-1"]
        assert provisional.status == ProvisionalStatus.CONFIRMED
        assert provisional.linked_event_id == store.get_raw_events("conn-booking")[0].id

        booking = booking_for(store, "b-1")
        assert booking.provisional_id == "prov-1"
        assert booking.guest_name == "Ana Garcia"
        assert booking.total_price == 320.0
        assert booking.guests == 3
        assert booking.event_kind == EventKind.BOOKING
        assert booking.source == Channel.BOOKING.value

    def test_link_by_exact_dates(self, store, adapter, engine):
        store.save_provisional_booking(ProvisionalBooking(
            id="prov-1",
            provider="AIRBNB",
            check_in=date(2025, 6, 1),
            check_out=date(2025, 6, 5),
            unit_hint="sea view",
            guest_name="Ana Garcia",
        ))
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved"))

        engine.sync_unit(UNIT_ID)

        assert store.provisionals["prov-1"].linked_event_id is not None
        assert booking_for(store, "a-1").guest_name == "Ana Garcia"

    def test_hint_for_other_unit_is_not_linked(self, store, adapter, engine):
        store.save_provisional_booking(ProvisionalBooking(
            id="prov-1",
            provider="AIRBNB",
            check_in=date(2025, 6, 1),
            check_out=date(2025, 6, 5),
            unit_hint="Mountain Loft",
            guest_name="Ana Garcia",
        ))
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved"))

        engine.sync_unit(UNIT_ID)

        assert store.provisionals["prov-1"].linked_event_id is None
        assert booking_for(store, "a-1").event_kind == EventKind.BLOCK

    def test_ghost_booking_lifecycle(self, store, adapter, engine):
        store.save_provisional_booking(ProvisionalBooking(
            id="prov-1",
            provider="AIRBNB",
            provider_reservation_id="HM12345678",
            status=ProvisionalStatus.CONFIRMED,
            check_in=date(2025, 7, 10),
            check_out=date(2025, 7, 12),
            unit_hint="Sea View",
            guest_name="Ana Garcia",
            total_price=210.0,
        ))

        engine.sync_unit(UNIT_ID)

        ghosts = active_bookings(store)
        assert len(ghosts) == 1
        ghost = ghosts[0]
        assert ghost.source == Channel.PENDING_SYNC.value
        assert ghost.guest_name == "Ana Garcia"
        assert ghost.external_ref is None

        # Feed catches up: the ghost becomes the feed booking
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250710", "20250712", "Ana Garcia (HM12345678)"))
        engine.sync_unit(UNIT_ID)

        bookings = active_bookings(store)
        assert len(bookings) == 1
        assert bookings[0].id == ghost.id
        assert bookings[0].external_ref == "a-1"
        assert bookings[0].source == Channel.AIRBNB.value

    def test_withdrawn_ghost_is_cancelled(self, store, adapter, engine):
        provisional = ProvisionalBooking(
            id="prov-1",
            provider="AIRBNB",
            status=ProvisionalStatus.CONFIRMED,
            check_in=date(2025, 7, 10),
            check_out=date(2025, 7, 12),
            unit_hint=UNIT_ID,
            guest_name="Ana Garcia",
        )
        store.save_provisional_booking(provisional)
        engine.sync_unit(UNIT_ID)

        provisional.status = ProvisionalStatus.CANCELLED
        store.save_provisional_booking(provisional)
        engine.sync_unit(UNIT_ID)

        assert active_bookings(store) == []


class TestMinimalBookings:
    """Test cases for anonymous events with minimal booking creation."""

    def test_anonymous_event_becomes_block_by_default(self, store, adapter, engine):
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved"))

        engine.sync_unit(UNIT_ID)

        booking = booking_for(store, "a-1")
        assert booking.event_kind == EventKind.BLOCK
        assert booking.source == Channel.CALENDAR.value
        assert booking.locator is None

    def test_minimal_mode_creates_booking_with_locator(self, store, adapter):
        engine = make_engine(store, adapter, minimal_bookings=True)
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved"))

        engine.sync_unit(UNIT_ID)

        booking = booking_for(store, "a-1")
        assert booking.event_kind == EventKind.BOOKING
        assert booking.source == Channel.AIRBNB.value
        assert booking.locator.startswith("LOC-")

    def test_minimal_mode_read_from_settings(self, adapter):
        store = InMemoryStore(settings={MINIMAL_BOOKINGS_SETTING: True})
        store.add_unit(RentalUnit(id=UNIT_ID, name="Sea View"))
        engine = make_engine(store, adapter, minimal_bookings=None)
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved"))

        engine.sync_unit(UNIT_ID)

        assert booking_for(store, "a-1").locator.startswith("LOC-")

    def test_locator_is_stable_across_syncs(self, store, adapter):
        engine = make_engine(store, adapter, minimal_bookings=True)
        add_connection(store, "conn-airbnb", "AIRBNB")
        adapter.feeds["conn-airbnb"] = feed(event("a-1", "20250601", "20250605", "Reserved"))
        engine.sync_unit(UNIT_ID)
        locator = booking_for(store, "a-1").locator

        engine.sync_unit(UNIT_ID)

        assert booking_for(store, "a-1").locator == locator
