"""
Reconciliation engine: feed ingestion and the canonical booking fold.

One pass per rental unit:

1. Ingest every enabled connection through its adapter, diff the pulled
   events against the stored raw events and cancel the ones that vanished.
2. Assemble candidates (active raw events, standing manual bookings and
   ghost provisional bookings), sort them by priority then start date.
3. Fold them over the accepted occupied ranges, upserting canonical bookings
   and flagging genuine conflicts between real bookings.
4. Apply explicit cancellations and cancel bookings whose feed is gone.

The unit's bookings are loaded once into a working set and only the records
that actually changed are written back.
"""
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Dict, Any, List, Callable, Set

from .priority import get_channel_priority, normalize_channel, resolve_priority
from .classifier import is_confirmed_booking, is_booking_confirmed, overlaps, normalize
from .extraction import extract_guest_name, extract_amount
from ..storage.base import SyncStore
from ..transport.factory import AdapterFactory
from ..utils.models import (
    Channel, SyncStatus, EventStatus, EventKind, BookingStatus, EventState,
    ProvisionalStatus, BookingField, FieldSource, RentalUnit, ChannelConnection,
    RawEvent, CanonicalBooking, ProvisionalBooking, SyncResult, utc_now
)
from ..utils.exceptions import OfflineError, AntiBotBlockedError, FeedHTTPError, TokenExpiredError
from ..utils.logger import get_logger, SyncLogger, ICalDebugLog
from config.settings import sync_config


# Error-text signatures channels use for dead feed links / credentials
TOKEN_EXPIRY_MARKERS = (
    "token expired",
    "token_expired",
    "expired token",
    "invalid_grant",
    "export link has expired",
    "calendar link expired",
)

# Statuses that need a human before scheduled cycles retry them
HUMAN_REQUIRED_STATUSES = frozenset({SyncStatus.TOKEN_EXPIRED, SyncStatus.INVALID_TOKEN})

MINIMAL_BOOKINGS_SETTING = "enable_minimal_bookings_from_ical"


def classify_failure(error: Exception) -> SyncStatus:
    """Map an ingestion failure onto the connection status vocabulary."""
    if isinstance(error, OfflineError):
        return SyncStatus.OFFLINE
    if isinstance(error, AntiBotBlockedError):
        return SyncStatus.BLOCKED
    if isinstance(error, TokenExpiredError):
        return SyncStatus.TOKEN_EXPIRED
    text = str(error).lower()
    if any(marker in text for marker in TOKEN_EXPIRY_MARKERS):
        return SyncStatus.TOKEN_EXPIRED
    if isinstance(error, FeedHTTPError) and error.status_code == 401:
        return SyncStatus.INVALID_TOKEN
    return SyncStatus.ERROR


def raw_status(value: Optional[str]) -> EventStatus:
    normalized = (value or "").strip().lower()
    if normalized == EventStatus.CANCELLED.value:
        return EventStatus.CANCELLED
    if normalized == EventStatus.TENTATIVE.value:
        return EventStatus.TENTATIVE
    return EventStatus.CONFIRMED


@dataclass
class Candidate:
    """One item competing for a unit's dates during the fold."""
    start: date
    end: date
    priority: int
    kind: EventKind
    source: str
    state: EventState = EventState.CONFIRMED
    guest_name: Optional[str] = None
    total_price: Optional[float] = None
    guests: Optional[int] = None
    summary: Optional[str] = None
    event: Optional[RawEvent] = None
    connection: Optional[ChannelConnection] = None
    provisional: Optional[ProvisionalBooking] = None
    manual_booking: Optional[CanonicalBooking] = None
    needs_locator: bool = False

    @property
    def is_real(self) -> bool:
        if self.manual_booking is not None:
            return is_booking_confirmed(self.manual_booking)
        return is_confirmed_booking(self.guest_name, self.total_price, self.kind, self.state)


@dataclass
class OccupiedRange:
    start: date
    end: date
    priority: int
    is_real: bool
    kind: EventKind
    booking_id: str


class ReconciliationEngine:
    """Turns channel feeds into one authoritative booking ledger per unit."""

    def __init__(
        self,
        store: SyncStore,
        adapter_factory: Optional[AdapterFactory] = None,
        clock: Callable[[], datetime] = utc_now,
        minimal_bookings: Optional[bool] = None,
        debug_log: Optional[ICalDebugLog] = None,
        sync_logger: Optional[SyncLogger] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.store = store
        self.adapter_factory = adapter_factory or AdapterFactory()
        self.clock = clock
        self.minimal_bookings = minimal_bookings
        self.debug_log = debug_log or ICalDebugLog()
        self.new_id = id_factory
        self.logger = get_logger("reconciliation_engine")
        self.sync_logger = sync_logger or SyncLogger(self.logger)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def sync_unit(self, unit_id: str, automated: bool = False) -> SyncResult:
        """
        Ingest every enabled connection of a unit, then reconcile it.

        Args:
            unit_id: Rental unit to sync
            automated: True for scheduled cycles; connections awaiting a human
                (expired/invalid token) are skipped instead of retried

        Returns:
            SyncResult with processed connections, conflicts and per-connection errors
        """
        result = SyncResult(unit_id=unit_id)
        self.logger.info("Syncing unit", unit_id=unit_id, automated=automated)

        for connection in self.store.get_connections(unit_id):
            if not connection.enabled:
                continue

            if automated and connection.last_status in HUMAN_REQUIRED_STATUSES:
                message = f"{connection.display_name}: skipped ({connection.last_status.value}), manual sync required"
                result.errors.append(message)
                self.debug_log.warn("SYNC", "Connection awaiting manual action", {"connection_id": connection.id})
                continue

            try:
                self.ingest_connection(connection)
                result.processed += 1
                self.sync_logger.log_connection_synced(connection.channel, connection.id)
            except Exception as e:
                self._record_failure(connection, e, result)

        result.conflicts = self.reconcile_unit(unit_id)
        self.logger.info(
            "Unit sync finished",
            unit_id=unit_id,
            processed=result.processed,
            conflicts=result.conflicts,
            errors=len(result.errors),
        )
        return result

    def ingest_connection(self, connection: ChannelConnection) -> None:
        """Pull one connection and persist its raw events."""
        adapter = self.adapter_factory.get_adapter(connection)
        pull = adapter.pull_reservations(connection)
        now = self.clock()

        connection.last_sync = now
        connection.last_status = SyncStatus.OK
        connection.sync_log = pull.log
        for key, value in pull.metadata_updates.items():
            setattr(connection, key, value)
        self.store.save_connection(connection)
        self.debug_log.info("SYNC", pull.log, {"connection_id": connection.id})

        # Short-circuited pulls carry no event set; diffing them would cancel everything
        if pull.unchanged:
            return

        existing = {event.external_uid: event for event in self.store.get_raw_events(connection.id)}
        seen: Set[str] = set()
        written = 0

        for parsed in pull.events:
            if parsed.uid in seen:
                continue
            seen.add(parsed.uid)

            prior = existing.get(parsed.uid)
            event = RawEvent(
                id=prior.id if prior else self.new_id(),
                connection_id=connection.id,
                external_uid=parsed.uid,
                unit_id=connection.unit_id,
                start_date=parsed.start_date,
                end_date=parsed.end_date,
                status=raw_status(parsed.status),
                summary=parsed.summary,
                description=parsed.description,
                raw_data=parsed.raw,
                kind=parsed.kind,
                created_at=prior.created_at if prior else now,
                updated_at=now,
            )
            if prior and prior.content_equals(event):
                continue
            self.store.save_raw_event(event)
            written += 1

        cancelled = 0
        for uid, prior in existing.items():
            if uid not in seen and prior.is_active:
                prior.status = EventStatus.CANCELLED
                prior.updated_at = now
                self.store.save_raw_event(prior)
                cancelled += 1

        self.logger.info(
            "Connection ingested",
            connection_id=connection.id,
            channel=connection.channel,
            events=len(seen),
            written=written,
            implicitly_cancelled=cancelled,
        )

    def _record_failure(self, connection: ChannelConnection, error: Exception, result: SyncResult):
        status = classify_failure(error)
        connection.last_sync = self.clock()
        connection.last_status = status
        connection.sync_log = f"ERROR: {str(error)[:120]}"
        result.errors.append(f"{connection.display_name}: {error}")

        self.logger.error(
            "Connection sync failed",
            connection_id=connection.id,
            channel=connection.channel,
            status=status.value,
            error=str(error),
            error_type=type(error).__name__,
        )
        self.debug_log.error("SYNC", str(error), {"connection_id": connection.id, "status": status.value})

        try:
            self.store.save_connection(connection)
        except Exception as e:
            self.logger.error("Failed to persist connection status", connection_id=connection.id, error=str(e))

    def delete_connection(self, connection_id: str) -> Optional[SyncResult]:
        """Remove a connection and its raw events, then correct the unit's bookings."""
        connection = self.store.get_connection(connection_id)
        if connection is None:
            self.logger.warning("Connection not found", connection_id=connection_id)
            return None

        self.store.delete_raw_events(connection_id)
        self.store.delete_connection(connection_id)
        self.logger.info("Connection deleted", connection_id=connection_id, unit_id=connection.unit_id)

        conflicts = self.reconcile_unit(connection.unit_id)
        return SyncResult(unit_id=connection.unit_id, conflicts=conflicts)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def _minimal_mode(self) -> bool:
        if self.minimal_bookings is not None:
            return self.minimal_bookings
        settings = self.store.get_settings()
        return bool(settings.get(MINIMAL_BOOKINGS_SETTING, sync_config.enable_minimal_bookings))

    def reconcile_unit(self, unit_id: str) -> int:
        """
        Fold all current signals for a unit into its canonical bookings.

        Returns:
            Number of genuine conflicts detected
        """
        unit = self.store.get_unit(unit_id)
        if unit is None:
            self.logger.warning("Unit not found, skipping reconciliation", unit_id=unit_id)
            return 0

        now = self.clock()
        connections = {c.id: c for c in self.store.get_connections(unit_id)}
        raw_events = [e for e in self.store.get_unit_raw_events(unit_id) if e.connection_id in connections]

        stored = self.store.get_bookings(unit_id)
        snapshot = {b.id: self._fingerprint(b) for b in stored}
        working: Dict[str, CanonicalBooking] = {b.id: b for b in stored}

        provisionals = self.store.get_provisional_bookings()
        provisional_snapshot = {p.id: self._fingerprint(p) for p in provisionals}

        minimal = self._minimal_mode()
        candidates = self._assemble_candidates(unit, raw_events, connections, working, provisionals, minimal, now)
        candidates.sort(key=lambda c: (-c.priority, c.start))

        by_ref = {b.external_ref: b for b in working.values() if b.external_ref}
        by_provisional = {b.provisional_id: b for b in working.values() if b.provisional_id}

        accepted: List[OccupiedRange] = []
        touched: Set[str] = set()
        conflicts = 0

        for candidate in candidates:
            booking = self._resolve_booking(candidate, unit, working, by_ref, by_provisional, now)
            touched.add(booking.id)

            if candidate.manual_booking is None:
                self._merge(booking, candidate)
                if booking.external_ref:
                    by_ref[booking.external_ref] = booking
                if booking.provisional_id:
                    by_provisional[booking.provisional_id] = booking

            if booking.status == BookingStatus.CANCELLED:
                booking.conflict_detected = False
                continue

            is_real = candidate.is_real and candidate.kind == EventKind.BOOKING
            colliding = [
                r for r in accepted
                if r.booking_id != booking.id and overlaps(candidate.start, candidate.end, r.start, r.end)
            ]
            genuine = [r for r in colliding if is_real and r.is_real and r.kind == EventKind.BOOKING]

            booking.conflict_detected = bool(genuine)
            if genuine:
                conflicts += 1
                for occupied in genuine:
                    other = working[occupied.booking_id]
                    other.conflict_detected = True
                    if other.status == BookingStatus.CANCELLED:
                        other.status = BookingStatus.CONFIRMED
                self.logger.warning(
                    "Booking conflict detected",
                    unit_id=unit_id,
                    booking_id=booking.id,
                    source=booking.source,
                    check_in=booking.check_in.isoformat(),
                    check_out=booking.check_out.isoformat(),
                    against=[o.booking_id for o in genuine],
                )
            elif colliding:
                self.logger.debug("Range eclipsed without conflict", booking_id=booking.id, kind=candidate.kind.value)

            accepted.append(OccupiedRange(
                start=candidate.start,
                end=candidate.end,
                priority=candidate.priority,
                is_real=is_real,
                kind=candidate.kind,
                booking_id=booking.id,
            ))

        self._apply_cancellations(raw_events, provisionals, working, by_ref, touched)

        for booking in working.values():
            if snapshot.get(booking.id) != self._fingerprint(booking):
                booking.updated_at = now
                self.store.save_booking(booking)

        for provisional in provisionals:
            if provisional_snapshot.get(provisional.id) != self._fingerprint(provisional):
                provisional.updated_at = now
                self.store.save_provisional_booking(provisional)

        self.logger.info("Unit reconciled", unit_id=unit_id, candidates=len(candidates), conflicts=conflicts)
        return conflicts

    @staticmethod
    def _fingerprint(record) -> Dict[str, Any]:
        data = record.to_dict()
        data.pop('updated_at', None)
        return data

    def _assemble_candidates(
        self,
        unit: RentalUnit,
        raw_events: List[RawEvent],
        connections: Dict[str, ChannelConnection],
        working: Dict[str, CanonicalBooking],
        provisionals: List[ProvisionalBooking],
        minimal: bool,
        now: datetime,
    ) -> List[Candidate]:
        candidates: List[Candidate] = []
        claimed: Set[str] = set()
        manual_priority = get_channel_priority(Channel.MANUAL.value)

        for event in raw_events:
            if not event.is_active:
                continue
            connection = connections[event.connection_id]

            guest = extract_guest_name(event.summary) if event.kind == EventKind.BOOKING else None
            amount = extract_amount(event.description)
            tentative = event.status == EventStatus.TENTATIVE

            candidate = Candidate(
                start=event.start_date,
                end=event.end_date,
                priority=resolve_priority(connection),
                kind=event.kind,
                source=normalize_channel(connection.channel) or connection.channel,
                state=EventState.PROVISIONAL if tentative else EventState.CONFIRMED,
                guest_name=guest,
                total_price=amount,
                summary=event.summary,
                event=event,
                connection=connection,
            )

            provisional = self._link_provisional(event, unit, provisionals, claimed, now)
            if provisional is not None:
                candidate.provisional = provisional
                candidate.guest_name = candidate.guest_name or extract_guest_name(provisional.guest_name)
                if candidate.guest_name:
                    candidate.kind = EventKind.BOOKING
                if not candidate.total_price and provisional.total_price > 0:
                    candidate.total_price = provisional.total_price
                if provisional.guests and provisional.guests > 0:
                    candidate.guests = provisional.guests

            if not candidate.guest_name:
                if minimal and event.kind == EventKind.BOOKING:
                    candidate.needs_locator = True
                else:
                    candidate.kind = EventKind.BLOCK
                    candidate.source = Channel.CALENDAR.value
                    candidate.priority = manual_priority

            candidates.append(candidate)

        for booking in working.values():
            if booking.is_manual_origin and booking.status != BookingStatus.CANCELLED:
                candidates.append(Candidate(
                    start=booking.check_in,
                    end=booking.check_out,
                    priority=manual_priority,
                    kind=booking.event_kind,
                    source=booking.source,
                    state=booking.event_state,
                    manual_booking=booking,
                ))

        ghost_priority = get_channel_priority(Channel.PENDING_SYNC.value)
        for provisional in provisionals:
            if not self._is_ghost(provisional, unit):
                continue
            candidates.append(Candidate(
                start=provisional.check_in,
                end=provisional.check_out,
                priority=ghost_priority,
                kind=EventKind.BOOKING,
                source=Channel.PENDING_SYNC.value,
                guest_name=provisional.guest_name,
                total_price=provisional.total_price or None,
                guests=provisional.guests,
                summary=f"{provisional.provider} {provisional.provider_reservation_id or ''}".strip(),
                provisional=provisional,
            ))

        return candidates

    @staticmethod
    def _hinted_to(provisional: ProvisionalBooking, unit: RentalUnit) -> bool:
        hint = normalize(provisional.unit_hint)
        return bool(hint) and hint in (normalize(unit.id), normalize(unit.name))

    def _is_ghost(self, provisional: ProvisionalBooking, unit: RentalUnit) -> bool:
        return (
            provisional.is_confirmed_like
            and not provisional.linked_event_id
            and self._hinted_to(provisional, unit)
            and provisional.check_in is not None
            and provisional.check_out is not None
        )

    def _link_provisional(
        self,
        event: RawEvent,
        unit: RentalUnit,
        provisionals: List[ProvisionalBooking],
        claimed: Set[str],
        now: datetime,
    ) -> Optional[ProvisionalBooking]:
        """Match an event to a provisional by existing link, reservation id, then exact dates."""
        for provisional in provisionals:
            if provisional.linked_event_id == event.id:
                claimed.add(provisional.id)
                return provisional

        pool = [
            p for p in provisionals
            if p.linked_event_id is None
            and p.id not in claimed
            and (p.is_pending or p.is_confirmed_like)
        ]

        match = None
        text = f"{event.summary}\n{event.description}\n{event.raw_data}"
        for provisional in pool:
            reservation_id = (provisional.provider_reservation_id or "").strip()
            if len(reservation_id) < 4 or reservation_id not in text:
                continue
            if provisional.unit_hint and not self._hinted_to(provisional, unit):
                continue
            match = provisional
            break

        if match is None:
            for provisional in pool:
                if (
                    self._hinted_to(provisional, unit)
                    and provisional.check_in == event.start_date
                    and provisional.check_out == event.end_date
                ):
                    match = provisional
                    break

        if match is None:
            return None

        match.linked_event_id = event.id
        match.status = ProvisionalStatus.CONFIRMED
        claimed.add(match.id)
        self.logger.info("Provisional booking linked", provisional_id=match.id, event_id=event.id)
        return match

    def _resolve_booking(
        self,
        candidate: Candidate,
        unit: RentalUnit,
        working: Dict[str, CanonicalBooking],
        by_ref: Dict[str, CanonicalBooking],
        by_provisional: Dict[str, CanonicalBooking],
        now: datetime,
    ) -> CanonicalBooking:
        """Existing booking for the candidate, or a new one added to the working set."""
        if candidate.manual_booking is not None:
            return candidate.manual_booking

        booking = None
        if candidate.event is not None:
            booking = by_ref.get(candidate.event.external_uid)
        if booking is None and candidate.provisional is not None:
            booking = by_provisional.get(candidate.provisional.id)

        if booking is None:
            booking = CanonicalBooking(
                id=self.new_id(),
                unit_id=unit.id,
                check_in=candidate.start,
                check_out=candidate.end,
                created_at=now,
            )
            working[booking.id] = booking
            self.logger.info("Canonical booking created", booking_id=booking.id, unit_id=unit.id, source=candidate.source)

        if candidate.needs_locator and not booking.locator:
            booking.locator = self.store.generate_locator()
        return booking

    @staticmethod
    def _assign(booking: CanonicalBooking, booking_field: BookingField, value: Any):
        """Write a field unless a human owns it."""
        if booking.is_manual(booking_field):
            return
        setattr(booking, booking_field.value, value)
        booking.field_sources.setdefault(booking_field, FieldSource.SYSTEM)

    def _merge(self, booking: CanonicalBooking, candidate: Candidate):
        status = BookingStatus.PENDING if candidate.state == EventState.PROVISIONAL else BookingStatus.CONFIRMED

        self._assign(booking, BookingField.CHECK_IN, candidate.start)
        self._assign(booking, BookingField.CHECK_OUT, candidate.end)
        if candidate.guest_name:
            self._assign(booking, BookingField.GUEST_NAME, candidate.guest_name)
        if candidate.total_price and candidate.total_price > 0:
            self._assign(booking, BookingField.TOTAL_PRICE, candidate.total_price)
        if candidate.guests:
            self._assign(booking, BookingField.GUESTS, candidate.guests)
        self._assign(booking, BookingField.STATUS, status)
        self._assign(booking, BookingField.EVENT_KIND, candidate.kind)
        self._assign(booking, BookingField.SUMMARY, candidate.summary)
        self._assign(booking, BookingField.SOURCE, candidate.source)

        booking.event_state = candidate.state
        if candidate.event is not None:
            booking.external_ref = candidate.event.external_uid
            booking.linked_event_id = candidate.event.id
        if candidate.connection is not None:
            booking.connection_id = candidate.connection.id
        if candidate.provisional is not None:
            booking.provisional_id = candidate.provisional.id

    def _apply_cancellations(
        self,
        raw_events: List[RawEvent],
        provisionals: List[ProvisionalBooking],
        working: Dict[str, CanonicalBooking],
        by_ref: Dict[str, CanonicalBooking],
        touched: Set[str],
    ):
        """Explicit cancellations, orphaned feed bookings and stale ghosts."""

        def cancel(booking: CanonicalBooking, reason: str):
            if booking.id in touched or booking.status == BookingStatus.CANCELLED:
                return
            if booking.is_manual(BookingField.STATUS):
                return
            booking.status = BookingStatus.CANCELLED
            booking.conflict_detected = False
            self.logger.info("Canonical booking cancelled", booking_id=booking.id, reason=reason)

        for event in raw_events:
            if not event.is_active and event.external_uid in by_ref:
                cancel(by_ref[event.external_uid], "feed_cancelled")

        known_refs = {event.external_uid for event in raw_events}
        live_provisionals = {p.id for p in provisionals if p.is_confirmed_like or p.is_pending}

        for booking in list(working.values()):
            if booking.external_ref and booking.external_ref not in known_refs:
                cancel(booking, "feed_removed")
            elif (
                not booking.external_ref
                and booking.provisional_id
                and booking.source == Channel.PENDING_SYNC.value
                and booking.provisional_id not in live_provisionals
            ):
                cancel(booking, "provisional_withdrawn")
